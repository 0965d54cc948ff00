from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping

from jobpulse.core.normalize import JobPosting, coerce_employment_type

DAY_MS = 24 * 60 * 60 * 1000
DECAY_WINDOW_MS = DAY_MS


@dataclass
class CacheEntry:
    job: JobPosting
    cached_at_ms: int

    def age_ms(self, now_ms: int) -> int:
        return max(0, now_ms - self.cached_at_ms)

    def freshness(self, now_ms: int, decay_ms: int = DECAY_WINDOW_MS) -> float:
        """1.0 when just cached, falling linearly to 0.0 at ``decay_ms``."""
        if decay_ms <= 0:
            return 0.0
        return max(0.0, 1.0 - self.age_ms(now_ms) / decay_ms)

    def is_fresh(self, now_ms: int, decay_ms: int = DECAY_WINDOW_MS) -> bool:
        return self.age_ms(now_ms) < decay_ms


def entry_to_record(entry: CacheEntry) -> Dict[str, Any]:
    """Persisted layout shared by every store (``posted_date`` stays a datetime)."""
    job = entry.job
    return {
        "id": job.id,
        "title": job.title,
        "company": job.company,
        "location": job.location,
        "snippet": job.snippet,
        "description": job.description,
        "url": job.source_url,
        "source": job.source_name,
        "posted_date": job.posted_at,
        "salary": job.salary,
        "employment_type": job.employment_type.value if job.employment_type else None,
        "keywords": list(job.keywords),
        "synthetic": job.synthetic,
        "cached_at": entry.cached_at_ms,
    }


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime) or value is None:
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def record_to_entry(record: Mapping[str, Any]) -> CacheEntry:
    job = JobPosting(
        id=str(record["id"]),
        title=record["title"],
        company=record.get("company"),
        location=record.get("location"),
        snippet=record.get("snippet"),
        description=record.get("description"),
        source_url=record.get("url"),
        source_name=record.get("source") or "cache",
        posted_at=_as_datetime(record.get("posted_date")),
        salary=record.get("salary"),
        employment_type=coerce_employment_type(record.get("employment_type")),
        keywords=list(record.get("keywords") or []),
        synthetic=bool(record.get("synthetic", False)),
    )
    return CacheEntry(job=job, cached_at_ms=int(record["cached_at"]))
