from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List

from .date_parse import to_naive_utc
from .normalize import JobPosting

SOURCE_WEIGHT_SHARE = 0.6
RECENCY_SHARE = 0.4
RECENCY_WINDOW_DAYS = 30.0


@dataclass
class RankCandidate:
    job: JobPosting
    weight: float
    # Cache freshness in [0,1]; only used when the job has no posted_at.
    freshness: float | None = None


def recency_score(candidate: RankCandidate, *, now: datetime | None = None) -> float:
    job = candidate.job
    if job.posted_at is not None:
        now = to_naive_utc(now or datetime.now(timezone.utc))
        age_days = (now - to_naive_utc(job.posted_at)).total_seconds() / 86400.0
        return max(0.0, min(1.0, 1.0 - age_days / RECENCY_WINDOW_DAYS))
    if candidate.freshness is not None:
        return max(0.0, min(1.0, candidate.freshness))
    return 0.0


def composite_score(candidate: RankCandidate, *, now: datetime | None = None) -> float:
    return SOURCE_WEIGHT_SHARE * candidate.weight + RECENCY_SHARE * recency_score(candidate, now=now)


def rank(candidates: Iterable[RankCandidate], *, now: datetime | None = None) -> List[JobPosting]:
    """Highest composite score first; equal scores keep discovery order."""
    items = list(candidates)
    # list.sort is stable, so ties stay in the order they were discovered
    items.sort(key=lambda c: composite_score(c, now=now), reverse=True)
    return [c.job for c in items]
