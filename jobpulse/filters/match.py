from __future__ import annotations

import logging
from typing import Any, Iterable, List, Literal, Tuple

from jobpulse.core.extract import DEFAULT_LOCATION

LOGGER = logging.getLogger(__name__)

MatchDecision = Tuple[Literal['keep', 'exclude'], str]


def _field(job: Any, name: str) -> str:
    value = job.get(name) if isinstance(job, dict) else getattr(job, name, None)
    if value is None:
        return ""
    return str(value)


def matches_query(job: Any, query: str | None, fields: Iterable[str] = ("title", "snippet", "company")) -> bool:
    """Case-insensitive substring match of ``query`` against ``fields``; empty query matches all."""
    q = (query or "").strip().lower()
    if not q:
        return True
    return any(q in _field(job, f).lower() for f in fields)


def matches_location(job: Any, location: str | None) -> bool:
    loc = (location or "").strip().lower()
    if not loc or loc == DEFAULT_LOCATION.lower():
        return True
    return loc in _field(job, "location").lower()


def match_job(job: Any, keywords: str | None, location: str | None) -> MatchDecision:
    if not matches_query(job, keywords, ("title", "description", "snippet", "company")):
        return ("exclude", "keywords")
    if not matches_location(job, location):
        return ("exclude", "location")
    return ("keep", "match")


def filter_jobs(jobs: Iterable[Any], keywords: str | None, location: str | None, *, source: str = "-") -> List[Any]:
    kept: List[Any] = []
    excluded = 0
    for job in jobs:
        decision, _reason = match_job(job, keywords, location)
        if decision == "keep":
            kept.append(job)
        else:
            excluded += 1
    log_match_metrics(source, len(kept), excluded)
    return kept


def log_match_metrics(source: str, kept: int, excluded: int) -> None:
    LOGGER.info(
        "match-filter source=%s kept=%s excluded=%s",
        source,
        kept,
        excluded,
    )
