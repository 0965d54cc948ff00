from .match import (
    matches_query,
    matches_location,
    match_job,
    filter_jobs,
)

__all__ = [
    "matches_query",
    "matches_location",
    "match_job",
    "filter_jobs",
]
