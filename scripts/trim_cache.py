"""Trim the SQL cache table down to a capacity, oldest ``cached_at`` first.

The running service trims on every write; this is for shrinking the table
after lowering JOBPULSE_CACHE_CAPACITY, from a cronjob or by hand.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select

from jobpulse.db import crud
from jobpulse.db.models import Base, CachedJob
from jobpulse.db.session import get_session, make_engine, make_session_factory

DEFAULT_CAPACITY = 500
DEFAULT_SAMPLE_SIZE = 10


def _parse_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class TrimSummary:
    capacity: int
    total_before: int
    matched: int
    deleted: int
    dry_run: bool
    sample: list[dict]

    def to_dict(self) -> dict:
        return asdict(self)


def trim_cache(
    capacity: int,
    *,
    url: Optional[str] = None,
    dry_run: bool = False,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> TrimSummary:
    if capacity < 0:
        raise ValueError("'capacity' must not be negative")

    engine = make_engine(url)
    Base.metadata.create_all(engine)
    factory = make_session_factory(engine)

    with get_session(factory) as session:
        total = crud.count_cached_jobs(session)
        matched = max(0, total - capacity)

        sample_rows = session.execute(
            select(CachedJob).order_by(CachedJob.cached_at.asc()).limit(min(matched, sample_size))
        ).scalars().all() if matched else []

        sample_payload: list[dict] = [
            {
                "id": row.id,
                "source": row.source,
                "title": row.title,
                "cached_at": datetime.fromtimestamp(row.cached_at / 1000, tz=timezone.utc).isoformat(),
            }
            for row in sample_rows
        ]

        deleted = 0
        if matched and not dry_run:
            deleted = crud.trim_oldest(session, capacity)
            session.commit()

    return TrimSummary(
        capacity=capacity,
        total_before=total,
        matched=matched,
        deleted=deleted,
        dry_run=dry_run,
        sample=sample_payload,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Trim the cached_jobs table to a capacity")
    parser.add_argument(
        "--capacity",
        type=int,
        default=int(os.getenv("JOBPULSE_CACHE_CAPACITY", DEFAULT_CAPACITY)),
        help="Rows to keep (default: env JOBPULSE_CACHE_CAPACITY or 500)",
    )
    parser.add_argument("--url", type=str, default=None, help="Database URL (default: env JOBPULSE_DATABASE_URL)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=_parse_bool(os.getenv("JOBPULSE_TRIM_DRY_RUN")),
        help="Report what would be deleted without modifying the database",
    )
    parser.add_argument("--sample-size", type=int, default=DEFAULT_SAMPLE_SIZE,
                        help="How many of the oldest rows to include in the summary")

    args = parser.parse_args()
    summary = trim_cache(args.capacity, url=args.url, dry_run=args.dry_run, sample_size=args.sample_size)
    print(summary.to_dict())


if __name__ == "__main__":
    main()
