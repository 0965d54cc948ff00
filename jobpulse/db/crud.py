from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from jobpulse.db.models import CachedJob

_COLUMNS = (
    "title", "company", "location", "snippet", "description", "url", "source",
    "posted_date", "salary", "employment_type", "keywords", "synthetic", "cached_at",
)


def upsert_cached_job(session: Session, record: Mapping[str, Any]) -> CachedJob:
    """Insert or update one row keyed by ``record["id"]``. Does not commit."""
    row = session.get(CachedJob, record["id"])
    if row is None:
        row = CachedJob(id=record["id"])
        session.add(row)
    for col in _COLUMNS:
        if col in record:
            value = record[col]
            if col == "keywords":
                value = list(value or [])
            elif col == "synthetic":
                value = bool(value)
            setattr(row, col, value)
    return row


def upsert_cached_jobs(session: Session, records: Iterable[Mapping[str, Any]]) -> int:
    n = 0
    for record in records:
        upsert_cached_job(session, record)
        n += 1
    return n


def load_cached_jobs(session: Session) -> List[CachedJob]:
    """All rows, newest ``cached_at`` first."""
    stmt = select(CachedJob).order_by(CachedJob.cached_at.desc())
    return list(session.execute(stmt).scalars())


def count_cached_jobs(session: Session) -> int:
    return int(session.execute(select(func.count()).select_from(CachedJob)).scalar_one())


def delete_missing(session: Session, keep_ids: Iterable[str]) -> int:
    """Delete rows whose id is not in ``keep_ids``."""
    keep = list(keep_ids)
    stmt = delete(CachedJob)
    if keep:
        stmt = stmt.where(CachedJob.id.not_in(keep))
    result = session.execute(stmt)
    return int(result.rowcount or 0)


def trim_oldest(session: Session, capacity: int) -> int:
    """Keep the ``capacity`` most recently cached rows; delete the rest."""
    stale_ids = session.execute(
        select(CachedJob.id).order_by(CachedJob.cached_at.desc()).offset(max(0, capacity))
    ).scalars().all()
    if not stale_ids:
        return 0
    session.execute(delete(CachedJob).where(CachedJob.id.in_(stale_ids)))
    return len(stale_ids)


def row_to_record(row: CachedJob) -> Dict[str, Any]:
    return {"id": row.id, **{col: getattr(row, col) for col in _COLUMNS}}
