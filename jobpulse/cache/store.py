"""Pluggable persistence for the freshness cache.

A store only loads and saves the full entry set; the cache itself owns
ordering, replacement and trimming.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Protocol, Sequence, Union

from sqlalchemy.engine import Engine

from jobpulse.cache.entry import CacheEntry, entry_to_record, record_to_entry
from jobpulse.db import crud
from jobpulse.db.models import Base
from jobpulse.db.session import get_session, make_engine, make_session_factory

log = logging.getLogger(__name__)


class CacheStore(Protocol):
    def load(self) -> List[CacheEntry]: ...

    def save(self, entries: Sequence[CacheEntry]) -> None: ...


class MemoryStore:
    def __init__(self) -> None:
        self._entries: List[CacheEntry] = []

    def load(self) -> List[CacheEntry]:
        return list(self._entries)

    def save(self, entries: Sequence[CacheEntry]) -> None:
        self._entries = list(entries)


class JsonFileStore:
    """Flat JSON list of records, rewritten atomically on every save."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> List[CacheEntry]:
        if not self.path.exists():
            return []
        try:
            with self.path.open(encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            log.warning("cache-load-failed path=%s err=%s", self.path, exc)
            return []
        if not isinstance(data, list):
            log.warning("cache-load-failed path=%s err=not a list", self.path)
            return []
        entries: List[CacheEntry] = []
        for rec in data:
            try:
                entries.append(record_to_entry(rec))
            except (KeyError, TypeError, ValueError):
                continue
        return entries

    def save(self, entries: Sequence[CacheEntry]) -> None:
        records = []
        for entry in entries:
            rec = entry_to_record(entry)
            if rec["posted_date"] is not None:
                rec["posted_date"] = rec["posted_date"].isoformat()
            records.append(rec)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False)
        os.replace(tmp, self.path)


class SqlStore:
    """Entries as rows of the ``cached_jobs`` table."""

    def __init__(self, engine: Engine | None = None, url: str | None = None) -> None:
        self.engine = engine or make_engine(url)
        Base.metadata.create_all(self.engine)
        self._factory = make_session_factory(self.engine)

    def load(self) -> List[CacheEntry]:
        with get_session(self._factory) as db:
            return [record_to_entry(crud.row_to_record(r)) for r in crud.load_cached_jobs(db)]

    def save(self, entries: Sequence[CacheEntry]) -> None:
        records = [entry_to_record(e) for e in entries]
        with get_session(self._factory) as db:
            crud.upsert_cached_jobs(db, records)
            crud.delete_missing(db, [r["id"] for r in records])
            db.commit()


def make_store(backend: str, *, path: str | None = None, url: str | None = None) -> CacheStore:
    backend = (backend or "memory").lower()
    if backend == "json":
        return JsonFileStore(path or "./jobpulse_cache.json")
    if backend == "sql":
        return SqlStore(url=url or None)
    if backend != "memory":
        log.warning("cache-backend-unknown backend=%s using=memory", backend)
    return MemoryStore()
