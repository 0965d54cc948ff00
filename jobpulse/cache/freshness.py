from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List

from jobpulse.cache.entry import DECAY_WINDOW_MS, CacheEntry
from jobpulse.cache.store import CacheStore, MemoryStore
from jobpulse.core.dedupe import job_key
from jobpulse.core.normalize import JobPosting
from jobpulse.filters.match import matches_query

if TYPE_CHECKING:
    from jobpulse.providers.base import SourceAdapter
    from jobpulse.providers.synthetic import SyntheticSource

log = logging.getLogger(__name__)

DEFAULT_CAPACITY = 500
REFRESH_BATCH = 20


def _now_ms() -> int:
    return int(time.time() * 1000)


class FreshnessCache:
    """Bounded, persisted job cache with lazily computed freshness.

    Entries are keyed by the posting's identity key. Nothing expires on its
    own: entries only leave when the cache grows past ``capacity``, oldest
    ``cached_at_ms`` first. Safe to share between request threads and the
    background refresh worker.
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        *,
        capacity: int = DEFAULT_CAPACITY,
        decay_ms: int = DECAY_WINDOW_MS,
        clock: Callable[[], int] | None = None,
        synthesizer: "SyntheticSource | None" = None,
    ):
        self.store = store or MemoryStore()
        self.capacity = capacity
        self.decay_ms = decay_ms
        self.clock = clock or _now_ms
        self._synthesizer = synthesizer
        self._lock = threading.RLock()
        self._entries: Dict[str, CacheEntry] = {}
        loaded = sorted(self.store.load(), key=lambda e: e.cached_at_ms)
        for entry in loaded:
            self._entries[job_key(entry.job)] = entry
        if loaded:
            log.info("cache-loaded entries=%s store=%s", len(self._entries), type(self.store).__name__)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def freshness(self, entry: CacheEntry) -> float:
        return entry.freshness(self.clock(), self.decay_ms)

    def get(self, query: str | None = "") -> List[CacheEntry]:
        """Entries matching ``query``: freshest first, then most recently cached."""
        now = self.clock()
        with self._lock:
            hits = [e for e in self._entries.values() if matches_query(e.job, query)]
        hits.sort(key=lambda e: (e.freshness(now, self.decay_ms), e.cached_at_ms), reverse=True)
        return hits

    def get_jobs(self, query: str | None = "") -> List[JobPosting]:
        return [e.job for e in self.get(query)]

    def put(self, jobs: Iterable[JobPosting]) -> int:
        """Stamp and store ``jobs``; same-key entries are replaced. Returns count stored."""
        now = self.clock()
        n = 0
        with self._lock:
            for job in jobs:
                key = job_key(job)
                # Re-insert so dict order tracks recency for equal timestamps
                self._entries.pop(key, None)
                self._entries[key] = CacheEntry(job=job, cached_at_ms=now)
                n += 1
            dropped = self._trim()
            self.store.save(list(self._entries.values()))
        if dropped:
            log.info("cache-trim dropped=%s capacity=%s", dropped, self.capacity)
        return n

    def _trim(self) -> int:
        over = len(self._entries) - self.capacity
        if over <= 0:
            return 0
        # sorted() is stable: equal timestamps keep insertion order
        oldest = sorted(self._entries.items(), key=lambda kv: kv[1].cached_at_ms)[:over]
        for key, _entry in oldest:
            del self._entries[key]
        return over

    def refresh(
        self,
        source: "SourceAdapter | None" = None,
        *,
        query: str = "",
        location: str = "",
        count: int = REFRESH_BATCH,
    ) -> int:
        """Put a fresh batch: re-fetched via ``source``, else synthesized."""
        if source is not None:
            result = source.fetch(query, location, count)
            if not result.ok:
                log.warning("cache-refresh-failed source=%s kind=%s", result.source_name, result.error.value)
                return 0
            jobs = result.jobs
        else:
            jobs = self._get_synthesizer().generate(query, location, count)
        stored = self.put(jobs)
        log.info("cache-refresh source=%s stored=%s", source.name if source else "synthetic", stored)
        return stored

    def _get_synthesizer(self) -> "SyntheticSource":
        if self._synthesizer is None:
            from jobpulse.providers.synthetic import SyntheticSource
            self._synthesizer = SyntheticSource()
        return self._synthesizer

    def stats(self) -> dict:
        now = self.clock()
        with self._lock:
            total = len(self._entries)
            fresh = sum(1 for e in self._entries.values() if e.is_fresh(now, self.decay_ms))
        return {"total": total, "fresh": fresh, "stale": total - fresh}

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.store.save([])
