"""Fan-out aggregation across all job sources.

One call walks ``IDLE -> DISPATCHING -> COLLECTING -> MERGING -> RANKING -> DONE``:

* every live source runs on its own worker thread;
* every source starts at the same dispatch instant, so collection stops at
  the earlier of ``source_timeout`` and ``global_timeout``; with the default
  2.5x factor the per-source deadline governs and the global one only binds
  when configured below it. A source still pending is reported as
  ``TIMEOUT`` for that call only;
* live results (dispatch order, first seen wins) are merged with cached
  live postings for the query, and topped up with synthetic postings
  (cached placeholders first) only when the total is below ``min_results``;
* the merged list is ranked by source weight plus recency, capped, and
  newly discovered live postings are written back to the cache.

:meth:`Orchestrator.aggregate` never raises.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Mapping, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from jobpulse.aggregate.stats import SourceHealthTracker
from jobpulse.cache.entry import CacheEntry
from jobpulse.cache.freshness import FreshnessCache
from jobpulse.core.dedupe import deduplicate_jobs, job_key, merge_with_cached
from jobpulse.core.errors import ErrorKind
from jobpulse.core.normalize import JobPosting
from jobpulse.core.providers import source_weight
from jobpulse.core.ranking import RankCandidate, rank
from jobpulse.providers.base import SourceAdapter, SourceResult
from jobpulse.providers.synthetic import SyntheticSource

log = logging.getLogger(__name__)

DEFAULT_SOURCE_TIMEOUT = 8.0
GLOBAL_TIMEOUT_FACTOR = 2.5
DEFAULT_MIN_RESULTS = 5
DEFAULT_LIMIT = 20
FEW_RESULTS = 10
SLOW_SOURCE_MS = 5000


class AggregationState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    MERGING = "merging"
    RANKING = "ranking"
    DONE = "done"


class SourceSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    status: str
    count: int
    elapsed_ms: int
    error: ErrorKind | None = None
    error_message: str | None = None
    synthetic: bool = False


class AggregationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    jobs: List[JobPosting]
    total_found: int
    sources_queried: List[SourceSummary]
    fallback_used: bool
    cache_hits: int = 0
    elapsed_ms: int = 0
    recommendations: List[str] = []
    query: str = ""
    location: str = ""


def summarize(result: SourceResult) -> SourceSummary:
    return SourceSummary(
        name=result.source_name,
        status="ok" if result.ok else result.error.value,
        count=len(result.jobs),
        elapsed_ms=result.elapsed_ms,
        error=result.error,
        error_message=result.error_message,
        synthetic=result.synthetic,
    )


def build_recommendations(live: Sequence[SourceResult], total_found: int, synthetic_used: bool) -> List[str]:
    recs: List[str] = []
    ok = [r for r in live if r.ok]
    failed = [r for r in live if not r.ok]

    if total_found == 0:
        recs.append("No jobs found. Try broader search terms or different location.")
    elif total_found < FEW_RESULTS:
        recs.append("Few jobs found. Consider expanding search criteria or adding more job sources.")

    if live and not ok:
        recs.append("All job sources failed. Check API configurations and network connectivity.")
    elif failed:
        names = ", ".join(r.source_name for r in failed)
        recs.append(f"Some sources failed: {names}. Check their configurations.")

    if len(ok) == 1 and len(live) > 1:
        recs.append("Only one source is working. Consider configuring additional job sources for better coverage.")

    if ok:
        avg_ms = sum(r.elapsed_ms for r in ok) / len(ok)
        if avg_ms > SLOW_SOURCE_MS:
            recs.append("Slow response times detected. Consider optimizing source configurations or adding caching.")

    unconfigured = [r.source_name for r in failed if r.error == ErrorKind.CONFIGURATION]
    if unconfigured:
        recs.append(f"Missing credentials for: {', '.join(unconfigured)}. Check API configuration.")
    if synthetic_used:
        recs.append("Results include generated placeholder listings marked synthetic.")
    return recs


class Orchestrator:
    """Runs one aggregation at a time per call; safe to share across threads.

    ``state`` reflects the most recent call and is informational only.
    """

    def __init__(
        self,
        sources: Sequence[SourceAdapter],
        cache: FreshnessCache,
        *,
        synthetic: SyntheticSource | None = None,
        health: SourceHealthTracker | None = None,
        source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
        global_timeout: float | None = None,
        min_results: int = DEFAULT_MIN_RESULTS,
        weights: Mapping[str, float] | None = None,
        clock=None,
    ):
        self.sources = list(sources)
        self.cache = cache
        self.synthetic = synthetic or SyntheticSource()
        self.health = health or SourceHealthTracker()
        self.source_timeout = source_timeout
        self.global_timeout = global_timeout if global_timeout is not None else source_timeout * GLOBAL_TIMEOUT_FACTOR
        self.min_results = min_results
        self.weights = dict(weights or {})
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = AggregationState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> AggregationState:
        return self._state

    def _set_state(self, state: AggregationState) -> None:
        with self._state_lock:
            self._state = state
        log.debug("aggregate-state state=%s", state.value)

    # -- public ---------------------------------------------------------------

    def aggregate(self, query: str = "", location: str = "", limit: int = DEFAULT_LIMIT) -> AggregationReport:
        start = time.monotonic()
        query = (query or "").strip()
        location = (location or "").strip()
        try:
            report = self._aggregate(query, location, max(0, limit), start)
        except Exception:
            log.exception("aggregate-failed query=%r location=%r", query, location)
            report = AggregationReport(
                jobs=[],
                total_found=0,
                sources_queried=[],
                fallback_used=True,
                elapsed_ms=int((time.monotonic() - start) * 1000),
                recommendations=["All job sources failed. Check API configurations and network connectivity."],
                query=query,
                location=location,
            )
        self._set_state(AggregationState.DONE)
        return report

    # -- phases ---------------------------------------------------------------

    def _skipped(self, adapter: SourceAdapter) -> SourceResult | None:
        until = self.health.backoff_until(adapter.name)
        if until is None:
            return None
        return SourceResult(
            source_name=adapter.name,
            error=ErrorKind.RATE_LIMIT,
            error_message=f"skipped: backing off until {until.isoformat()}",
        )

    def _collect(self, query: str, location: str, limit: int) -> List[Tuple[SourceAdapter, SourceResult]]:
        self._set_state(AggregationState.DISPATCHING)
        results: Dict[int, SourceResult] = {}
        active: List[Tuple[int, SourceAdapter]] = []
        for idx, adapter in enumerate(self.sources):
            skipped = self._skipped(adapter)
            if skipped is not None:
                log.info("source-skipped source=%s reason=backoff", adapter.name)
                results[idx] = skipped
            else:
                active.append((idx, adapter))

        if active:
            ex = ThreadPoolExecutor(max_workers=len(active), thread_name_prefix="jobpulse-source")
            dispatched = time.monotonic()
            futures: Dict[Future, int] = {
                ex.submit(adapter.fetch, query, location, limit): idx for idx, adapter in active
            }
            self._set_state(AggregationState.COLLECTING)
            # One shared start, so a single deadline covers both limits
            deadline = dispatched + min(self.source_timeout, self.global_timeout)
            pending = set(futures)
            try:
                while pending:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                    for fut in done:
                        results[futures[fut]] = self._result_of(fut, self.sources[futures[fut]])
            finally:
                # Hung workers are abandoned, never joined
                ex.shutdown(wait=False, cancel_futures=True)
            waited_ms = int((time.monotonic() - dispatched) * 1000)
            for fut in pending:
                adapter = self.sources[futures[fut]]
                log.warning("source-timeout source=%s elapsed_ms=%s", adapter.name, waited_ms)
                results[futures[fut]] = SourceResult(
                    source_name=adapter.name,
                    error=ErrorKind.TIMEOUT,
                    error_message=f"no response within {min(self.source_timeout, self.global_timeout):.1f}s",
                    elapsed_ms=waited_ms,
                )
            for idx, _adapter in active:
                self.health.record(results[idx])

        return [(self.sources[idx], results[idx]) for idx in sorted(results)]

    @staticmethod
    def _result_of(fut: Future, adapter: SourceAdapter) -> SourceResult:
        try:
            return fut.result()
        except Exception as exc:
            # fetch() already contains errors; this only guards custom sources
            log.exception("source-crashed source=%s", adapter.name)
            return SourceResult(source_name=adapter.name, error=ErrorKind.PARSE, error_message=str(exc))

    def _aggregate(self, query: str, location: str, limit: int, start: float) -> AggregationReport:
        self._set_state(AggregationState.IDLE)
        collected = self._collect(query, location, max(limit, self.min_results))
        live_results = [r for _a, r in collected]

        # -- MERGING
        self._set_state(AggregationState.MERGING)
        weight_by_key: Dict[str, float] = {}
        live_jobs: List[JobPosting] = []
        for adapter, result in collected:
            w = source_weight(adapter.name, adapter.kind, self.weights)
            for job in result.jobs:
                weight_by_key.setdefault(job_key(job), w)
                live_jobs.append(job)
        fresh = deduplicate_jobs(live_jobs)

        # Placeholders stored by refresh() are held back for the top-up
        cached: Dict[str, CacheEntry] = {}
        held_synthetic: List[CacheEntry] = []
        for entry in self.cache.get(query):
            if entry.job.synthetic:
                held_synthetic.append(entry)
            else:
                cached.setdefault(job_key(entry.job), entry)

        cache_weight = source_weight("cache", "cache", self.weights)
        synthetic_weight = source_weight(self.synthetic.name, self.synthetic.kind, self.weights)
        candidates: List[RankCandidate] = []
        cache_hits = 0
        for job in merge_with_cached(fresh, [e.job for e in cached.values()]):
            key = job_key(job)
            if key in weight_by_key:
                candidates.append(RankCandidate(job, weight_by_key[key]))
            else:
                cache_hits += 1
                candidates.append(RankCandidate(job, cache_weight, freshness=self.cache.freshness(cached[key])))
        seen = {job_key(c.job) for c in candidates}

        all_live_failed = not any(r.ok for r in live_results)
        fallback_used = all_live_failed
        synthetic_used = False
        synthetic_result: SourceResult | None = None
        if len(candidates) < self.min_results:
            need = self.min_results - len(candidates)
            added = 0
            for entry in held_synthetic:
                if added >= need:
                    break
                key = job_key(entry.job)
                if key in seen:
                    continue
                seen.add(key)
                cache_hits += 1
                candidates.append(RankCandidate(entry.job, synthetic_weight, freshness=self.cache.freshness(entry)))
                added += 1
            if added < need:
                synthetic_result = self.synthetic.fetch(query, location, need - added + len(candidates))
                for job in synthetic_result.jobs:
                    if added >= need:
                        break
                    key = job_key(job)
                    if key in seen:
                        continue
                    seen.add(key)
                    candidates.append(RankCandidate(job, synthetic_weight))
                    added += 1
            fallback_used = True
            synthetic_used = True
            log.info("synthetic-topup query=%r added=%s generated=%s", query, added, synthetic_result is not None)

        # -- RANKING
        self._set_state(AggregationState.RANKING)
        ranked = rank(candidates, now=self.clock())
        total_found = len(ranked)
        jobs = ranked[:limit]

        new_live = [j for j in fresh if not j.synthetic]
        if new_live:
            try:
                self.cache.put(new_live)
            except Exception:
                log.exception("cache-persist-failed count=%s", len(new_live))

        summaries = [summarize(r) for r in live_results]
        if synthetic_result is not None:
            summaries.append(summarize(synthetic_result))
        elapsed_ms = int((time.monotonic() - start) * 1000)
        log.info(
            "aggregate query=%r location=%r sources=%s ok=%s total=%s returned=%s cache_hits=%s fallback=%s elapsed_ms=%s",
            query, location, len(live_results), sum(1 for r in live_results if r.ok),
            total_found, len(jobs), cache_hits, fallback_used, elapsed_ms,
        )
        return AggregationReport(
            jobs=jobs,
            total_found=total_found,
            sources_queried=summaries,
            fallback_used=fallback_used,
            cache_hits=cache_hits,
            elapsed_ms=elapsed_ms,
            recommendations=build_recommendations(live_results, total_found, synthetic_used),
            query=query,
            location=location,
        )
