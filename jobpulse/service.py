"""Top-level entry points: ``search_jobs``, ``get_stats`` and ``refresh_cache``.

The API and CLI both go through :class:`JobService`; ``build_service``
wires one cache, one orchestrator and one refresh worker from settings.
"""
from __future__ import annotations

import logging

from jobpulse.aggregate.orchestrator import DEFAULT_LIMIT, AggregationReport, Orchestrator
from jobpulse.aggregate.refresh import RefreshRequest, RefreshWorker
from jobpulse.aggregate.stats import SourceHealth, SourceHealthTracker, compliance_report
from jobpulse.cache.freshness import FreshnessCache
from jobpulse.cache.store import make_store
from jobpulse.config import Settings, load_settings
from jobpulse.core.extract import DEFAULT_LOCATION
from jobpulse.providers import build_sources
from jobpulse.providers.synthetic import SyntheticSource

log = logging.getLogger(__name__)

MAX_LIMIT = 100


class JobService:
    def __init__(
        self,
        orchestrator: Orchestrator,
        cache: FreshnessCache,
        worker: RefreshWorker | None = None,
    ):
        self.orchestrator = orchestrator
        self.cache = cache
        self.worker = worker

    def search_jobs(self, keywords: str = "", location: str = DEFAULT_LOCATION, limit: int = DEFAULT_LIMIT) -> AggregationReport:
        limit = max(1, min(int(limit), MAX_LIMIT))
        return self.orchestrator.aggregate(keywords, location, limit)

    def get_stats(self) -> dict:
        health = {s.name: SourceHealth(s.name).as_dict() for s in self.orchestrator.sources}
        health.update(self.orchestrator.health.snapshot())
        return {
            "source_health": health,
            "cache_stats": self.cache.stats(),
            "compliance": compliance_report([*self.orchestrator.sources, self.orchestrator.synthetic]),
        }

    def refresh_cache(self, *, background: bool = False) -> None:
        """Refresh the cache now, or queue it on the worker when ``background``."""
        if background and self.worker is not None and self.worker.submit(RefreshRequest()):
            return
        self.cache.refresh()

    def start(self) -> None:
        if self.worker is not None:
            self.worker.start()

    def stop(self) -> None:
        if self.worker is not None:
            self.worker.stop()


def build_service(settings: Settings | None = None) -> JobService:
    settings = settings or load_settings()
    synthetic = SyntheticSource(seed=settings.synthetic_seed)
    store = make_store(settings.cache_backend, path=settings.cache_path, url=settings.database_url)
    cache = FreshnessCache(store, capacity=settings.cache_capacity, synthesizer=synthetic)
    orchestrator = Orchestrator(
        build_sources(settings),
        cache,
        synthetic=synthetic,
        health=SourceHealthTracker(),
        source_timeout=settings.source_timeout,
        global_timeout=settings.global_timeout,
        min_results=settings.min_results,
        weights=settings.source_weights,
    )
    log.info(
        "service-built sources=%s cache_backend=%s cache_entries=%s",
        len(orchestrator.sources), settings.cache_backend, len(cache),
    )
    return JobService(orchestrator, cache, RefreshWorker(cache))
