from __future__ import annotations
from typing import Callable, Dict, List

from jobpulse.config import Settings
from .base import Source, SourceAdapter, SourceResult

SourceFactory = Callable[[Settings], List[SourceAdapter]]

# Source factories, in dispatch order (earlier wins on duplicate postings)
REGISTRY: Dict[str, SourceFactory] = {}


def register(name: str, factory: SourceFactory) -> None:
    REGISTRY[name] = factory


def get(name: str) -> SourceFactory:
    return REGISTRY[name]


def _google(settings: Settings) -> List[SourceAdapter]:
    from .google_search import GoogleSearchSource
    return [GoogleSearchSource(settings.google_api_key, settings.google_engine_id, timeout=settings.source_timeout)]


def _adzuna(settings: Settings) -> List[SourceAdapter]:
    from .adzuna import AdzunaSource
    return [AdzunaSource(settings.adzuna_app_id, settings.adzuna_app_key, timeout=settings.source_timeout)]


def _feeds(settings: Settings) -> List[SourceAdapter]:
    from .feeds import DEFAULT_FEEDS, FeedAggregatorSource, feed_from_config
    feeds = [feed_from_config(f) for f in settings.feeds] if settings.feeds else list(DEFAULT_FEEDS)
    return [FeedAggregatorSource(feeds, timeout=settings.source_timeout)]


def _scrape(settings: Settings) -> List[SourceAdapter]:
    from .scrape import DEFAULT_SITES, ScrapeSource, site_from_config
    sites = [site_from_config(s) for s in settings.scrape_sites] if settings.scrape_sites else list(DEFAULT_SITES)
    return [ScrapeSource(site, timeout=settings.source_timeout) for site in sites]


register("google", _google)
register("adzuna", _adzuna)
register("feeds", _feeds)
register("scrape", _scrape)


def build_sources(settings: Settings) -> List[SourceAdapter]:
    """Instantiate every registered live source for ``settings``."""
    sources: List[SourceAdapter] = []
    for factory in REGISTRY.values():
        sources.extend(factory(settings))
    return sources


__all__ = ["REGISTRY", "register", "get", "build_sources", "Source", "SourceAdapter", "SourceResult"]
