from .entry import CacheEntry, DECAY_WINDOW_MS
from .freshness import FreshnessCache
from .store import CacheStore, JsonFileStore, MemoryStore, SqlStore, make_store

__all__ = [
    "CacheEntry",
    "DECAY_WINDOW_MS",
    "FreshnessCache",
    "CacheStore",
    "JsonFileStore",
    "MemoryStore",
    "SqlStore",
    "make_store",
]
