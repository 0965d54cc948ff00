"""Runtime settings for jobpulse.

Everything is read from environment variables (optionally loaded from a
``.env`` file, path overridable via ``JOBPULSE_DOTENV``). A sources file
(JSON or YAML) can override source weights, RSS feeds and scrape sites.

Environment variables
---------------------
JOBPULSE_SOURCE_TIMEOUT   per-adapter timeout in seconds (default 8)
JOBPULSE_GLOBAL_TIMEOUT   whole fan-out deadline (default 2.5 x source timeout)
JOBPULSE_MIN_RESULTS      synthetic top-up threshold (default 5)
JOBPULSE_CACHE_CAPACITY   max cached jobs (default 500)
JOBPULSE_CACHE_BACKEND    memory | json | sql (default json)
JOBPULSE_CACHE_PATH       file for the json backend (default ./jobpulse_cache.json)
JOBPULSE_DATABASE_URL / DATABASE_URL   url for the sql backend
JOBPULSE_SYNTHETIC_SEED   seed for synthetic postings (default 1729)
JOBPULSE_ADMIN_TOKEN      token for admin HTTP routes
JOBPULSE_SOURCES_FILE     optional sources file
GOOGLE_SEARCH_API_KEY / GOOGLE_SEARCH_ENGINE_ID
ADZUNA_APP_ID / ADZUNA_APP_KEY
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from dotenv import load_dotenv

load_dotenv(dotenv_path=os.getenv("JOBPULSE_DOTENV", ".env"))

DEFAULT_SOURCE_TIMEOUT = 8.0
GLOBAL_TIMEOUT_FACTOR = 2.5


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


@dataclass
class Settings:
    source_timeout: float = DEFAULT_SOURCE_TIMEOUT
    global_timeout: float = DEFAULT_SOURCE_TIMEOUT * GLOBAL_TIMEOUT_FACTOR
    min_results: int = 5
    cache_capacity: int = 500
    cache_backend: str = "json"
    cache_path: str = "./jobpulse_cache.json"
    database_url: str = ""
    synthetic_seed: int = 1729
    google_api_key: str = ""
    google_engine_id: str = ""
    adzuna_app_id: str = ""
    adzuna_app_key: str = ""
    source_weights: Dict[str, float] = field(default_factory=dict)
    feeds: List[Dict[str, Any]] = field(default_factory=list)
    scrape_sites: List[Dict[str, Any]] = field(default_factory=list)


def load_sources_file(path: Union[str, Path]) -> dict:
    """Read a JSON or YAML sources file; anything that is not a mapping gives {}."""
    path = Path(path)
    with path.open(encoding='utf-8') as f:
        if path.suffix.lower() in ('.yaml', '.yml'):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    if isinstance(data, dict):
        return data
    return {}


def load_settings() -> Settings:
    source_timeout = _env_float("JOBPULSE_SOURCE_TIMEOUT", DEFAULT_SOURCE_TIMEOUT)
    settings = Settings(
        source_timeout=source_timeout,
        global_timeout=_env_float("JOBPULSE_GLOBAL_TIMEOUT", source_timeout * GLOBAL_TIMEOUT_FACTOR),
        min_results=_env_int("JOBPULSE_MIN_RESULTS", 5),
        cache_capacity=_env_int("JOBPULSE_CACHE_CAPACITY", 500),
        cache_backend=_env_str("JOBPULSE_CACHE_BACKEND", "json").lower(),
        cache_path=_env_str("JOBPULSE_CACHE_PATH", "./jobpulse_cache.json"),
        database_url=_env_str("JOBPULSE_DATABASE_URL") or _env_str("DATABASE_URL"),
        synthetic_seed=_env_int("JOBPULSE_SYNTHETIC_SEED", 1729),
        google_api_key=_env_str("GOOGLE_SEARCH_API_KEY"),
        google_engine_id=_env_str("GOOGLE_SEARCH_ENGINE_ID"),
        adzuna_app_id=_env_str("ADZUNA_APP_ID"),
        adzuna_app_key=_env_str("ADZUNA_APP_KEY"),
    )

    sources_file = _env_str("JOBPULSE_SOURCES_FILE")
    if sources_file and Path(sources_file).exists():
        data = load_sources_file(sources_file)
        weights = data.get("weights") or {}
        if isinstance(weights, dict):
            settings.source_weights = {str(k): float(v) for k, v in weights.items()}
        if isinstance(data.get("feeds"), list):
            settings.feeds = [f for f in data["feeds"] if isinstance(f, dict)]
        if isinstance(data.get("scrape_sites"), list):
            settings.scrape_sites = [s for s in data["scrape_sites"] if isinstance(s, dict)]
    return settings
