from __future__ import annotations

from typing import Any, Dict, List, Mapping

from jobpulse.core.errors import ConfigurationError, ParseError
from jobpulse.providers.base import SourceAdapter
from jobpulse.providers.crawler.fetch import BOT_UA, Fetcher

API_URL = "https://api.adzuna.com/v1/api/jobs/za/search/1"
MAX_RESULTS_PER_PAGE = 50

_CONTRACT_TIME = {"full_time": "full-time", "part_time": "part-time"}


def _rand(value: Any) -> str | None:
    try:
        return f"R{int(float(value))}"
    except (TypeError, ValueError):
        return None


def format_salary(lo: Any, hi: Any) -> str | None:
    lo_s, hi_s = _rand(lo), _rand(hi)
    if lo_s and hi_s and lo_s != hi_s:
        return f"{lo_s} - {hi_s}"
    return lo_s or hi_s


def _display_name(node: Any) -> str | None:
    if isinstance(node, dict):
        name = node.get("display_name")
        return name if isinstance(name, str) else None
    return None


def parse_result(item: Mapping[str, Any]) -> Dict[str, Any]:
    contract_type = item.get("contract_type")  # permanent | contract
    contract_time = _CONTRACT_TIME.get(item.get("contract_time") or "")
    return {
        "title": item.get("title"),
        "company": _display_name(item.get("company")),
        "location": _display_name(item.get("location")),
        "description": item.get("description"),
        "url": item.get("redirect_url"),
        "posted_at": item.get("created"),
        "salary": format_salary(item.get("salary_min"), item.get("salary_max")),
        "employment_type": contract_time or contract_type,
        "source": "Adzuna",
    }


class AdzunaSource(SourceAdapter):
    name = "Adzuna"
    kind = "api"
    user_agent = BOT_UA
    notes = "Official Adzuna search API (ZA index)"

    def __init__(
        self,
        app_id: str = "",
        app_key: str = "",
        timeout: float = 8.0,
        fetcher: Fetcher | None = None,
    ):
        super().__init__(timeout)
        self.app_id = app_id
        self.app_key = app_key
        self.fetcher = fetcher or Fetcher(timeout=timeout, ua=BOT_UA, respect_robots=False)

    def _fetch(self, query: str, location: str, limit: int) -> List[Mapping[str, Any]]:
        if not self.app_id or not self.app_key:
            raise ConfigurationError("ADZUNA_APP_ID / ADZUNA_APP_KEY not set")
        params = {
            "app_id": self.app_id,
            "app_key": self.app_key,
            "results_per_page": max(1, min(limit, MAX_RESULTS_PER_PAGE)),
            "what": query,
            "where": location,
        }
        data = self.fetcher.get_json(API_URL, params=params)
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise ParseError("Adzuna: response has no 'results' list")
        return [parse_result(r) for r in results if isinstance(r, dict)]
