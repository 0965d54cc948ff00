"""Google Custom Search restricted to South African job boards.

The Custom Search API returns generic web results, so every field other
than the link and title is dug out of the title/snippet text with the
heuristics in :mod:`jobpulse.core.extract`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from jobpulse.core.errors import ConfigurationError, ParseError
from jobpulse.core.extract import (
    DEFAULT_LOCATION,
    clean_title,
    extract_company,
    extract_employment_type,
    extract_keywords,
    extract_location,
    extract_salary,
    province_for,
)
from jobpulse.providers.base import SourceAdapter
from jobpulse.providers.crawler.fetch import BOT_UA, Fetcher

log = logging.getLogger(__name__)

API_URL = "https://www.googleapis.com/customsearch/v1"
MAX_NUM = 10  # API hard limit per request

JOB_BOARD_SITES = (
    "careers24.com",
    "pnet.co.za",
    "jobmail.co.za",
    "indeed.co.za",
    "glassdoor.co.za",
    "jobvine.co.za",
    "joburg.co.za",
)

DOMAIN_NAMES = {
    "careers24.com": "Careers24",
    "pnet.co.za": "PNet",
    "jobmail.co.za": "JobMail",
    "indeed.co.za": "Indeed SA",
    "glassdoor.co.za": "Glassdoor SA",
    "jobvine.co.za": "JobVine",
    "joburg.co.za": "Joburg",
}

BROAD_CITIES = ("Johannesburg", "Cape Town", "Durban", "Pretoria")


def source_for_domain(display_link: str | None) -> str:
    host = (display_link or "").lower().removeprefix("www.")
    return DOMAIN_NAMES.get(host, host or "Google Search")


def location_terms(location: str | None) -> List[str]:
    terms = [DEFAULT_LOCATION, "SA"]
    loc = (location or "").strip()
    if loc and loc.lower() != DEFAULT_LOCATION.lower():
        terms.append(loc)
        province = province_for(loc)
        if province:
            terms.append(province)
    else:
        terms.extend(BROAD_CITIES)
    return terms


def build_query(keywords: str, location: str) -> str:
    sites = " OR ".join(f"site:{s}" for s in JOB_BOARD_SITES)
    kw = f'"{keywords.strip()}"' if keywords and keywords.strip() else "jobs"
    return f"({sites}) AND ({kw}) AND ({' OR '.join(location_terms(location))})"


def parse_item(item: Mapping[str, Any], keywords: str, location: str) -> Dict[str, Any]:
    title = item.get("title") or ""
    snippet = item.get("snippet") or ""
    text = f"{title} {snippet}"
    return {
        "title": clean_title(title),
        "company": extract_company(title, snippet),
        "location": extract_location(text, default=location or DEFAULT_LOCATION),
        "snippet": snippet,
        "url": item.get("link"),
        "source": source_for_domain(item.get("displayLink")),
        "salary": extract_salary(text),
        "employment_type": extract_employment_type(text),
        "keywords": extract_keywords(text, [keywords] if keywords else ()),
    }


class GoogleSearchSource(SourceAdapter):
    name = "Google Search"
    kind = "api"
    user_agent = BOT_UA
    notes = "Official Custom Search API; site-restricted to SA job boards, last 30 days"

    def __init__(
        self,
        api_key: str = "",
        engine_id: str = "",
        timeout: float = 8.0,
        fetcher: Fetcher | None = None,
    ):
        super().__init__(timeout)
        self.api_key = api_key
        self.engine_id = engine_id
        # API endpoints are not crawled, robots.txt does not apply
        self.fetcher = fetcher or Fetcher(timeout=timeout, ua=BOT_UA, respect_robots=False)

    def _fetch(self, query: str, location: str, limit: int) -> List[Mapping[str, Any]]:
        if not self.api_key or not self.engine_id:
            raise ConfigurationError("GOOGLE_SEARCH_API_KEY / GOOGLE_SEARCH_ENGINE_ID not set")
        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": build_query(query, location),
            "safe": "active",
            "num": max(1, min(limit, MAX_NUM)),
            "dateRestrict": "m30",
        }
        data = self.fetcher.get_json(API_URL, params=params)
        if not isinstance(data, dict):
            raise ParseError("Google Search: response is not an object")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise ParseError("Google Search: 'items' is not a list")
        log.debug("google-search q=%r items=%s", params["q"], len(items))
        return [parse_item(it, query, location) for it in items if isinstance(it, dict)]


__all__ = ["GoogleSearchSource", "build_query", "location_terms", "parse_item", "source_for_domain"]
