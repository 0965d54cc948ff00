from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from jobpulse.core.errors import ErrorKind, ParseError, SourceError
from jobpulse.core.extract import DEFAULT_LOCATION, collapse_ws
from jobpulse.filters.match import filter_jobs
from jobpulse.providers.base import SourceAdapter
from jobpulse.providers.crawler.fetch import BOT_UA, FEED_ACCEPT, Fetcher

log = logging.getLogger(__name__)

TitleParser = Callable[[str], Tuple[str, str | None, str | None]]


def parse_plain_title(title: str) -> Tuple[str, str | None, str | None]:
    return collapse_ws(title), None, None


def parse_at_title(title: str) -> Tuple[str, str | None, str | None]:
    """``"Title at Company"``."""
    head, sep, tail = collapse_ws(title).partition(" at ")
    return head.strip(), (tail.strip() or None) if sep else None, None


def parse_dash_title(title: str) -> Tuple[str, str | None, str | None]:
    """``"Title - Company - Location"``."""
    parts = [p.strip() for p in collapse_ws(title).split(" - ")]
    job_title = parts[0]
    company = parts[1] if len(parts) > 1 and parts[1] else None
    location = parts[2] if len(parts) > 2 and parts[2] else None
    return job_title, company, location


TITLE_PARSERS: Dict[str, TitleParser] = {
    "plain": parse_plain_title,
    "at": parse_at_title,
    "dash": parse_dash_title,
}


@dataclass(frozen=True)
class FeedConfig:
    name: str
    url: str
    title_format: str = "plain"

    @property
    def parser(self) -> TitleParser:
        return TITLE_PARSERS.get(self.title_format, parse_plain_title)


DEFAULT_FEEDS = (
    FeedConfig("JobMail", "https://www.jobmail.co.za/rss/jobs", "at"),
    FeedConfig("Careers24", "https://www.careers24.com/rss/jobs", "plain"),
    FeedConfig("PNet", "https://www.pnet.co.za/rss/jobs", "dash"),
)

# Higher wins when every feed fails
ERROR_SEVERITY = {
    ErrorKind.CONFIGURATION: 0,
    ErrorKind.NETWORK: 1,
    ErrorKind.TIMEOUT: 1,
    ErrorKind.PARSE: 2,
    ErrorKind.RATE_LIMIT: 3,
}


def _text(node: Tag, *names: str) -> str | None:
    for name in names:
        child = node.find(name)
        if isinstance(child, Tag):
            text = child.get_text(" ", strip=True)
            if text:
                return text
    return None


def _link(node: Tag) -> str | None:
    link = node.find("link")
    if not isinstance(link, Tag):
        return None
    # Atom carries the url in href, RSS in the element body
    href = link.get("href")
    if isinstance(href, str) and href.strip():
        return href.strip()
    return link.get_text(strip=True) or None


def parse_feed(xml: str, feed: FeedConfig) -> List[Dict[str, Any]]:
    """Turn an RSS 2.0 or Atom document into raw job records."""
    soup = BeautifulSoup(xml, "xml")
    if soup.find(["rss", "feed", "RDF"]) is None:
        raise ParseError(f"{feed.name}: document is not an RSS/Atom feed")
    records: List[Dict[str, Any]] = []
    for node in soup.find_all(["item", "entry"]):
        raw_title = _text(node, "title")
        if not raw_title:
            continue
        title, company, location = feed.parser(raw_title)
        records.append({
            "title": title,
            "company": company,
            "location": location or DEFAULT_LOCATION,
            "description": _text(node, "description", "summary", "content"),
            "url": _link(node),
            "posted_at": _text(node, "pubDate", "published", "updated", "date"),
            "source": feed.name,
        })
    return records


def feed_from_config(cfg: Mapping[str, Any]) -> FeedConfig:
    return FeedConfig(str(cfg["name"]), str(cfg["url"]), str(cfg.get("title_format", "plain")))


class FeedAggregatorSource(SourceAdapter):
    """Several RSS/Atom feeds merged into one source result."""

    name = "RSS Feeds"
    kind = "feed"
    respects_robots = True
    user_agent = BOT_UA
    notes = "Public RSS feeds published by the job boards for syndication"

    def __init__(
        self,
        feeds: Sequence[FeedConfig] = DEFAULT_FEEDS,
        timeout: float = 8.0,
        fetcher: Fetcher | None = None,
    ):
        super().__init__(timeout)
        self.feeds = tuple(feeds)
        self.fetcher = fetcher or Fetcher(timeout=timeout, ua=BOT_UA)

    def _read_feed(self, feed: FeedConfig) -> List[Dict[str, Any]]:
        xml = self.fetcher.get_text(feed.url, accept=FEED_ACCEPT)
        return parse_feed(xml, feed)

    def _fetch(self, query: str, location: str, limit: int) -> List[Mapping[str, Any]]:
        if not self.feeds:
            return []
        records: List[Dict[str, Any]] = []
        errors: List[SourceError] = []
        with ThreadPoolExecutor(max_workers=len(self.feeds)) as ex:
            futures = [(feed, ex.submit(self._read_feed, feed)) for feed in self.feeds]
            for feed, fut in futures:
                try:
                    items = fut.result()
                except SourceError as exc:
                    log.warning("feed-error feed=%s kind=%s msg=%s", feed.name, exc.kind.value, exc)
                    errors.append(exc)
                    continue
                log.debug("feed-read feed=%s items=%s", feed.name, len(items))
                records.extend(items)
        if errors and len(errors) == len(self.feeds):
            raise max(errors, key=lambda e: ERROR_SEVERITY.get(e.kind, 0))
        return filter_jobs(records, query, location, source=self.name)
