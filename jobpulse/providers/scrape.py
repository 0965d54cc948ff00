"""Generic job-board card scraper.

Each site is parsed with a :class:`ParseStrategy`: ordered groups of card
selectors plus per-field selectors. Every candidate node is classified
into exactly one outcome:

* :class:`CardParsed`    - title and link found, record emitted
* :class:`FieldsMissing` - looks like a card but lacks a link; counted, skipped
* :class:`NotACard`      - no usable title; ignored

The first selector group that yields at least one parsed card wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from jobpulse.core.errors import ParseError
from jobpulse.core.extract import DEFAULT_LOCATION, collapse_ws
from jobpulse.providers.base import SourceAdapter
from jobpulse.providers.crawler.fetch import BROWSER_UA, Fetcher

log = logging.getLogger(__name__)

MAX_CARDS_PER_SITE = 20
MIN_TITLE_CHARS = 5

DEFAULT_CARD_GROUPS = (
    ".job-item, .job-card, .job-listing, .vacancy, .position",
    '[class*="job"], [class*="vacancy"], [class*="position"]',
    "article, .result, .listing",
)


@dataclass(frozen=True)
class CardParsed:
    record: Dict[str, Any]


@dataclass(frozen=True)
class FieldsMissing:
    title: str
    missing: Tuple[str, ...]


@dataclass(frozen=True)
class NotACard:
    reason: str


ParseOutcome = Union[CardParsed, FieldsMissing, NotACard]


@dataclass
class PageParse:
    cards: List[Dict[str, Any]] = field(default_factory=list)
    candidates: int = 0
    fields_missing: int = 0
    not_a_card: int = 0
    selector: str | None = None


def _first_text(el: Tag, selector: str) -> str | None:
    hit = el.select_one(selector)
    if hit is None:
        return None
    return collapse_ws(hit.get_text(" ", strip=True)) or None


@dataclass(frozen=True)
class ParseStrategy:
    card_groups: Sequence[str] = DEFAULT_CARD_GROUPS
    title: str = 'h1, h2, h3, h4, .title, [class*="title"], a[href*="job"]'
    link: str = 'a[href*="job"], a[href*="vacancy"], a[href]'
    snippet: str = ".description, .summary, .excerpt, p"
    company: str = '.company, [class*="company"], .employer'
    location: str = '.location, [class*="location"], .area'
    max_cards: int = MAX_CARDS_PER_SITE

    def classify(self, el: Tag) -> ParseOutcome:
        title_el = el.select_one(self.title)
        if title_el is None:
            return NotACard("no title element")
        title = collapse_ws(title_el.get_text(" ", strip=True))
        if len(title) < MIN_TITLE_CHARS:
            return NotACard("title too short")

        link_el = title_el if title_el.name == "a" else title_el.find("a", href=True) or el.select_one(self.link)
        if link_el is None and el.name == "a":
            link_el = el
        href = link_el.get("href") if link_el is not None else None
        if not isinstance(href, str) or not href.strip() or href.startswith(("#", "javascript:")):
            return FieldsMissing(title, ("url",))

        return CardParsed({
            "title": title,
            "url": href.strip(),
            "snippet": _first_text(el, self.snippet),
            "company": _first_text(el, self.company),
            "location": _first_text(el, self.location) or DEFAULT_LOCATION,
        })

    def parse_page(self, html: str) -> PageParse:
        soup = BeautifulSoup(html, "lxml")
        last = PageParse()
        for selector in self.card_groups:
            page = PageParse(selector=selector)
            for el in soup.select(selector):
                if not isinstance(el, Tag):
                    continue
                page.candidates += 1
                outcome = self.classify(el)
                if isinstance(outcome, CardParsed):
                    page.cards.append(outcome.record)
                    if len(page.cards) >= self.max_cards:
                        break
                elif isinstance(outcome, FieldsMissing):
                    page.fields_missing += 1
                elif isinstance(outcome, NotACard):
                    page.not_a_card += 1
                else:  # pragma: no cover
                    raise TypeError(f"unhandled parse outcome {outcome!r}")
            if page.cards:
                return page
            if page.candidates:
                last = page
        return last


@dataclass(frozen=True)
class ScrapeSite:
    name: str
    url: str
    strategy: ParseStrategy = ParseStrategy()
    query_param: str | None = "q"
    location_param: str | None = "l"


DEFAULT_SITES = (
    ScrapeSite("careers24.com", "https://www.careers24.com/jobs"),
    ScrapeSite("pnet.co.za", "https://www.pnet.co.za/jobs"),
    ScrapeSite("careerjunction.co.za", "https://www.careerjunction.co.za/jobs"),
)


def site_from_config(cfg: Mapping[str, Any]) -> ScrapeSite:
    """Build a site from a sources-file entry (``name``, ``url``, optional selectors)."""
    strategy_kwargs = {}
    if cfg.get("card_groups"):
        strategy_kwargs["card_groups"] = tuple(cfg["card_groups"])
    for key in ("title", "link", "snippet", "company", "location"):
        if cfg.get(f"{key}_selector"):
            strategy_kwargs[key] = cfg[f"{key}_selector"]
    return ScrapeSite(
        name=str(cfg["name"]),
        url=str(cfg["url"]),
        strategy=ParseStrategy(**strategy_kwargs),
        query_param=cfg.get("query_param", "q"),
        location_param=cfg.get("location_param", "l"),
    )


class ScrapeSource(SourceAdapter):
    kind = "scrape"
    respects_robots = True
    user_agent = BROWSER_UA
    notes = "Public listing pages only; first selector group with cards wins; max 20 cards"

    def __init__(self, site: ScrapeSite, timeout: float = 8.0, fetcher: Fetcher | None = None):
        super().__init__(timeout)
        self.site = site
        self.name = site.name
        self.base_url = site.url
        self.fetcher = fetcher or Fetcher(timeout=timeout, ua=BROWSER_UA)

    def _fetch(self, query: str, location: str, limit: int) -> List[Mapping[str, Any]]:
        params = {}
        if self.site.query_param and query:
            params[self.site.query_param] = query
        if self.site.location_param and location:
            params[self.site.location_param] = location
        html = self.fetcher.get_text(self.site.url, params=params or None)
        page = self.site.strategy.parse_page(html)
        log.info(
            "scrape-page source=%s selector=%r candidates=%s parsed=%s fields_missing=%s not_a_card=%s",
            self.name, page.selector, page.candidates, len(page.cards), page.fields_missing, page.not_a_card,
        )
        if not page.cards and page.fields_missing:
            # Cards are there but none yields a link: the markup moved under us
            raise ParseError(f"{self.name}: {page.fields_missing} card(s) found, none parseable")
        for card in page.cards:
            card["source"] = self.name
        return page.cards[:limit]
