from __future__ import annotations
import logging
import threading
import time
from typing import Any, Callable, Mapping
from urllib.parse import urlparse
from urllib import robotparser

import requests

from jobpulse.core.errors import ConfigurationError, NetworkError, ParseError, RateLimitError

log = logging.getLogger(__name__)

# Real browser UA; some SA boards serve an empty shell to obvious bots
BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
BOT_UA = "jobpulse-aggregator/0.3 (+https://example.co.za/crawler-info)"

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
FEED_ACCEPT = "application/rss+xml,application/atom+xml,application/xml;q=0.9,*/*;q=0.8"
JSON_ACCEPT = "application/json"

# Floor between two requests to the same host
DEFAULT_MIN_INTERVAL = 1.0
MAX_CRAWL_DELAY = 30.0


def _retry_after(resp: requests.Response) -> float | None:
    raw = resp.headers.get("Retry-After") if resp.headers else None
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _root(url: str) -> str:
    p = urlparse(url)
    return f"{p.scheme}://{p.netloc}"


def raise_for_source_status(resp: requests.Response, url: str) -> None:
    """Translate HTTP failures into the source error taxonomy."""
    status = resp.status_code
    if status < 400:
        return
    if status == 401:
        raise ConfigurationError(f"HTTP 401 from {url}: credentials rejected")
    if status == 404:
        raise ParseError(f"HTTP 404 from {url}: endpoint moved or removed")
    if status < 500:
        raise RateLimitError(f"HTTP {status} from {url}", retry_after=_retry_after(resp))
    raise NetworkError(f"HTTP {status} from {url}")


class Fetcher:
    """Thin requests wrapper: UA, timeout, robots.txt, pacing and typed failures.

    Requests to one host are spaced at least ``min_interval`` seconds apart,
    or by the robots.txt ``Crawl-delay`` for our user agent when that is
    longer (capped at ``MAX_CRAWL_DELAY``).
    """

    def __init__(
        self,
        timeout: float = 8.0,
        ua: str = BROWSER_UA,
        *,
        respect_robots: bool = True,
        session: requests.Session | None = None,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self.ua = ua
        self.respect_robots = respect_robots
        self.session = session or requests.Session()
        self.min_interval = min_interval
        self._sleep = sleep
        self._monotonic = monotonic
        self._robots: dict[str, robotparser.RobotFileParser | None] = {}
        self._crawl_delays: dict[str, float] = {}
        self._next_slot: dict[str, float] = {}
        self._lock = threading.Lock()

    def _get_robots(self, root: str) -> robotparser.RobotFileParser | None:
        with self._lock:
            if root in self._robots:
                return self._robots[root]
        rp: robotparser.RobotFileParser | None = robotparser.RobotFileParser()
        try:
            resp = self.session.get(f"{root}/robots.txt", headers={"User-Agent": self.ua}, timeout=self.timeout)
            if resp.status_code >= 400:
                # No robots.txt (or unreadable) means no restrictions
                rp = None
            else:
                rp.parse(resp.text.splitlines())
        except requests.RequestException:
            rp = None
        delay = rp.crawl_delay(self.ua) if rp is not None else None
        with self._lock:
            self._robots[root] = rp
            if delay:
                self._crawl_delays[root] = min(float(delay), MAX_CRAWL_DELAY)
        if delay:
            log.info("robots-crawl-delay root=%s delay_s=%s", root, delay)
        return rp

    def allowed(self, url: str) -> bool:
        if not self.respect_robots:
            return True
        rp = self._get_robots(_root(url))
        if rp is None:
            return True
        return bool(rp.can_fetch(self.ua, url))

    def delay_for(self, root: str) -> float:
        with self._lock:
            return max(self.min_interval, self._crawl_delays.get(root, 0.0))

    def _pace(self, root: str) -> None:
        delay = self.delay_for(root)
        if delay <= 0:
            return
        with self._lock:
            now = self._monotonic()
            # Reserve the next slot so concurrent callers queue up behind each other
            slot = max(now, self._next_slot.get(root, now))
            self._next_slot[root] = slot + delay
        wait = slot - now
        if wait > 0:
            log.debug("fetch-pace root=%s wait_s=%.2f", root, wait)
            self._sleep(wait)

    def pacing(self) -> dict:
        with self._lock:
            return {"min_interval_s": self.min_interval, "crawl_delays": dict(self._crawl_delays)}

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        accept: str = HTML_ACCEPT,
    ) -> requests.Response:
        if not self.allowed(url):
            raise ConfigurationError(f"robots.txt disallows {url}")
        self._pace(_root(url))
        merged = {
            "User-Agent": self.ua,
            "Accept": accept,
            "Accept-Language": "en-ZA,en;q=0.8",
            "Accept-Encoding": "gzip, deflate",
        }
        if headers:
            merged.update(headers)
        try:
            resp = self.session.get(url, params=params, headers=merged, timeout=self.timeout)
        except requests.Timeout as exc:
            raise NetworkError(f"timeout after {self.timeout}s fetching {url}") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"{type(exc).__name__} fetching {url}: {exc}") from exc
        raise_for_source_status(resp, url)
        log.debug("fetch url=%s status=%s bytes=%s", url, resp.status_code, len(resp.content or b""))
        return resp

    def get_text(self, url: str, **kwargs: Any) -> str:
        return self.get(url, **kwargs).text or ""

    def get_json(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("accept", JSON_ACCEPT)
        resp = self.get(url, **kwargs)
        try:
            return resp.json()
        except ValueError as exc:
            raise ParseError(f"invalid JSON from {url}") from exc
