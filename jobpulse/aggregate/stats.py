from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable

from jobpulse.core.errors import ErrorKind
from jobpulse.providers.base import SourceAdapter, SourceResult
from jobpulse.providers.crawler.fetch import BOT_UA, DEFAULT_MIN_INTERVAL, MAX_CRAWL_DELAY

log = logging.getLogger(__name__)

BACKOFF_BASE_S = 30.0
BACKOFF_MAX_S = 300.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


@dataclass
class SourceHealth:
    name: str
    last_success: datetime | None = None
    last_error: str | None = None
    last_error_kind: ErrorKind | None = None
    last_error_at: datetime | None = None
    avg_latency_ms: float = 0.0
    calls: int = 0
    success_count: int = 0
    failure_count: int = 0
    consecutive_failures: int = 0
    rate_limit_strikes: int = 0
    degraded: bool = False
    backoff_until: datetime | None = None

    def as_dict(self) -> dict:
        return {
            "last_success": _iso(self.last_success),
            "last_error": self.last_error,
            "last_error_kind": self.last_error_kind.value if self.last_error_kind else None,
            "last_error_at": _iso(self.last_error_at),
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "consecutive_failures": self.consecutive_failures,
            "degraded": self.degraded,
            "backoff_until": _iso(self.backoff_until),
        }


def backoff_seconds(strikes: int) -> float:
    return min(BACKOFF_MAX_S, BACKOFF_BASE_S * (2 ** max(0, strikes - 1)))


class SourceHealthTracker:
    """Per-source outcome history driving degradation flags and backoff.

    Only rate limiting benches a source. Network failures and timeouts are
    counted but the source is tried again on the next call.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self.clock = clock or _utcnow
        self._lock = threading.Lock()
        self._health: Dict[str, SourceHealth] = {}

    def _get(self, name: str) -> SourceHealth:
        h = self._health.get(name)
        if h is None:
            h = self._health[name] = SourceHealth(name)
        return h

    def record(self, result: SourceResult) -> None:
        now = self.clock()
        with self._lock:
            h = self._get(result.source_name)
            h.calls += 1
            # Running mean over every recorded call
            h.avg_latency_ms += (result.elapsed_ms - h.avg_latency_ms) / h.calls

            if result.ok:
                h.success_count += 1
                h.last_success = now
                h.consecutive_failures = 0
                h.rate_limit_strikes = 0
                h.degraded = False
                h.backoff_until = None
                return

            h.last_error = result.error_message
            h.last_error_kind = result.error
            h.last_error_at = now
            if result.error == ErrorKind.CONFIGURATION:
                # Missing credentials are a setup issue, not an outage
                return

            h.failure_count += 1
            h.consecutive_failures += 1
            if result.error == ErrorKind.PARSE:
                h.degraded = True
            elif result.error == ErrorKind.RATE_LIMIT:
                h.rate_limit_strikes += 1
                h.backoff_until = now + timedelta(seconds=backoff_seconds(h.rate_limit_strikes))
                log.info("source-backoff source=%s until=%s", h.name, h.backoff_until.isoformat())

    def backoff_until(self, name: str) -> datetime | None:
        """The end of an active backoff window for ``name``, else None."""
        with self._lock:
            h = self._health.get(name)
            if h is None or h.backoff_until is None:
                return None
            return h.backoff_until if h.backoff_until > self.clock() else None

    def in_backoff(self, name: str) -> bool:
        return self.backoff_until(name) is not None

    def get(self, name: str) -> SourceHealth | None:
        with self._lock:
            return self._health.get(name)

    def snapshot(self) -> Dict[str, dict]:
        with self._lock:
            return {name: h.as_dict() for name, h in self._health.items()}


def compliance_report(sources: Iterable[SourceAdapter]) -> dict:
    """How each source is accessed: kind, robots.txt, user agent, timeout."""
    return {
        "policy": {
            "respects_robots_txt": True,
            "crawler_user_agent": BOT_UA,
            "no_retries_in_request_path": True,
            "honors_crawl_delay": True,
            "min_request_interval_s": DEFAULT_MIN_INTERVAL,
            "max_crawl_delay_s": MAX_CRAWL_DELAY,
            "backoff_max_seconds": BACKOFF_MAX_S,
        },
        "sources": {s.name: s.compliance() for s in sources},
    }
