from __future__ import annotations

import logging
import time
from typing import Any, Iterable, List, Mapping, Protocol

from pydantic import BaseModel

from jobpulse.core.errors import ErrorKind, ParseError, SourceError
from jobpulse.core.normalize import JobPosting, normalize_job
from jobpulse.providers.crawler.fetch import Fetcher

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0


class SourceResult(BaseModel):
    source_name: str
    jobs: List[JobPosting] = []
    error: ErrorKind | None = None
    error_message: str | None = None
    elapsed_ms: int = 0
    synthetic: bool = False

    @property
    def ok(self) -> bool:
        # An empty successful result is still a success
        return self.error is None


class Source(Protocol):
    name: str
    kind: str

    def fetch(self, query: str, location: str, limit: int) -> SourceResult: ...


class SourceAdapter:
    """Base class for every job source.

    Subclasses implement ``_fetch`` and may raise any :class:`SourceError`.
    :meth:`fetch` is the adapter boundary: nothing raised inside ``_fetch``
    escapes it, failures come back as a :class:`SourceResult` with ``error`` set.
    """

    name = "source"
    kind = "scrape"
    base_url: str | None = None
    respects_robots = False
    user_agent: str | None = None
    notes = ""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def _fetch(self, query: str, location: str, limit: int) -> List[Mapping[str, Any]]:
        raise NotImplementedError

    def normalize(self, records: Iterable[Mapping[str, Any]], limit: int | None = None) -> List[JobPosting]:
        """Normalize raw records, skipping the ones without a title."""
        jobs: List[JobPosting] = []
        skipped = 0
        for raw in records:
            try:
                jobs.append(normalize_job(raw, self.name, base_url=self.base_url))
            except ParseError:
                skipped += 1
                continue
            if limit is not None and len(jobs) >= limit:
                break
        if skipped:
            log.debug("normalize-skip source=%s skipped=%s", self.name, skipped)
        return jobs

    def fetch(self, query: str, location: str, limit: int) -> SourceResult:
        start = time.monotonic()
        error: ErrorKind | None = None
        message: str | None = None
        jobs: List[JobPosting] = []
        try:
            jobs = self.normalize(self._fetch(query, location, limit), limit)
        except SourceError as exc:
            error, message = exc.kind, str(exc)
        except Exception as exc:
            # Anything unexpected means the payload was not what we expected
            log.exception("source-unexpected source=%s", self.name)
            error, message = ErrorKind.PARSE, f"{type(exc).__name__}: {exc}"
        elapsed_ms = int((time.monotonic() - start) * 1000)
        log.info(
            "source-result source=%s status=%s count=%s elapsed_ms=%s",
            self.name, error.value if error else "ok", len(jobs), elapsed_ms,
        )
        if message:
            log.warning("source-error source=%s kind=%s msg=%s", self.name, error.value, message)
        return SourceResult(
            source_name=self.name,
            jobs=jobs,
            error=error,
            error_message=message,
            elapsed_ms=elapsed_ms,
            synthetic=self.kind == "synthetic",
        )

    def compliance(self) -> dict:
        out = {
            "kind": self.kind,
            "respects_robots_txt": self.respects_robots,
            "user_agent": self.user_agent,
            "timeout_s": self.timeout,
            "notes": self.notes,
        }
        fetcher = getattr(self, "fetcher", None)
        if isinstance(fetcher, Fetcher):
            out["pacing"] = fetcher.pacing()
        return out
