from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from jobpulse.cache.freshness import REFRESH_BATCH, FreshnessCache

if TYPE_CHECKING:
    from jobpulse.providers.base import SourceAdapter

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshRequest:
    source: "SourceAdapter | None" = None
    query: str = ""
    location: str = ""
    count: int = REFRESH_BATCH


_STOP = object()


class RefreshWorker:
    """Daemon thread that drains queued cache refreshes one at a time.

    Request handlers call :meth:`submit` and return immediately; the work
    outlives the request. ``stop()`` lets queued work finish first.
    """

    def __init__(self, cache: FreshnessCache, *, maxsize: int = 16):
        self.cache = cache
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self.completed = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._thread = threading.Thread(target=self._run, name="jobpulse-refresh", daemon=True)
            self._thread.start()
        log.info("refresh-worker started")

    def submit(self, request: RefreshRequest | None = None) -> bool:
        """Queue a refresh; False when the worker is stopped or the queue is full."""
        if not self.running:
            log.warning("refresh-worker not running; request dropped")
            return False
        try:
            self._queue.put_nowait(request or RefreshRequest())
        except queue.Full:
            log.warning("refresh-worker queue full; request dropped")
            return False
        return True

    def join(self, timeout: float | None = None) -> None:
        """Block until every queued request has been processed."""
        if timeout is None:
            self._queue.join()
            return
        done = threading.Event()
        threading.Thread(target=lambda: (self._queue.join(), done.set()), daemon=True).start()
        done.wait(timeout)

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            thread = self._thread
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join(timeout)
        with self._lock:
            self._thread = None
        log.info("refresh-worker stopped completed=%s failed=%s", self.completed, self.failed)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._process(item)
            finally:
                self._queue.task_done()

    def _process(self, req: RefreshRequest) -> None:
        try:
            stored = self.cache.refresh(req.source, query=req.query, location=req.location, count=req.count)
        except Exception:
            self.failed += 1
            log.exception("refresh-failed source=%s", req.source.name if req.source else "synthetic")
            return
        self.completed += 1
        log.info("refresh-done source=%s stored=%s", req.source.name if req.source else "synthetic", stored)
