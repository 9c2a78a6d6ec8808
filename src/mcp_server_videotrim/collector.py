"""
Garbage Collector

``GarbageCollector.sweep(now)`` is one reclamation pass and takes the
current time as a parameter so it can be tested without timers.
``SweepScheduler`` is the periodic driver that calls it from a daemon
thread. In-use flags and fresh timestamps keep active uploads, pipeline
runs and downloads safe from a concurrent sweep.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .resource_tracker import ResourceTracker
from .settings import VideoTrimSettings
from .storage_types import SweepStats
from .system_utils import log_system_status
from .token_store import DownloadTokenStore

logger = logging.getLogger(__name__)


class GarbageCollector:
    def __init__(
        self,
        tracker: ResourceTracker,
        tokens: DownloadTokenStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._tracker = tracker
        self._tokens = tokens
        self._clock = clock
        self._settings = tracker.settings

    @property
    def settings(self) -> VideoTrimSettings:
        return self._settings

    def sweep(self, now: float | None = None) -> SweepStats:
        """Run one pass: stale files, then idle sessions, then old tokens."""
        if now is None:
            now = self._clock()
        stats = SweepStats()
        retention = self._settings.retention_seconds
        idle_limit = self._settings.heartbeat_timeout_seconds

        for record in self._tracker.list_files():
            if now - record.created_at <= retention:
                continue
            if record.in_use:
                stats.files_skipped_in_use += 1
                continue
            if self._tracker.delete(record.filename, record.category):
                stats.files_deleted += 1
            else:
                stats.files_failed += 1

        for session in self._tracker.list_sessions():
            if now - session.last_activity > idle_limit:
                stats.files_deleted += self._tracker.cleanup_session(session.session_id)
                self._tokens.revoke_session(session.session_id)
                stats.sessions_expired += 1

        stats.tokens_dropped = self._tokens.sweep(now)
        logger.info(f"Sweep finished: {stats.summary()}")
        return stats


class SweepScheduler:
    """Calls ``collector.sweep()`` every ``interval_seconds`` on a daemon thread."""

    def __init__(self, collector: GarbageCollector, interval_seconds: float) -> None:
        self._collector = collector
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="videotrim-sweeper", daemon=True
        )
        self._thread.start()
        logger.info(f"Sweep scheduler started (every {self._interval}s)")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> SweepStats:
        stats = self._collector.sweep()
        log_system_status("GarbageCollector", self._collector.settings.base_dir)
        return stats

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.run_once()
            except Exception as e:  # noqa: BLE001
                # A failed pass must not kill the driver; the next one retries
                logger.exception(f"Sweep failed: {e}")
