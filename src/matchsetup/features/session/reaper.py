"""Background expiry for setups that outlive their deadline.

The reaper never runs inside an action: each sweep takes the same per-series
lock as ``submit_step`` so an expiry lands either before or after a
transition, never in the middle of one.
"""

from __future__ import annotations

import logging
import threading

from .service import SessionRegistry

__all__ = ["SessionReaper"]

logger = logging.getLogger(__name__)


class SessionReaper:
    def __init__(self, registry: SessionRegistry, interval: float = 30.0) -> None:
        if interval <= 0:
            raise ValueError("reaper interval must be positive")
        self._registry = registry
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> tuple[list[str], list[str]]:
        """Expire overdue setups, then evict finished ones that are saved."""

        expired = self._registry.expire_overdue()
        evicted = self._registry.evict_finished()
        if expired or evicted:
            logger.info("Reaper sweep: %d expired, %d evicted", len(expired), len(evicted))
        return expired, evicted

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="matchsetup-reaper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.run_once()
            except Exception:
                logger.exception("Reaper sweep failed")
