"""Debounced rebuild scheduling for watch-mode callers.

A file watcher calls `trigger()` on every change. Bursts of changes collapse
into one rebuild once the debounce window passes quietly. Builds never
overlap: a trigger that fires while a build is running is dropped.
"""

import logging
import threading
from typing import Any, Callable, Optional

from .utils.config import DEFAULT_DEBOUNCE_MS

logger = logging.getLogger(__name__)


class RebuildScheduler:
    """Single-flight, debounced wrapper around a build callback."""

    def __init__(
        self,
        build_callback: Callable[[], Any],
        debounce_seconds: float = DEFAULT_DEBOUNCE_MS / 1000.0,
    ):
        """
        Args:
            build_callback: Runs one build; its return value is passed through
            debounce_seconds: Quiet period after the last trigger before building
        """
        self.build_callback = build_callback
        self.debounce_seconds = debounce_seconds
        self.building = False
        self.dropped = 0
        self.last_result: Any = None
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def trigger(self) -> None:
        """(Re)start the debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Cancel a pending trigger. A build already running is not interrupted."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def build_now(self) -> Any:
        """
        Run a build synchronously under the same guard.

        Returns:
            The callback's result, or None when a build was already running.
        """
        with self._lock:
            if self.building:
                self.dropped += 1
                logger.warning("Build already in progress; rebuild request dropped")
                return None
            self.building = True
        try:
            self.last_result = self.build_callback()
            return self.last_result
        finally:
            with self._lock:
                self.building = False

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self.build_now()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None
