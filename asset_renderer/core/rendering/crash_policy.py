"""
Crash Classifier & Circuit Breaker
==================================

Decides whether a failure came from the browser process dying and keeps a
rolling crash count. Crashes clustering inside the window produce a
``FatalEscalation`` for the supervisor instead of looping on recovery.
"""

from typing import Any, Callable, Optional
import threading
import time

from asset_renderer.config.logging import get_logger
from asset_renderer.models.schemas import CrashCounterSnapshot
from .browser import BrowserFailure, BrowserFailureReason
from .errors import FatalEscalation

logger = get_logger(__name__)


def classify(error: BaseException) -> bool:
    """Return True if ``error`` is a browser crash eligible for recovery."""
    return isinstance(error, BrowserFailure) and error.reason != BrowserFailureReason.OTHER


class CrashCircuitBreaker:
    """Rolling crash counter with a fatal threshold.

    Safe to update from several threads; every mutation holds ``_lock``.
    """

    def __init__(
        self,
        threshold: int = 3,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.threshold = threshold
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._window_started_at: Optional[float] = None
        self._total_crashes = 0
        self.logger: Any = logger.bind(component="circuit_breaker")

    @property
    def count(self) -> int:
        return self._count

    @property
    def total_crashes(self) -> int:
        return self._total_crashes

    def record_crash(self, error: Optional[BaseException] = None) -> Optional[FatalEscalation]:
        """Count a crash; return an escalation once the threshold is reached."""
        now = self._clock()
        with self._lock:
            if self._window_started_at is None or now - self._window_started_at > self.window_seconds:
                self._count = 0
            if self._count == 0:
                self._window_started_at = now
            self._count += 1
            self._total_crashes += 1
            count = self._count
            window_started_at = self._window_started_at

        self.logger.warning(
            "Browser crash recorded",
            count=count,
            threshold=self.threshold,
            error=str(error) if error else None,
        )

        if count < self.threshold:
            return None

        escalation = FatalEscalation(
            crash_count=count,
            threshold=self.threshold,
            window_seconds=self.window_seconds,
            window_started_at=window_started_at,
            last_error=str(error) if error else "",
        )
        self.logger.critical(
            "Crash threshold exceeded",
            count=count,
            window_seconds=self.window_seconds,
        )
        return escalation

    def record_success(self) -> None:
        """A clean render proves the browser healthy again."""
        with self._lock:
            if self._count:
                self.logger.info("Crash count reset after successful render", previous=self._count)
            self._count = 0
            self._window_started_at = None

    def snapshot(self) -> CrashCounterSnapshot:
        with self._lock:
            return CrashCounterSnapshot(
                count=self._count,
                window_started_at=self._window_started_at,
                total_crashes=self._total_crashes,
            )
