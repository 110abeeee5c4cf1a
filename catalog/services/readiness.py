"""
Readiness Gate.

Combines three independent signals into one readiness flag:
- local_loaded: the local catalog finished loading
- min_time_elapsed: the minimum splash time has passed
- sync_attempted: a remote sync attempt finished (successfully or not)

Signals can arrive in any order, from any thread. Each flips false -> true at
most once, and `ready` becomes (and stays) true only once all three are set.
"""

import logging
import threading
from datetime import date
from typing import Callable, List, Optional

from django.conf import settings

from catalog.preferences import is_birthday

logger = logging.getLogger(__name__)


LOCAL_LOADED = "local_loaded"
MIN_TIME_ELAPSED = "min_time_elapsed"
SYNC_ATTEMPTED = "sync_attempted"

SIGNALS = (LOCAL_LOADED, MIN_TIME_ELAPSED, SYNC_ATTEMPTED)


def splash_duration(birthdate: Optional[date] = None, today: Optional[date] = None) -> float:
    """
    Minimum display time in seconds.

    Normally BREWPAD_SPLASH_SECONDS (2); BREWPAD_BIRTHDAY_SPLASH_SECONDS (3)
    when today is the user's birthday.
    """
    if is_birthday(birthdate, today):
        return float(getattr(settings, "BREWPAD_BIRTHDAY_SPLASH_SECONDS", 3))
    return float(getattr(settings, "BREWPAD_SPLASH_SECONDS", 2))


class ReadinessGate:
    """Three-signal readiness flag with optional ready callbacks."""

    def __init__(self, on_ready: Optional[Callable[[], None]] = None):
        self._lock = threading.Lock()
        self._signals = {name: False for name in SIGNALS}
        self._ready = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._timer: Optional[threading.Timer] = None
        if on_ready is not None:
            self._callbacks.append(on_ready)

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def is_set(self, signal: str) -> bool:
        with self._lock:
            return self._signals[signal]

    def snapshot(self) -> dict:
        with self._lock:
            state = dict(self._signals)
        state["ready"] = self.ready
        return state

    def mark_local_loaded(self) -> None:
        self._set(LOCAL_LOADED)

    def mark_min_time_elapsed(self) -> None:
        self._set(MIN_TIME_ELAPSED)

    def mark_sync_attempted(self) -> None:
        self._set(SYNC_ATTEMPTED)

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback run once when the gate opens (immediately if already open)."""
        with self._lock:
            if not self._ready.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def start_min_timer(self, seconds: float) -> threading.Timer:
        """Start the minimum display timer; it sets min_time_elapsed when it fires."""
        if self._timer is not None:
            return self._timer
        timer = threading.Timer(seconds, self.mark_min_time_elapsed)
        timer.daemon = True
        self._timer = timer
        timer.start()
        logger.debug(f"Readiness timer started ({seconds}s)")
        return timer

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until ready or timeout. Returns the readiness flag."""
        return self._ready.wait(timeout)

    def _set(self, signal: str) -> None:
        with self._lock:
            if self._signals[signal]:
                return
            self._signals[signal] = True
            # Recomputed on every update; opening is idempotent.
            opening = all(self._signals.values()) and not self._ready.is_set()
            if opening:
                self._ready.set()
                callbacks, self._callbacks = self._callbacks, []

        logger.debug(f"Readiness signal set: {signal}")
        if opening:
            logger.info("Catalog ready")
            for callback in callbacks:
                callback()
