"""
Session Timer
=============
One-second ticking counter for a test-taking session, driven by a single
daemon thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class SessionTimer:
    """
    Elapsed-seconds counter with idempotent start/stop.

    At most one ticking thread exists at a time. Every start hands the new
    thread its own stop event, so a thread from an earlier run can never
    keep ticking after a restart.
    """

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._elapsed = 0
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    @property
    def elapsed_seconds(self) -> int:
        with self._lock:
            return self._elapsed

    @property
    def running(self) -> bool:
        return self._thread is not None

    def tick(self):
        with self._lock:
            self._elapsed += 1

    def start(self) -> bool:
        """Start ticking. Returns False if already running."""
        if self._thread is not None:
            return False

        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run,
            args=(stop_event,),
            name="mathlab-session-timer",
            daemon=True,
        )
        self._stop_event = stop_event
        self._thread = thread
        thread.start()
        logger.debug("Session timer started")
        return True

    def stop(self) -> bool:
        """Stop ticking. Returns False if already stopped."""
        if self._thread is None:
            return False

        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval + 1)
        self._thread = None
        self._stop_event = None
        logger.debug(f"Session timer stopped at {self.elapsed_seconds}s")
        return True

    def reset(self):
        with self._lock:
            self._elapsed = 0

    def _run(self, stop_event: threading.Event):
        while not stop_event.wait(self.interval):
            self.tick()


def format_elapsed(seconds: int) -> str:
    """Render seconds as ``MM:SS`` (minutes keep growing past 59)."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"
