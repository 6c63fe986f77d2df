"""
Clock sources for access-log timestamps.
"""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


class MonotonicClock:
    """
    UTC wall clock that never goes backwards.

    If the system clock steps back, the last issued timestamp is repeated
    until the wall clock catches up, so the audit order stays non-decreasing.
    """

    def __init__(self, source: Optional[Clock] = None):
        self._source = source or (lambda: datetime.now(timezone.utc))
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            now = self._source()
            if self._last is not None and now < self._last:
                now = self._last
            self._last = now
            return now

    def advance_to(self, floor: datetime) -> None:
        """Never issue a timestamp earlier than ``floor`` from now on."""
        with self._lock:
            if self._last is None or floor > self._last:
                self._last = floor
