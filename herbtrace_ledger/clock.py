"""
clock.py - Ledger time source

Timestamps are integer milliseconds since the Unix epoch and strictly
increase within a process, even if the wall clock stalls or steps back.
The time source is injectable so rules that read the calendar (season,
same-day limits) can be tested deterministically.
"""
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional


class LedgerClock:
    def __init__(self, time_source: Optional[Callable[[], float]] = None):
        self._time_source = time_source or time.time
        self._last_ms = 0
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            wall_ms = int(self._time_source() * 1000)
            self._last_ms = max(wall_ms, self._last_ms + 1)
            return self._last_ms


class FixedClock(LedgerClock):
    """Starts at a given UTC instant and advances one millisecond per read."""

    def __init__(self, start: datetime):
        self._base = self._to_epoch(start)
        super().__init__(time_source=lambda: self._base)

    @staticmethod
    def _to_epoch(instant: datetime) -> float:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.timestamp()


def utc_datetime(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def calendar_day(timestamp_ms: int) -> str:
    """UTC calendar date (YYYY-MM-DD) of a ledger timestamp."""
    return utc_datetime(timestamp_ms).strftime("%Y-%m-%d")
