"""
Injectable time source.

Services ask a Clock for "now" instead of reading the system time, which
keeps issue-date defaults and overdue checks reproducible in tests.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

# Fixed starting instant of DeterministicClock
DEFAULT_TEST_INSTANT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current instant, timezone-aware UTC."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Starts at ``start`` (default DEFAULT_TEST_INSTANT) and stays there until
    ``advance``, ``advance_days`` or ``set_time`` is called.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_INSTANT

    def now(self) -> datetime:
        return self._current

    def set_time(self, instant: datetime) -> None:
        self._current = instant

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._current += timedelta(days=days)
