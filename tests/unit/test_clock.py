"""Tests for the injectable clocks."""

from datetime import UTC, datetime, timedelta

from lending_kernel.domain.clock import (
    DEFAULT_TEST_INSTANT,
    DeterministicClock,
    SystemClock,
)


class TestDeterministicClock:
    def test_starts_at_default_instant(self):
        clock = DeterministicClock()
        assert clock.now() == DEFAULT_TEST_INSTANT
        assert clock.now() == clock.now()

    def test_advance_and_advance_days(self):
        clock = DeterministicClock()
        clock.advance(90)
        clock.advance_days(2)
        assert clock.now() == DEFAULT_TEST_INSTANT + timedelta(days=2, seconds=90)

    def test_set_time_replaces_current_instant(self):
        clock = DeterministicClock()
        clock.advance_days(5)
        target = datetime(2030, 6, 1, tzinfo=UTC)
        clock.set_time(target)
        assert clock.now() == target


def test_system_clock_is_utc_aware():
    now = SystemClock().now()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)
