"""
Time sources.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:  # pragma: no cover - protocol definition
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock:
    """Settable clock for tests."""

    def __init__(self, now: Optional[datetime] = None):
        self._now = now or datetime.now(timezone.utc).replace(microsecond=0)

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)


def unix_timestamp(clock: Clock) -> int:
    """Current time of ``clock`` in whole seconds since the epoch."""
    return int(clock.now().timestamp())


SYSTEM_CLOCK = SystemClock()
