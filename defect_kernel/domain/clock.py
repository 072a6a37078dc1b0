"""
Clock -- injectable time source.

Engine code never calls ``datetime.now()`` or ``date.today()`` directly.
Defect numbers and the order ``qty_update_date`` stamp are both derived from
the plant's calendar day, so the clock carries the plant time zone and
exposes ``today()`` in that zone.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime`` in the plant zone.
        - ``today()`` is the plant calendar day of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self) -> date:
        """Plant calendar day."""
        return self.now().date()

    def today_yyyymmdd(self) -> str:
        """Plant calendar day as YYYYMMDD, the format stored on rows."""
        return self.today().strftime("%Y%m%d")


class SystemClock(Clock):
    """Production clock reading system time in the plant time zone."""

    def __init__(self, tz: tzinfo | None = None):
        self._tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``advance()`` or ``set_time()``.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._advance_seconds += seconds
