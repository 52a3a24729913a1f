"""Injectable time source.

``now()`` is naive UTC and is what gets stored in DateTime columns and
compared against due dates. ``local_now()`` is the business wall clock used
to decide what "today" is and which slots are already in the past.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..config import APP_TIMEZONE


class Clock:
    def now(self) -> datetime:
        raise NotImplementedError

    def local_now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.local_now().date()

    def current_time(self) -> str:
        """Local wall-clock time as HH:mm"""
        return self.local_now().strftime("%H:%M")


class SystemClock(Clock):
    def __init__(self, tz_name: str = APP_TIMEZONE):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def local_now(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None)


class FixedClock(Clock):
    """Clock frozen at a given instant (tests, backfills)"""

    def __init__(self, now: datetime, local_now: Optional[datetime] = None):
        self._now = now
        self._local_now = local_now or now

    def now(self) -> datetime:
        return self._now

    def local_now(self) -> datetime:
        return self._local_now

    def advance(self, **kwargs) -> None:
        delta = timedelta(**kwargs)
        self._now += delta
        self._local_now += delta


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency; overridden in tests"""
    return _system_clock
