# petcare/core/clock.py
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

log = structlog.get_logger(__name__)


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        log.warning("unknown_timezone_using_local", timezone=name)
        return None


class SystemClock:
    """Wall clock. Hour-of-day math uses the configured zone, or local time."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now().astimezone()
        return datetime.now(self.tz)


class ManualClock:
    """Clock that only moves when told to; used by tests and the simulator."""

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._now.tzinfo

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        if moment < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = moment

    def advance(self, seconds: float) -> datetime:
        self.set(self._now + timedelta(seconds=seconds))
        return self._now
