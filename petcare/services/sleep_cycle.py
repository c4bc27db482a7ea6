# petcare/services/sleep_cycle.py
"""Sleep/wake state machine plus the separate "daytime" predicate used by decay.

The two deliberately use different math and may disagree (for a window that does
not cross midnight ``is_daytime`` is never true); callers pick the one they need.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

import structlog

from petcare.core.clock import minute_of_day
from petcare.models.profiles import SleepWindow

log = structlog.get_logger(__name__)


def is_asleep(window: SleepWindow, hour: int) -> bool:
    start, end = window.start_hour, window.end_hour
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end


def is_daytime(window: SleepWindow, minute: int) -> bool:
    sleep_start = window.start_hour * 60
    sleep_end = window.end_hour * 60
    if window.start_hour > window.end_hour:
        return sleep_end <= minute < sleep_start
    return minute >= sleep_end and minute < sleep_start


class SleepTransition(str, Enum):
    FELL_ASLEEP = "fell_asleep"
    WOKE_UP = "woke_up"


class SleepCycle:
    def __init__(self, window: SleepWindow, asleep: bool = False):
        self.window = window
        self.asleep = asleep

    def check(self, now: datetime) -> Optional[SleepTransition]:
        """Recompute the state; only a change of state yields a transition."""
        should_sleep = is_asleep(self.window, now.hour)
        if should_sleep == self.asleep:
            return None
        self.asleep = should_sleep
        transition = SleepTransition.FELL_ASLEEP if should_sleep else SleepTransition.WOKE_UP
        log.info("sleep_transition", transition=transition.value, hour=now.hour)
        return transition

    def is_daytime(self, now: datetime) -> bool:
        return is_daytime(self.window, minute_of_day(now))
