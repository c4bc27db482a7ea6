# petcare/services/decay.py
"""Ambient stat decay.

Rates are "minutes per 1 % loss" (hours for hygiene); a tick of ``minutes``
length removes ``minutes / rate`` points. The reference 30 s tick is 0.5 minutes.
"""
from datetime import datetime
from typing import Optional

import structlog

from petcare.models.profiles import CareProfile, DecayRates, SleepWindow
from petcare.models.stats import StatVector

log = structlog.get_logger(__name__)

REFERENCE_TICK_MINUTES = 0.5
LOW_HUNGER = 25
LOW_HYGIENE = 40
LOW_STAT_MULTIPLIER = 1.5
IDLE_ENERGY_REGEN_CAP = 2.0

SLEEP_HUNGER_FLOOR = 20.0
SLEEP_THIRST_FLOOR = 15.0
SLEEP_HAPPINESS_FACTOR = 0.3
SLEEP_HYGIENE_FACTOR = 0.25
SLEEP_ENERGY_REGEN = 0.8  # per reference tick


def hunger_loss(rates: DecayRates, minutes: float) -> float:
    return minutes / rates.hunger


def happiness_loss(rates: DecayRates, minutes: float) -> float:
    return minutes / rates.happiness


def hygiene_loss(rates: DecayRates, minutes: float) -> float:
    return minutes / (2 * rates.hygiene)


def thirst_loss(rates: DecayRates, minutes: float) -> float:
    return minutes / rates.thirst


def energy_drain(rates: DecayRates, minutes: float) -> float:
    return minutes / rates.energy


def happiness_multiplier(stats: StatVector) -> float:
    """A hungry or dirty pet loses happiness faster; the two effects compound."""
    multiplier = 1.0
    if stats.hunger < LOW_HUNGER:
        multiplier *= LOW_STAT_MULTIPLIER
    if stats.hygiene < LOW_HYGIENE:
        multiplier *= LOW_STAT_MULTIPLIER
    return multiplier


def awake_decay(stats: StatVector, rates: DecayRates, minutes: float, *,
                daytime: bool, minutes_since_last_tick: float) -> StatVector:
    if daytime:
        energy_change = -energy_drain(rates, minutes)
    else:
        energy_change = min(IDLE_ENERGY_REGEN_CAP, minutes_since_last_tick / 10)
    return stats.with_changes(
        hunger=stats.hunger - hunger_loss(rates, minutes),
        happiness=stats.happiness - happiness_loss(rates, minutes) * happiness_multiplier(stats),
        hygiene=stats.hygiene - hygiene_loss(rates, minutes),
        thirst=stats.thirst - thirst_loss(rates, minutes),
        energy=stats.energy + energy_change,
    )


def _toward_floor(value: float, floor: float, total_minutes: float, minutes: float) -> float:
    # Linear slide so that the floor is reached by the end of the sleep window.
    if value <= floor:
        return value
    rate = (value - floor) / total_minutes
    return max(floor, value - rate * minutes)


def asleep_decay(stats: StatVector, rates: DecayRates, window: SleepWindow, minutes: float) -> StatVector:
    total = window.total_minutes or 1
    return stats.with_changes(
        hunger=_toward_floor(stats.hunger, SLEEP_HUNGER_FLOOR, total, minutes),
        happiness=stats.happiness - happiness_loss(rates, minutes) * SLEEP_HAPPINESS_FACTOR,
        hygiene=stats.hygiene - hygiene_loss(rates, minutes) * SLEEP_HYGIENE_FACTOR,
        energy=stats.energy + SLEEP_ENERGY_REGEN * (minutes / REFERENCE_TICK_MINUTES),
        thirst=_toward_floor(stats.thirst, SLEEP_THIRST_FLOOR, total, minutes),
    )


class DecayClock:
    """Applies one decay step per tick unless a care action is in progress."""

    def __init__(self, profile: CareProfile, tick_seconds: float = 30, last_ambient_tick: Optional[datetime] = None):
        self.profile = profile
        self.tick_minutes = tick_seconds / 60
        self.last_ambient_tick = last_ambient_tick

    def tick(self, stats: StatVector, now: datetime, *, asleep: bool, daytime: bool,
             action_active: bool) -> Optional[StatVector]:
        """Return the decayed stats, or None when decay is suspended."""
        if action_active:
            log.debug("decay_suspended_action_active")
            return None
        if asleep:
            return asleep_decay(stats, self.profile.decay_rates, self.profile.sleep_window, self.tick_minutes)

        if self.last_ambient_tick is None:
            self.last_ambient_tick = now
        minutes_since = max(0.0, (now - self.last_ambient_tick).total_seconds() / 60)
        self.last_ambient_tick = now
        return awake_decay(stats, self.profile.decay_rates, self.tick_minutes,
                           daytime=daytime, minutes_since_last_tick=minutes_since)
