# petcare/services/cooldowns.py
"""Projected time until each care action is next needed or allowed.

Only the numbers are a contract here; formatting like "2h 15m" is left to callers.
"""
from datetime import datetime, timedelta

from pydantic import BaseModel

from petcare.core.clock import to_epoch_ms
from petcare.models.pet import CooldownLedger
from petcare.models.profiles import ActionKind, CareProfile
from petcare.models.stats import StatVector

COOLDOWN_STAMPS = {
    ActionKind.EXERCISE: "last_walk_time",
    ActionKind.BATH: "last_bath_time",
    ActionKind.GROOM: "last_trim_nails_time",
}


def minutes_until_threshold(value: float, threshold: float, rate_minutes_per_percent: float) -> float:
    """Minutes of ambient decay before ``value`` drops to ``threshold``; 0 = needed now."""
    return max(0.0, (value - threshold) * rate_minutes_per_percent)


def cooldown_remaining(cooldown: timedelta, last_completed_ms: int, now: datetime) -> timedelta:
    """``cooldown - elapsed``; zero or negative means the action is allowed again."""
    if not last_completed_ms:
        return timedelta(0)
    elapsed = timedelta(milliseconds=to_epoch_ms(now) - last_completed_ms)
    return cooldown - elapsed


class Countdowns(BaseModel):
    feed_minutes: float
    water_minutes: float
    exercise_minutes: float
    bath_minutes: float
    groom_minutes: float

    def available(self) -> dict:
        return {name.replace("_minutes", ""): value <= 0 for name, value in self.model_dump().items()}


def project_countdowns(profile: CareProfile, stats: StatVector, ledger: CooldownLedger,
                       now: datetime) -> Countdowns:
    rates = profile.decay_rates
    feed = profile.action(ActionKind.FEED)
    water = profile.action(ActionKind.WATER)

    def remaining_minutes(kind: ActionKind) -> float:
        spec = profile.action(kind)
        stamp = getattr(ledger, COOLDOWN_STAMPS[kind])
        return cooldown_remaining(spec.cooldown, stamp, now).total_seconds() / 60

    return Countdowns(
        feed_minutes=minutes_until_threshold(stats.hunger, feed.trigger_threshold, rates.hunger),
        water_minutes=minutes_until_threshold(stats.thirst, water.trigger_threshold, rates.thirst),
        exercise_minutes=remaining_minutes(ActionKind.EXERCISE),
        bath_minutes=remaining_minutes(ActionKind.BATH),
        groom_minutes=remaining_minutes(ActionKind.GROOM),
    )
