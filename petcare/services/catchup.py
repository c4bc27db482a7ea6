# petcare/services/catchup.py
"""Offline catch-up: one bulk decay step for the time the app was closed.

Uses the awake formulas over the whole gap. If the clock *now* reads
22:00-06:00, hunger and happiness decay at 20 % for the whole gap; this looks
only at the current hour, not at how much of the gap was actually night.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from petcare.core.errors import IdentityMismatch
from petcare.models.pet import CareState, PetRecord, PetState
from petcare.models.profiles import Archetype, CareProfile
from petcare.models.stats import StatVector, mood_for
from petcare.services import decay

log = structlog.get_logger(__name__)

NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6
NIGHT_FACTOR = 0.2


def is_night(hour: int) -> bool:
    return hour >= NIGHT_START_HOUR or hour < NIGHT_END_HOUR


def catch_up(stats: StatVector, profile: CareProfile, elapsed_minutes: float, now: datetime) -> StatVector:
    rates = profile.decay_rates
    minutes = max(0.0, elapsed_minutes)
    night = NIGHT_FACTOR if is_night(now.hour) else 1.0
    return stats.with_changes(
        hunger=stats.hunger - decay.hunger_loss(rates, minutes) * night,
        happiness=stats.happiness
        - decay.happiness_loss(rates, minutes) * decay.happiness_multiplier(stats) * night,
        hygiene=stats.hygiene - decay.hygiene_loss(rates, minutes),
        thirst=stats.thirst - decay.thirst_loss(rates, minutes),
        energy=stats.energy - decay.energy_drain(rates, minutes),
    )


def check_identity(record: PetRecord, archetype: Archetype, name: str) -> None:
    if record.pet.name != name or record.pet.type != archetype.value:
        raise IdentityMismatch(expected=f"{archetype.value}:{name}",
                               found=f"{record.pet.type}:{record.pet.name}")


@dataclass
class Restored:
    state: CareState
    elapsed_minutes: Optional[float] = None  # None for a fresh pet

    @property
    def fresh(self) -> bool:
        return self.elapsed_minutes is None


def initial_stats(profile: CareProfile, now: datetime) -> StatVector:
    """Stats for a newly adopted pet; the dog follows a feeding/sleeping day routine."""
    if not profile.daily_routine:
        return profile.initial_stats

    minute = now.hour * 60 + now.minute
    six_am, seven_am, eight_am = 360, 420, 480
    seven_pm, ten_pm = 1140, 1320
    meal_rate = profile.decay_rates.hunger

    if minute < six_am:
        hunger = 25.0
    elif minute < eight_am:
        hunger = max(20.0, 25 - (minute - six_am) / (eight_am - six_am) * 5)
    elif minute < seven_pm:
        hunger = max(0.0, 90 - (minute - seven_am) / meal_rate)
    elif minute < ten_pm:
        hunger = max(0.0, 90 - (minute - seven_pm) / meal_rate)
    else:
        at_bedtime = 90 - (ten_pm - seven_pm) / meal_rate
        hunger = max(20.0, at_bedtime - (minute - ten_pm) * (at_bedtime - 20) / 480)

    if minute >= ten_pm or minute < six_am:
        into_sleep = minute - ten_pm if minute >= ten_pm else minute + (1440 - ten_pm)
        energy = min(85.0, 25 + into_sleep * 60 / 480)
    else:
        energy = max(25.0, 85 - (minute - six_am) * 60 / 960)

    return profile.initial_stats.with_changes(hunger=round(hunger), energy=round(energy))


def fresh_state(profile: CareProfile, name: str, now: datetime) -> CareState:
    stats = initial_stats(profile, now)
    state = CareState(pet=PetState(archetype=profile.archetype, name=name, stats=stats, mood=mood_for(stats)))
    state.history.record(now, stats)
    return state


def restore(record: Optional[PetRecord], profile: CareProfile, name: str, now: datetime) -> Restored:
    """Rebuild the pet from its saved record, or start fresh if there is none or it is someone else."""
    if record is None:
        log.info("no_saved_pet_starting_fresh", archetype=profile.archetype.value, name=name)
        return Restored(state=fresh_state(profile, name, now))
    try:
        check_identity(record, profile.archetype, name)
    except IdentityMismatch as e:
        log.warning("saved_pet_identity_mismatch_discarding", expected=e.expected, found=e.found)
        return Restored(state=fresh_state(profile, name, now))

    elapsed_minutes = max(0.0, (now - record.last_saved).total_seconds() / 60)
    state = record.to_state(profile.archetype)
    stats = catch_up(state.pet.stats, profile, elapsed_minutes, now)
    state.set_stats(stats, now, asleep=False)
    log.info("saved_pet_restored", name=name, elapsed_minutes=round(elapsed_minutes, 1),
             stats=stats.model_dump())
    return Restored(state=state, elapsed_minutes=elapsed_minutes)
