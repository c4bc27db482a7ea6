# petcare/models/profiles.py
"""Care profiles: the static, per-archetype configuration every component reads.

Behaviour differences between archetypes live here as data; swapping a profile
changes decay, sleep, prices and action effects without touching the services.
"""
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field

from petcare.core.errors import UnknownArchetype
from petcare.models.stats import StatVector

log = structlog.get_logger(__name__)


class Archetype(str, Enum):
    DOG = "dog"
    CAT = "cat"
    PARROT = "parrot"
    RABBIT = "rabbit"

    @classmethod
    def parse(cls, value) -> "Archetype":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise UnknownArchetype(value) from e


def coerce_archetype(value) -> Archetype:
    """Like ``Archetype.parse`` but unknown values fall back to the dog."""
    try:
        return Archetype.parse(value)
    except UnknownArchetype as e:
        log.warning("unknown_archetype_fallback_to_dog", value=str(e.value))
        return Archetype.DOG


class ActionKind(str, Enum):
    FEED = "feed"
    WATER = "water"
    EXERCISE = "exercise"
    PLAY = "play"
    BUY_TOY = "buy_toy"
    BATH = "bath"
    GROOM = "groom"
    VET_VISIT = "vet_visit"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class DecayRates(_Frozen):
    hunger: float  # minutes per 1% loss
    happiness: float  # minutes per 1% loss
    hygiene: float  # hours per 1% loss
    energy: float  # minutes per 1% loss (daytime drain)
    thirst: float  # minutes per 1% loss


class SleepWindow(_Frozen):
    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=0, le=23)

    @property
    def crosses_midnight(self) -> bool:
        return self.start_hour > self.end_hour

    @property
    def total_minutes(self) -> int:
        if self.crosses_midnight:
            return (24 - self.start_hour + self.end_hour) * 60
        return (self.end_hour - self.start_hour) * 60


class SubEventSpec(_Frozen):
    """A chance-based mid-action event, sampled once when the action starts."""

    chance: float = Field(ge=0, le=1)
    at_fraction: float = Field(gt=0, lt=1)
    message: str
    deltas: Dict[str, float]


class ActionSpec(_Frozen):
    label: str
    cost: int = 0
    duration: int  # seconds
    deltas: Dict[str, float] = Field(default_factory=dict)
    need_stat: Optional[str] = None
    trigger_threshold: Optional[float] = None
    min_energy: Optional[float] = None
    cooldown_hours: Optional[float] = None
    cooldown_days: Optional[float] = None
    requires_toy: bool = False
    start_message: Optional[str] = None
    done_message: Optional[str] = None
    sub_events: Tuple[SubEventSpec, ...] = ()

    @property
    def cooldown(self) -> Optional[timedelta]:
        if self.cooldown_hours is None and self.cooldown_days is None:
            return None
        return timedelta(hours=self.cooldown_hours or 0, days=self.cooldown_days or 0)


class FeedRestockPolicy(_Frozen):
    """After ``free_feeds`` lifetime feeds the food runs out and has to be fetched."""

    free_feeds: int = 120
    surcharge: int = 25
    extra_duration: int = 60
    label: str = "Getting food & Feeding"


class EssentialItem(_Frozen):
    id: str
    name: str
    cost: int
    description: str


class CareProfile(_Frozen):
    archetype: Archetype
    display_name: str
    decay_rates: DecayRates
    sleep_window: SleepWindow
    initial_stats: StatVector
    actions: Dict[ActionKind, ActionSpec]
    feed_restock: Optional[FeedRestockPolicy] = None
    daily_routine: bool = False
    toy_break_chance: float = 0.10
    essentials: Tuple[EssentialItem, ...] = ()

    def action(self, kind: ActionKind) -> ActionSpec:
        return self.actions[kind]

    @property
    def essentials_cost(self) -> int:
        return sum(item.cost for item in self.essentials)


BUY_TOY = ActionSpec(
    label="Buying Toy",
    cost=15,
    duration=5 * 60,
    deltas={"happiness": 20},
    start_message="Buying a new toy for {name} 🛒",
    done_message="Got a new toy! 🎾",
)


def _exercise_events(found: str, met: str, messy: str, hygiene_loss: float) -> Tuple[SubEventSpec, ...]:
    loss = hygiene_loss or 5
    return (
        SubEventSpec(chance=0.10, at_fraction=0.4, message=found, deltas={"happiness": 10}),
        SubEventSpec(chance=0.08, at_fraction=0.6, message=met, deltas={"happiness": 15}),
        SubEventSpec(chance=0.12, at_fraction=0.5, message=messy.replace("{loss}", f"{loss:g}"),
                     deltas={"hygiene": -loss}),
    )


def _play_events(hygiene_loss: float) -> Tuple[SubEventSpec, ...]:
    events = [SubEventSpec(chance=0.10, at_fraction=0.4, message="{name} is having great fun! +10 Happiness 🎾",
                           deltas={"happiness": 10})]
    if hygiene_loss > 0:
        events.append(SubEventSpec(chance=0.08, at_fraction=0.6,
                                   message=f"{{name}} got a bit messy. -{hygiene_loss:g} Hygiene 🌪️",
                                   deltas={"hygiene": -hygiene_loss}))
    return tuple(events)


def _feed(cost, deltas, threshold) -> ActionSpec:
    return ActionSpec(label="Feeding", cost=cost, duration=5, deltas=deltas,
                      need_stat="hunger", trigger_threshold=threshold)


def _water(deltas, threshold) -> ActionSpec:
    return ActionSpec(label="Giving Water", cost=0, duration=5, deltas=deltas,
                      need_stat="thirst", trigger_threshold=threshold)


def _exercise(label, noun, deltas, min_energy, cooldown_hours, events) -> ActionSpec:
    return ActionSpec(label=label, cost=0, duration=5, deltas=deltas, min_energy=min_energy,
                      cooldown_hours=cooldown_hours,
                      start_message=f"{{name}} is going on a {noun} 🚶",
                      done_message=f"{{name}} is back from {noun}",
                      sub_events=events)


def _play(deltas, min_energy) -> ActionSpec:
    return ActionSpec(label="Playing", cost=0, duration=5, deltas=deltas, min_energy=min_energy,
                      requires_toy=True, start_message="{name} is playing! 🎾",
                      sub_events=_play_events(abs(deltas.get("hygiene", 0))))


def _bath(label, cost, minutes, deltas, threshold, cooldown_days) -> ActionSpec:
    return ActionSpec(label=label, cost=cost, duration=minutes * 60, deltas=deltas,
                      need_stat="hygiene", trigger_threshold=threshold, cooldown_days=cooldown_days,
                      start_message=f"{{name}} is getting a {label.lower()} 🛁")


def _groom(label, done, cost, minutes, deltas, threshold, cooldown_days) -> ActionSpec:
    return ActionSpec(label=label, cost=cost, duration=minutes * 60, deltas=deltas,
                      need_stat="hygiene", trigger_threshold=threshold, cooldown_days=cooldown_days,
                      start_message=f"{label} {{name}} ✂️",
                      done_message=f"{{name}}'s {done}!")


def _vet(cost, minutes, deltas) -> ActionSpec:
    return ActionSpec(label="Vet Visit", cost=cost, duration=minutes * 60, deltas=deltas,
                      start_message="Taking {name} to the vet 🏥",
                      done_message="{name} got a checkup! All healthy! 🩺")


DOG = CareProfile(
    archetype=Archetype.DOG,
    display_name="Dog",
    decay_rates=DecayRates(hunger=6.75, happiness=45, hygiene=120, energy=10, thirst=3.5),
    sleep_window=SleepWindow(start_hour=22, end_hour=6),
    initial_stats=StatVector(hunger=80, happiness=80, hygiene=90, energy=80, thirst=80),
    feed_restock=FeedRestockPolicy(),
    daily_routine=True,
    actions={
        ActionKind.FEED: _feed(0, {"hunger": 90, "happiness": 5, "energy": 12}, 35),
        ActionKind.WATER: _water({"thirst": 80, "happiness": 3}, 70),
        ActionKind.EXERCISE: _exercise(
            "Walking", "walk",
            {"energy": -20, "happiness": 15, "hygiene": -7, "thirst": -35, "hunger": -8}, 20, 12,
            _exercise_events("{name} found a stick! +10 Happiness 🦴",
                             "{name} met another dog! +15 Happiness 🐕",
                             "{name} stepped in mud! -{loss} Hygiene 💩", 7)),
        ActionKind.PLAY: _play({"happiness": 15, "energy": -20, "hygiene": -3, "thirst": -30, "hunger": -6}, 20),
        ActionKind.BUY_TOY: BUY_TOY,
        ActionKind.BATH: _bath("Bath", 2, 35, {"hygiene": 100, "happiness": -5}, 35, 14),
        ActionKind.GROOM: _groom("Trimming Nails", "nails are trimmed", 10, 30,
                                 {"hygiene": 15, "happiness": -3}, 35, 30),
        ActionKind.VET_VISIT: _vet(100, 45, {"hygiene": 30, "happiness": 10, "energy": 20}),
    },
    essentials=(
        EssentialItem(id="collar", name="Collar", cost=15, description="Essential for walks"),
        EssentialItem(id="harness", name="Harness", cost=25, description="Safe walking gear"),
        EssentialItem(id="bed", name="Dog Bed", cost=50, description="Comfy sleeping spot"),
        EssentialItem(id="bowls", name="Food & Water Bowls", cost=30, description="For meals"),
        EssentialItem(id="toy", name="Dog Toy", cost=15, description="For playtime fun"),
    ),
)

CAT = CareProfile(
    archetype=Archetype.CAT,
    display_name="Cat",
    decay_rates=DecayRates(hunger=8, happiness=50, hygiene=180, energy=12, thirst=4),
    sleep_window=SleepWindow(start_hour=20, end_hour=6),
    initial_stats=StatVector(hunger=75, happiness=75, hygiene=95, energy=70, thirst=75),
    actions={
        ActionKind.FEED: _feed(2, {"hunger": 85, "happiness": 3, "energy": 10}, 40),
        ActionKind.WATER: _water({"thirst": 75, "happiness": 2}, 70),
        ActionKind.EXERCISE: _exercise(
            "Playing", "play session",
            {"energy": -15, "happiness": 20, "hygiene": -2, "thirst": -30, "hunger": -7}, 15, 8,
            _exercise_events("{name} caught a toy! +10 Happiness 🐾",
                             "{name} is having fun! +15 Happiness 😸",
                             "{name} got a bit messy. -{loss} Hygiene", 2)),
        ActionKind.PLAY: _play({"happiness": 20, "energy": -15, "hygiene": -2, "thirst": -25, "hunger": -5}, 15),
        ActionKind.BUY_TOY: BUY_TOY,
        ActionKind.BATH: _bath("Bath", 3, 40, {"hygiene": 100, "happiness": -10}, 30, 21),
        ActionKind.GROOM: _groom("Brushing", "is brushed", 5, 20, {"hygiene": 20, "happiness": 5}, 40, 7),
        ActionKind.VET_VISIT: _vet(120, 45, {"hygiene": 25, "happiness": 5, "energy": 15}),
    },
    essentials=(
        EssentialItem(id="collar", name="Collar", cost=12, description="ID tag holder"),
        EssentialItem(id="bed", name="Cat Bed", cost=40, description="Comfy sleeping spot"),
        EssentialItem(id="bowls", name="Food & Water Bowls", cost=18, description="For meals"),
        EssentialItem(id="toy", name="Cat Toy", cost=12, description="For playtime fun"),
        EssentialItem(id="litter", name="Litter Box", cost=30, description="Essential for cats"),
    ),
)

PARROT = CareProfile(
    archetype=Archetype.PARROT,
    display_name="Parrot",
    decay_rates=DecayRates(hunger=5, happiness=30, hygiene=200, energy=8, thirst=3),
    sleep_window=SleepWindow(start_hour=20, end_hour=7),
    initial_stats=StatVector(hunger=70, happiness=70, hygiene=85, energy=75, thirst=70),
    actions={
        ActionKind.FEED: _feed(4, {"hunger": 80, "happiness": 8, "energy": 15}, 30),
        ActionKind.WATER: _water({"thirst": 75, "happiness": 2}, 65),
        ActionKind.EXERCISE: _exercise(
            "Flying", "flight",
            {"energy": -25, "happiness": 25, "hygiene": -5, "thirst": -40, "hunger": -10}, 25, 6,
            _exercise_events("{name} flew beautifully! +10 Happiness 🦜",
                             "{name} is exploring! +15 Happiness 🌿",
                             "{name} needs a quick preen. -{loss} Hygiene", 5)),
        ActionKind.PLAY: _play({"happiness": 25, "energy": -20, "hygiene": -3, "thirst": -35, "hunger": -8}, 20),
        ActionKind.BUY_TOY: BUY_TOY,
        ActionKind.BATH: _bath("Shower", 1, 15, {"hygiene": 100, "happiness": 10}, 40, 3),
        ActionKind.GROOM: _groom("Trimming Beak/Claws", "beak and claws are trimmed", 15, 25,
                                 {"hygiene": 20, "happiness": -5}, 40, 60),
        ActionKind.VET_VISIT: _vet(150, 50, {"hygiene": 35, "happiness": 15, "energy": 25}),
    },
    essentials=(
        EssentialItem(id="cage", name="Cage", cost=80, description="Safe home"),
        EssentialItem(id="perch", name="Perch", cost=25, description="For resting"),
        EssentialItem(id="bowls", name="Food & Water Bowls", cost=15, description="For meals"),
        EssentialItem(id="toy", name="Bird Toy", cost=18, description="For enrichment"),
        EssentialItem(id="toys", name="Extra Toys", cost=20, description="More enrichment"),
    ),
)

RABBIT = CareProfile(
    archetype=Archetype.RABBIT,
    display_name="Rabbit",
    decay_rates=DecayRates(hunger=4, happiness=40, hygiene=150, energy=9, thirst=3.5),
    sleep_window=SleepWindow(start_hour=22, end_hour=6),
    initial_stats=StatVector(hunger=85, happiness=75, hygiene=80, energy=70, thirst=80),
    actions={
        ActionKind.FEED: _feed(2, {"hunger": 75, "happiness": 5, "energy": 8}, 50),
        ActionKind.WATER: _water({"thirst": 80, "happiness": 2}, 70),
        ActionKind.EXERCISE: _exercise(
            "Running", "run",
            {"energy": -18, "happiness": 18, "hygiene": -8, "thirst": -32, "hunger": -9}, 18, 10,
            _exercise_events("{name} hopped around happily! +10 Happiness 🐰",
                             "{name} is full of energy! +15 Happiness 🥕",
                             "{name} got a bit dirty. -{loss} Hygiene", 8)),
        ActionKind.PLAY: _play({"happiness": 18, "energy": -18, "hygiene": -4, "thirst": -28, "hunger": -7}, 18),
        ActionKind.BUY_TOY: BUY_TOY,
        ActionKind.BATH: _bath("Spot Clean", 1, 20, {"hygiene": 90, "happiness": -8}, 40, 30),
        ActionKind.GROOM: _groom("Brushing", "is brushed", 8, 25, {"hygiene": 25, "happiness": 3}, 40, 14),
        ActionKind.VET_VISIT: _vet(110, 40, {"hygiene": 30, "happiness": 8, "energy": 18}),
    },
    essentials=(
        EssentialItem(id="hutch", name="Hutch", cost=60, description="Safe home"),
        EssentialItem(id="bedding", name="Bedding", cost=20, description="Comfy sleeping"),
        EssentialItem(id="bowls", name="Food & Water Bowls", cost=15, description="For meals"),
        EssentialItem(id="toy", name="Rabbit Toy", cost=12, description="For playtime fun"),
        EssentialItem(id="hay", name="Hay Rack", cost=10, description="For feeding"),
    ),
)

PROFILES: Dict[Archetype, CareProfile] = {
    Archetype.DOG: DOG,
    Archetype.CAT: CAT,
    Archetype.PARROT: PARROT,
    Archetype.RABBIT: RABBIT,
}


def get_profile(archetype) -> CareProfile:
    """Profile for an archetype value; unknown archetypes get the dog profile."""
    return PROFILES[coerce_archetype(archetype)]
