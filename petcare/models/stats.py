# petcare/models/stats.py
from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

STAT_NAMES = ("hunger", "thirst", "happiness", "hygiene", "energy")
STAT_MIN = 0.0
STAT_MAX = 100.0


def clamp(value: float, low: float = STAT_MIN, high: float = STAT_MAX) -> float:
    return max(low, min(high, value))


class StatVector(BaseModel):
    """Five bounded stats. Every construction clamps into [0, 100]; instances are immutable."""

    model_config = ConfigDict(frozen=True)

    hunger: float = Field(default=50, ge=STAT_MIN, le=STAT_MAX)
    thirst: float = Field(default=50, ge=STAT_MIN, le=STAT_MAX)
    happiness: float = Field(default=50, ge=STAT_MIN, le=STAT_MAX)
    hygiene: float = Field(default=50, ge=STAT_MIN, le=STAT_MAX)
    energy: float = Field(default=50, ge=STAT_MIN, le=STAT_MAX)

    @field_validator(*STAT_NAMES, mode="before")
    @classmethod
    def _clamp(cls, value):
        return clamp(float(value))

    def with_changes(self, **values: float) -> "StatVector":
        unknown = set(values) - set(STAT_NAMES)
        if unknown:
            raise ValueError(f"Unknown stats: {sorted(unknown)}")
        return StatVector(**{**self.model_dump(), **values})

    def apply_deltas(self, deltas: Mapping[str, float]) -> "StatVector":
        """Add signed deltas to the matching stats, clamping the result."""
        return self.with_changes(**{name: getattr(self, name) + delta for name, delta in deltas.items()})

    def mean(self) -> float:
        return sum(getattr(self, name) for name in STAT_NAMES) / len(STAT_NAMES)


class Mood(str, Enum):
    HAPPY = "happy"
    OKAY = "okay"
    SAD = "sad"
    GRUMPY = "grumpy"
    NEUTRAL = "neutral"  # never evaluated yet
    SLEEPING = "sleeping"


def mood_for(stats: StatVector, asleep: bool = False) -> Mood:
    if asleep:
        return Mood.SLEEPING
    if stats.happiness >= 80:
        return Mood.HAPPY
    if stats.happiness >= 50:
        return Mood.OKAY
    if stats.happiness >= 20:
        return Mood.SAD
    return Mood.GRUMPY
