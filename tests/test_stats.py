import pytest
from pydantic import ValidationError

from petcare.models.stats import Mood, StatVector, clamp, mood_for


def test_construction_clamps_out_of_range_values():
    stats = StatVector(hunger=150, thirst=-5, happiness=100, hygiene=0, energy=42.5)
    assert stats.hunger == 100
    assert stats.thirst == 0
    assert stats.energy == 42.5


def test_apply_deltas_clamps_and_leaves_original_untouched():
    stats = StatVector(hunger=95, energy=5)
    changed = stats.apply_deltas({"hunger": 90, "energy": -20})
    assert changed.hunger == 100
    assert changed.energy == 0
    assert stats.hunger == 95


def test_stat_vector_is_immutable():
    stats = StatVector()
    with pytest.raises(ValidationError):
        stats.hunger = 10


def test_with_changes_rejects_unknown_stat():
    with pytest.raises(ValueError):
        StatVector().with_changes(health=10)


def test_mean():
    assert StatVector(hunger=10, thirst=20, happiness=30, hygiene=40, energy=50).mean() == 30


def test_clamp():
    assert clamp(-1) == 0
    assert clamp(101) == 100
    assert clamp(55.5) == 55.5


@pytest.mark.parametrize("happiness, expected", [
    (100, Mood.HAPPY),
    (80, Mood.HAPPY),
    (79.9, Mood.OKAY),
    (50, Mood.OKAY),
    (49.9, Mood.SAD),
    (20, Mood.SAD),
    (19.9, Mood.GRUMPY),
    (0, Mood.GRUMPY),
])
def test_mood_bands(happiness, expected):
    assert mood_for(StatVector(happiness=happiness)) is expected


def test_sleeping_mood_overrides_happiness():
    assert mood_for(StatVector(happiness=100), asleep=True) is Mood.SLEEPING
