from datetime import datetime, timedelta, timezone

import pytest

from petcare.core.errors import IdentityMismatch
from petcare.models.pet import PetRecord
from petcare.models.profiles import CAT, DOG, Archetype
from petcare.models.stats import StatVector
from petcare.services.catchup import catch_up, check_identity, fresh_state, initial_stats, is_night, restore

FULL = StatVector(hunger=80, thirst=80, happiness=80, hygiene=90, energy=80)
MORNING = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)
LATE = datetime(2024, 3, 4, 23, 0, tzinfo=timezone.utc)


def test_night_band():
    assert is_night(22) and is_night(0) and is_night(5)
    assert not is_night(6) and not is_night(21)


def test_daytime_catch_up_uses_awake_rates():
    stats = catch_up(FULL, DOG, 60, MORNING)
    assert stats.hunger == pytest.approx(80 - 60 / 6.75)
    assert stats.thirst == pytest.approx(80 - 60 / 3.5)
    assert stats.happiness == pytest.approx(80 - 60 / 45)
    assert stats.hygiene == pytest.approx(90 - 60 / 240)
    assert stats.energy == pytest.approx(74)


def test_night_catch_up_slows_hunger_and_happiness_only():
    stats = catch_up(FULL, DOG, 60, LATE)
    assert stats.hunger == pytest.approx(80 - 60 / 6.75 * 0.2)
    assert stats.happiness == pytest.approx(80 - 60 / 45 * 0.2)
    assert stats.thirst == pytest.approx(80 - 60 / 3.5)
    assert stats.energy == pytest.approx(74)


def test_catch_up_multiplier_comes_from_starting_stats():
    stats = catch_up(FULL.with_changes(hunger=20), DOG, 45, MORNING)
    assert stats.happiness == pytest.approx(80 - 1.5)


def test_long_absence_clamps_at_zero():
    stats = catch_up(FULL, DOG, 7 * 24 * 60, MORNING)
    assert stats.hunger == 0
    assert stats.thirst == 0
    assert stats.energy == 0


def test_negative_elapsed_is_no_change():
    assert catch_up(FULL, DOG, -30, MORNING) == FULL


def test_dog_initial_stats_follow_time_of_day():
    stats = initial_stats(DOG, MORNING)
    assert stats.hunger == 63
    assert stats.energy == 70
    assert stats.hygiene == 90


def test_other_archetypes_use_static_initial_stats():
    assert initial_stats(CAT, MORNING) == CAT.initial_stats


def saved(name="Rex", minutes_ago=60, profile=DOG):
    state = fresh_state(profile, name, MORNING - timedelta(minutes=minutes_ago))
    return PetRecord.from_state(state, MORNING - timedelta(minutes=minutes_ago))


def test_identity_check():
    record = saved()
    check_identity(record, Archetype.DOG, "Rex")
    with pytest.raises(IdentityMismatch):
        check_identity(record, Archetype.DOG, "Max")
    with pytest.raises(IdentityMismatch):
        check_identity(record, Archetype.CAT, "Rex")


def test_restore_without_record_is_fresh():
    restored = restore(None, DOG, "Rex", MORNING)
    assert restored.fresh
    assert restored.state.pet.name == "Rex"
    assert len(restored.state.history) == 1


def test_restore_other_pet_is_fresh():
    restored = restore(saved(name="Max"), DOG, "Rex", MORNING)
    assert restored.fresh
    assert restored.state.pet.name == "Rex"


def test_restore_applies_catch_up():
    record = saved(minutes_ago=60)
    restored = restore(record, DOG, "Rex", MORNING)

    assert not restored.fresh
    assert restored.elapsed_minutes == pytest.approx(60)
    expected = catch_up(record.pet.stats, DOG, 60, MORNING)
    assert restored.state.pet.stats == expected
