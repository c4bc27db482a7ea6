from datetime import datetime, timedelta, timezone

import pytest

from petcare.core.clock import to_epoch_ms
from petcare.models.pet import EventLogEntry, StatSnapshot
from petcare.models.profiles import ActionKind
from petcare.models.stats import StatVector
from petcare.services.report import (
    ActionCounts,
    TimeRange,
    average_stats,
    build_report,
    count_actions,
    grade_for,
    improvements,
    overall_score,
    round_half_up,
)

NOW = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)
LOW = StatVector(hunger=10, thirst=10, happiness=10, hygiene=10, energy=10)


def finished(kind, days_ago=0, message=None):
    return EventLogEntry(message=message or f"Finished {kind.value}", timestamp=NOW - timedelta(days=days_ago),
                         kind=kind)


@pytest.mark.parametrize("score, grade", [
    (100, "A+"), (97, "A+"), (96, "A"), (93, "A"), (92, "A-"), (90, "A-"),
    (87, "B+"), (83, "B"), (80, "B-"), (77, "C+"), (73, "C"), (70, "C-"),
    (67, "D+"), (63, "D"), (60, "D-"), (59, "F"), (18, "F"), (0, "F"),
])
def test_grade_table(score, grade):
    assert grade_for(score) == grade


def test_neglected_pet_with_four_kinds_of_care_scores_eighteen():
    events = [finished(k) for k in (ActionKind.FEED, ActionKind.WATER, ActionKind.PLAY, ActionKind.BATH)]

    report = build_report(LOW, "grumpy", events, 0, [], TimeRange.WEEK, NOW)

    assert report.score == 18
    assert report.grade == "F"
    assert report.counts == ActionCounts(feed=1, water=1, play=1, bath=1)


def test_variety_bonus_is_capped_and_ignores_vet():
    counts = ActionCounts(feed=1, water=1, walk=1, play=1, bath=1, groom=1, vet=4)
    assert counts.variety() == 6
    assert overall_score(StatVector(hunger=95, thirst=95, happiness=95, hygiene=95, energy=95), counts) == 100
    assert overall_score(LOW, ActionCounts(vet=3)) == 10


def test_score_rounds_half_up():
    stats = StatVector(hunger=50, thirst=50, happiness=50, hygiene=50, energy=52.5)
    assert overall_score(stats, ActionCounts()) == 51
    assert round_half_up(50.5) == 51
    assert round_half_up(49.49) == 49


def test_counts_come_from_kind_tags():
    events = [
        finished(ActionKind.EXERCISE),
        finished(ActionKind.EXERCISE),
        finished(ActionKind.VET_VISIT),
        finished(ActionKind.BUY_TOY),
        EventLogEntry(message="Rex is going on a walk 🚶", timestamp=NOW, kind=None),
    ]
    counts = count_actions(events)
    assert counts.walk == 2
    assert counts.vet == 1
    assert counts.feed == 0


def test_untagged_legacy_entries_still_count():
    legacy = EventLogEntry.model_validate({"message": "Finished trimming nails", "timestamp": NOW.isoformat()})
    assert count_actions([legacy]).groom == 1


def test_time_range_filters_events():
    events = [finished(ActionKind.FEED, days_ago=0), finished(ActionKind.WATER, days_ago=3),
              finished(ActionKind.PLAY, days_ago=10)]

    week = build_report(LOW, "sad", events, 0, [], TimeRange.WEEK, NOW)
    day = build_report(LOW, "sad", events, 0, [], TimeRange.DAY, NOW)
    everything = build_report(LOW, "sad", events, 0, [], TimeRange.ALL, NOW)

    assert (week.counts.feed, week.counts.water, week.counts.play) == (1, 1, 0)
    assert day.events_in_range == 1
    assert everything.counts.play == 1


def test_range_boundary_is_inclusive():
    events = [finished(ActionKind.FEED, days_ago=7)]
    assert build_report(LOW, "sad", events, 0, [], TimeRange.WEEK, NOW).counts.feed == 1


def test_averages_over_history():
    history = [
        StatSnapshot(t=to_epoch_ms(NOW - timedelta(hours=2)), stats=StatVector(hunger=40)),
        StatSnapshot(t=to_epoch_ms(NOW - timedelta(hours=1)), stats=StatVector(hunger=61)),
        StatSnapshot(t=to_epoch_ms(NOW - timedelta(days=30)), stats=StatVector(hunger=0)),
    ]
    averages = average_stats(history[:2], LOW)
    assert averages["hunger"] == 51
    assert averages["energy"] == 50

    report = build_report(LOW, "sad", [], 0, history, TimeRange.WEEK, NOW)
    assert report.snapshots_in_range == 2
    assert report.averages["hunger"] == 51


def test_averages_fall_back_to_live_values():
    assert average_stats([], LOW) == {name: 10 for name in ("hunger", "thirst", "happiness", "hygiene", "energy")}


def test_feedback_for_neglected_pet():
    report = build_report(LOW, "grumpy", [], 42, [], TimeRange.ALL, NOW)

    assert report.total_spent == 42
    assert all(s.assessment != "Well fed." for s in report.stats)
    hunger = next(s for s in report.stats if s.name == "hunger")
    assert hunger.assessment == "Often hungry. Feed more regularly."
    assert "needs more attention" in report.mood.summary
    assert len(report.improvements) == 4
    assert report.mood.grade == "F"


def test_healthy_pet_gets_positive_default():
    stats = StatVector(hunger=90, thirst=90, happiness=90, hygiene=90, energy=90)
    found = improvements(stats, ActionCounts())
    assert len(found) == 1
    assert found[0].problem == "No major issues right now."


def test_time_range_values():
    assert TimeRange("7") is TimeRange.WEEK
    assert TimeRange.ALL.days is None
    assert TimeRange.MONTH.days == 30


def test_time_range_parse():
    assert TimeRange.parse(7) is TimeRange.WEEK
    assert TimeRange.parse("ALL") is TimeRange.ALL
    assert TimeRange.parse(TimeRange.DAY) is TimeRange.DAY
    with pytest.raises(ValueError):
        TimeRange.parse(14)
