# petcare/services/report.py
"""Care report and grading.

Everything here is a pure function of its arguments: nothing is logged, stored
or mutated, so a report can be built at any time from a snapshot of the pet.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel

from petcare.models.pet import EventLogEntry, StatSnapshot
from petcare.models.profiles import ActionKind
from petcare.models.stats import STAT_NAMES, StatVector


class TimeRange(str, Enum):
    DAY = "1"
    WEEK = "7"
    MONTH = "30"
    ALL = "all"

    @classmethod
    def parse(cls, value) -> "TimeRange":
        """Accept a member, its string value or a day count such as ``7``."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())

    @property
    def days(self) -> Optional[int]:
        return None if self is TimeRange.ALL else int(self.value)


GRADE_TABLE = (
    (97, "A+"), (93, "A"), (90, "A-"),
    (87, "B+"), (83, "B"), (80, "B-"),
    (77, "C+"), (73, "C"), (70, "C-"),
    (67, "D+"), (63, "D"), (60, "D-"),
)

CARE_BUCKETS = {
    ActionKind.FEED: "feed",
    ActionKind.WATER: "water",
    ActionKind.EXERCISE: "walk",
    ActionKind.PLAY: "play",
    ActionKind.BATH: "bath",
    ActionKind.VET_VISIT: "vet",
    ActionKind.GROOM: "groom",
}

# Vet visits count as care but not as variety.
VARIETY_BUCKETS = ("feed", "water", "walk", "play", "bath", "groom")
VARIETY_POINTS = 2
VARIETY_CAP = 10
MAX_IMPROVEMENTS = 4

ASSESSMENTS = {
    "hunger": ("Well fed.", "Often hungry. Feed more regularly.", "Could eat sooner sometimes."),
    "thirst": ("Hydration on track.", "Often thirsty. Offer water more often.", "Keep water topped up."),
    "happiness": ("Pet is happy.", "Pet is unhappy. More play and attention needed.",
                  "A bit more playtime would help."),
    "hygiene": ("Clean and groomed.", "Hygiene is low. Bath/groom soon.", "Consider a bath or groom soon."),
    "energy": ("Good energy levels.", "Pet is tired. Rest and then gentle activity.",
               "Balance activity with rest."),
}

TIPS = {
    "hunger": "Feed when hunger drops below ~35%. Dogs need meals ~twice a day.",
    "thirst": "Water should be refilled when thirst is under 70%. Always have fresh water.",
    "happiness": "Play, walks, and attention raise happiness. Neglect and low hunger/hygiene lower it.",
    "hygiene": "Bath when hygiene is low; trim nails or brush per pet type on a schedule.",
    "energy": "Sleep restores energy. Daytime activity drains it; don't over-exercise when low.",
}


class ActionCounts(BaseModel):
    feed: int = 0
    water: int = 0
    walk: int = 0
    play: int = 0
    bath: int = 0
    vet: int = 0
    groom: int = 0

    def variety(self) -> int:
        return sum(1 for bucket in VARIETY_BUCKETS if getattr(self, bucket) > 0)


class StatReport(BaseModel):
    name: str
    current: int
    average: int
    assessment: str
    tip: str


class MoodReport(BaseModel):
    mood: str
    summary: str
    tips: List[str]
    average_happiness: int
    grade: str


class Improvement(BaseModel):
    problem: str
    suggestion: str


class CareReport(BaseModel):
    time_range: TimeRange
    score: int
    grade: str
    counts: ActionCounts
    stats: List[StatReport]
    mood: MoodReport
    improvements: List[Improvement]
    averages: Dict[str, int]
    total_spent: int
    events_in_range: int
    snapshots_in_range: int


def round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def range_start(time_range: TimeRange, now: datetime) -> Optional[datetime]:
    days = time_range.days
    return None if days is None else now - timedelta(days=days)


def filter_events(events: Sequence[EventLogEntry], time_range: TimeRange, now: datetime) -> List[EventLogEntry]:
    start = range_start(time_range, now)
    return [e for e in events if start is None or e.timestamp >= start]


def filter_history(history: Sequence[StatSnapshot], time_range: TimeRange, now: datetime) -> List[StatSnapshot]:
    start = range_start(time_range, now)
    if start is None:
        return list(history)
    start_ms = int(start.timestamp() * 1000)
    return [s for s in history if s.t >= start_ms]


def count_actions(events: Sequence[EventLogEntry]) -> ActionCounts:
    counts = ActionCounts()
    for event in events:
        bucket = CARE_BUCKETS.get(event.kind) if event.kind is not None else None
        if bucket:
            setattr(counts, bucket, getattr(counts, bucket) + 1)
    return counts


def average_stats(history: Sequence[StatSnapshot], current: StatVector) -> Dict[str, int]:
    """Rounded mean of each stat over the snapshots; the live value when there are none."""
    if not history:
        return {name: round_half_up(getattr(current, name)) for name in STAT_NAMES}
    matrix = np.array([[getattr(s.stats, name) for name in STAT_NAMES] for s in history], dtype=float)
    means = matrix.mean(axis=0)
    return {name: round_half_up(value) for name, value in zip(STAT_NAMES, means)}


def grade_for(score: float) -> str:
    for threshold, grade in GRADE_TABLE:
        if score >= threshold:
            return grade
    return "F"


def overall_score(stats: StatVector, counts: ActionCounts) -> int:
    bonus = min(VARIETY_CAP, VARIETY_POINTS * counts.variety())
    return round_half_up(min(100.0, stats.mean() + bonus))


def stat_feedback(name: str, value: float) -> StatReport:
    v = round_half_up(value)
    good, low, middling = ASSESSMENTS.get(name, ("Keep an eye on this.",) * 3)
    assessment = good if v >= 70 else low if v < 40 else middling
    return StatReport(name=name, current=v, average=v, assessment=assessment,
                      tip=TIPS.get(name, "Consistent care keeps stats healthy."))


def mood_feedback(stats: StatVector, counts: ActionCounts) -> Dict[str, object]:
    h = round_half_up(stats.happiness)
    if h >= 80:
        summary = f"{h}% happiness: your pet is in great spirits."
    elif h >= 50:
        summary = f"{h}% happiness: doing okay; more play and care will help."
    else:
        summary = f"{h}% happiness: your pet needs more attention and care."
    tips = []
    if counts.play < 2 and counts.walk < 2:
        tips.append("Try more play sessions or walks to boost mood.")
    if stats.hunger < 50:
        tips.append("Low hunger can make pets unhappy. Feed regularly.")
    if stats.hygiene < 50:
        tips.append("Poor hygiene can affect mood. Schedule baths and grooming.")
    if not tips:
        tips.append("Keep up the variety: feed, water, play, and walks all support happiness.")
    return {"summary": summary, "tips": tips}


def improvements(stats: StatVector, counts: ActionCounts) -> List[Improvement]:
    out = []
    if stats.hunger < 50 and counts.feed < 3:
        out.append(Improvement(
            problem="Hunger has been low and feeding has been infrequent.",
            suggestion="Feed when hunger is below 35% and aim for at least two feeding times per day."))
    if stats.thirst < 50 and counts.water < 3:
        out.append(Improvement(
            problem="Thirst has been low; water wasn't offered often enough.",
            suggestion="Refill water when thirst is under 70% and keep a consistent watering routine."))
    if stats.happiness < 60 and counts.play + counts.walk < 2:
        out.append(Improvement(
            problem="Happiness is low and there's been little play or exercise.",
            suggestion="Add daily play and walks (or flight/runs for other pets) to keep your pet happy."))
    if stats.hygiene < 50 and counts.bath == 0 and counts.groom == 0:
        out.append(Improvement(
            problem="Hygiene is low with no recent bath or grooming.",
            suggestion="Give a bath when hygiene drops and groom (brush/trim) on a regular schedule."))
    if stats.energy < 30:
        out.append(Improvement(
            problem="Energy has been very low.",
            suggestion="Let your pet rest; avoid long activities until energy recovers (e.g. after sleep)."))
    if not out:
        out.append(Improvement(
            problem="No major issues right now.",
            suggestion="Keep up consistent feeding, water, play, and grooming to maintain this level."))
    return out[:MAX_IMPROVEMENTS]


def build_report(stats: StatVector, mood: str, events: Sequence[EventLogEntry], total_spent: int,
                 history: Sequence[StatSnapshot], time_range: TimeRange, now: datetime) -> CareReport:
    in_range_events = filter_events(events, time_range, now)
    in_range_history = filter_history(history, time_range, now)

    counts = count_actions(in_range_events)
    score = overall_score(stats, counts)
    averages = average_stats(in_range_history, stats)

    stat_reports = []
    for name in STAT_NAMES:
        report = stat_feedback(name, getattr(stats, name))
        stat_reports.append(report.model_copy(update={"average": averages[name]}))

    mood_text = mood_feedback(stats, counts)
    return CareReport(
        time_range=time_range,
        score=score,
        grade=grade_for(score),
        counts=counts,
        stats=stat_reports,
        mood=MoodReport(mood=str(mood), summary=mood_text["summary"], tips=mood_text["tips"],
                        average_happiness=averages["happiness"], grade=grade_for(averages["happiness"])),
        improvements=improvements(stats, counts),
        averages=averages,
        total_spent=total_spent,
        events_in_range=len(in_range_events),
        snapshots_in_range=len(in_range_history),
    )
