# petcare/models/pet.py
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from petcare.core.clock import to_epoch_ms
from petcare.models.profiles import ActionKind, Archetype
from petcare.models.stats import Mood, StatVector, mood_for

EVENT_LOG_LIMIT = 20
STAT_HISTORY_LIMIT = 500


class PetState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    archetype: Archetype = Field(frozen=True)
    name: str = Field(frozen=True, min_length=1)
    stats: StatVector
    mood: Mood = Mood.NEUTRAL


class CooldownLedger(BaseModel):
    """Last-completion stamps (epoch ms, 0 = never) plus purchase and feed counters."""

    last_walk_time: int = 0
    last_bath_time: int = 0
    last_trim_nails_time: int = 0
    feed_count: int = 0
    has_toy: bool = False
    initial_purchases: Dict[str, bool] = Field(default_factory=dict)

    def stamp(self, field_name: str, moment: datetime) -> None:
        # Stamps never move backwards.
        value = max(getattr(self, field_name), to_epoch_ms(moment))
        setattr(self, field_name, value)

    @property
    def essentials_bought(self) -> bool:
        return bool(self.initial_purchases) and all(self.initial_purchases.values())


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Records written before entries carried a kind are classified by their text.
# One message may mention several actions; the first match wins.
LEGACY_KEYWORDS = (
    (ActionKind.FEED, ("feeding", "feed")),
    (ActionKind.WATER, ("water",)),
    (ActionKind.EXERCISE, ("walk", "run", "fly", "exercise")),
    (ActionKind.PLAY, ("play",)),
    (ActionKind.BATH, ("bath", "shower", "spot clean")),
    (ActionKind.VET_VISIT, ("vet", "checkup")),
    (ActionKind.GROOM, ("trim", "brush", "groom", "nail", "beak")),
)


def classify_message(message: str) -> Optional[ActionKind]:
    text = message.lower()
    for kind, keywords in LEGACY_KEYWORDS:
        if any(word in text for word in keywords):
            return kind
    return None


class EventLogEntry(BaseModel):
    message: str
    timestamp: datetime
    kind: Optional[ActionKind] = None  # set on the completion entry of a care action

    @field_validator("timestamp")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return _assume_utc(value)

    @model_validator(mode="after")
    def _classify_legacy(self):
        if "kind" not in self.model_fields_set:
            self.kind = classify_message(self.message)
        return self


class StatSnapshot(BaseModel):
    t: int  # epoch ms
    stats: StatVector


class EventLog:
    """Newest-first ring buffer of event entries."""

    def __init__(self, entries: Iterable[EventLogEntry] = (), limit: int = EVENT_LOG_LIMIT):
        self._entries: Deque[EventLogEntry] = deque(maxlen=limit)
        # entries arrive newest first; keep that order
        for entry in list(entries)[:limit]:
            self._entries.append(entry)

    def add(self, message: str, timestamp: datetime, kind: Optional[ActionKind] = None) -> EventLogEntry:
        entry = EventLogEntry(message=message, timestamp=timestamp, kind=kind)
        self._entries.appendleft(entry)
        return entry

    @property
    def entries(self) -> List[EventLogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class StatHistory:
    """Oldest-first ring buffer of stat snapshots; only records actual changes."""

    def __init__(self, snapshots: Iterable[StatSnapshot] = (), limit: int = STAT_HISTORY_LIMIT):
        self._snapshots: Deque[StatSnapshot] = deque(snapshots, maxlen=limit)

    def record(self, moment: datetime, stats: StatVector) -> bool:
        if self._snapshots and self._snapshots[-1].stats == stats:
            return False
        self._snapshots.append(StatSnapshot(t=to_epoch_ms(moment), stats=stats))
        return True

    @property
    def snapshots(self) -> List[StatSnapshot]:
        return list(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)


@dataclass
class CareState:
    """Everything that belongs to one pet; created and discarded together."""

    pet: PetState
    ledger: CooldownLedger = field(default_factory=CooldownLedger)
    events: EventLog = field(default_factory=EventLog)
    history: StatHistory = field(default_factory=StatHistory)
    total_spent: int = 0

    def set_stats(self, stats: StatVector, moment: datetime, asleep: bool) -> None:
        self.pet.stats = stats
        self.pet.mood = mood_for(stats, asleep)
        self.history.record(moment, stats)

    def log_event(self, message: str, moment: datetime, kind: Optional[ActionKind] = None) -> EventLogEntry:
        return self.events.add(message, moment, kind)

    def charge(self, amount: int) -> None:
        self.total_spent += amount


# --- Persisted record -------------------------------------------------------

class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RecordPet(_Record):
    type: str
    name: str
    stats: StatVector
    emotion: Mood = Mood.NEUTRAL


class PetRecord(_Record):
    """The single persisted blob; field names follow the on-disk format."""

    pet: RecordPet
    total_spent: int = Field(default=0, alias="totalSpent")
    events: List[EventLogEntry] = Field(default_factory=list)
    has_toy: bool = Field(default=False, alias="hasToy")
    initial_purchases: Dict[str, bool] = Field(default_factory=dict, alias="initialPurchases")
    last_walk_time: int = Field(default=0, alias="lastWalkTime")
    last_bath_time: int = Field(default=0, alias="lastBathTime")
    last_trim_nails_time: int = Field(default=0, alias="lastTrimNailsTime")
    feed_count: int = Field(default=0, alias="feedCount")
    stat_history: List[StatSnapshot] = Field(default_factory=list, alias="statHistory")
    last_saved: datetime = Field(alias="lastSaved")

    @field_validator("last_saved")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return _assume_utc(value)

    @classmethod
    def from_state(cls, state: CareState, saved_at: datetime) -> "PetRecord":
        ledger = state.ledger
        return cls(
            pet=RecordPet(type=state.pet.archetype.value, name=state.pet.name,
                          stats=state.pet.stats, emotion=state.pet.mood),
            total_spent=state.total_spent,
            events=state.events.entries,
            has_toy=ledger.has_toy,
            initial_purchases=dict(ledger.initial_purchases),
            last_walk_time=ledger.last_walk_time,
            last_bath_time=ledger.last_bath_time,
            last_trim_nails_time=ledger.last_trim_nails_time,
            feed_count=ledger.feed_count,
            stat_history=state.history.snapshots,
            last_saved=saved_at,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_state(self, archetype: Archetype) -> CareState:
        return CareState(
            pet=PetState(archetype=archetype, name=self.pet.name, stats=self.pet.stats, mood=self.pet.emotion),
            ledger=CooldownLedger(
                last_walk_time=self.last_walk_time,
                last_bath_time=self.last_bath_time,
                last_trim_nails_time=self.last_trim_nails_time,
                feed_count=self.feed_count,
                has_toy=self.has_toy,
                initial_purchases=dict(self.initial_purchases),
            ),
            events=EventLog(self.events),
            history=StatHistory(self.stat_history[-STAT_HISTORY_LIMIT:]),
            total_spent=self.total_spent,
        )
