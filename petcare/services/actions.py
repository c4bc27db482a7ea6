# petcare/services/actions.py
"""Timed care actions: precondition checks, the single in-flight run, and completion.

Scheduling is not done here. The resolver exposes ``tick`` (one countdown
second) and ``fire_sub_event``; the session wires those to scheduler tasks.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

import structlog
from pydantic import BaseModel

from petcare.models.pet import CareState
from petcare.models.profiles import ActionKind, ActionSpec, CareProfile
from petcare.services.cooldowns import COOLDOWN_STAMPS, cooldown_remaining

log = structlog.get_logger(__name__)

TOY_BROKE_MESSAGE = "⚠️ The toy broke! Buy a new one or happiness will drop!"


class RejectReason(str, Enum):
    ACTION_IN_PROGRESS = "action_in_progress"
    ASLEEP = "asleep"
    NEED_NOT_PRESENT = "need_not_present"
    LOW_ENERGY = "low_energy"
    COOLDOWN_ACTIVE = "cooldown_active"
    NO_TOY = "no_toy"
    TOY_ALREADY_OWNED = "toy_already_owned"


class ActionResult(BaseModel):
    kind: ActionKind
    accepted: bool
    reason: Optional[RejectReason] = None
    label: str = ""
    cost: int = 0
    duration: int = 0


@dataclass
class SubEvent:
    at_seconds: float
    message: str
    deltas: Dict[str, float]
    fired: bool = False


@dataclass
class ActionRun:
    kind: ActionKind
    label: str
    started_at: datetime
    duration: int
    cost: int
    deltas: Dict[str, float]
    on_complete: Optional[Callable[[CareState, datetime, CareProfile], None]] = None
    sub_events: List[SubEvent] = field(default_factory=list)
    toy_breaks: bool = False
    remaining: int = 0


@dataclass
class Completion:
    run: ActionRun
    toy_broke: bool = False
    toy_acquired: bool = False


@dataclass
class Quote:
    label: str
    cost: int
    duration: int


class ActionResolver:
    def __init__(self, profile: CareProfile, rng: Optional[random.Random] = None):
        self.profile = profile
        self.rng = rng or random.Random()
        self.active: Optional[ActionRun] = None

    def quote(self, kind: ActionKind, state: CareState) -> Quote:
        """Label, cost and duration as they would be charged right now."""
        spec = self.profile.action(kind)
        restock = self.profile.feed_restock
        if kind is ActionKind.FEED and restock is not None:
            if state.ledger.feed_count >= restock.free_feeds:
                return Quote(label=restock.label, cost=restock.surcharge,
                             duration=spec.duration + restock.extra_duration)
            return Quote(label=spec.label, cost=0, duration=spec.duration)
        return Quote(label=spec.label, cost=spec.cost, duration=spec.duration)

    def check(self, kind: ActionKind, state: CareState, asleep: bool, now: datetime) -> Optional[RejectReason]:
        """First failing precondition, or None if the action may start."""
        if self.active is not None:
            return RejectReason.ACTION_IN_PROGRESS
        if asleep:
            return RejectReason.ASLEEP

        spec = self.profile.action(kind)
        stats = state.pet.stats
        ledger = state.ledger

        if spec.need_stat and spec.trigger_threshold is not None:
            if getattr(stats, spec.need_stat) >= spec.trigger_threshold:
                return RejectReason.NEED_NOT_PRESENT
        if spec.min_energy is not None and stats.energy < spec.min_energy:
            return RejectReason.LOW_ENERGY
        if kind is ActionKind.EXERCISE and spec.cooldown is not None:
            if cooldown_remaining(spec.cooldown, ledger.last_walk_time, now) > timedelta(0):
                return RejectReason.COOLDOWN_ACTIVE
        if spec.requires_toy and not ledger.has_toy:
            return RejectReason.NO_TOY
        if kind is ActionKind.BUY_TOY and ledger.has_toy:
            return RejectReason.TOY_ALREADY_OWNED
        return None

    def attempt(self, kind: ActionKind, state: CareState, asleep: bool, now: datetime) -> ActionResult:
        reason = self.check(kind, state, asleep, now)
        if reason is not None:
            log.info("action_rejected", action=kind.value, reason=reason.value)
            return ActionResult(kind=kind, accepted=False, reason=reason)

        spec = self.profile.action(kind)
        quote = self.quote(kind, state)
        name = state.pet.name

        if spec.start_message:
            state.log_event(spec.start_message.format(name=name), now)
        state.charge(quote.cost)
        if quote.cost > 0:
            state.log_event(f"Spent ${quote.cost} on {quote.label.lower()}", now)

        self.active = ActionRun(
            kind=kind,
            label=quote.label,
            started_at=now,
            duration=quote.duration,
            cost=quote.cost,
            deltas=dict(spec.deltas),
            on_complete=_SIDE_EFFECTS.get(kind),
            sub_events=self._sample_sub_events(spec, quote.duration, name),
            toy_breaks=self._sample_toy_break(spec),
            remaining=quote.duration,
        )
        log.info("action_started", action=kind.value, label=quote.label, cost=quote.cost,
                 duration=quote.duration, sub_events=len(self.active.sub_events),
                 toy_breaks=self.active.toy_breaks)
        return ActionResult(kind=kind, accepted=True, label=quote.label, cost=quote.cost, duration=quote.duration)

    def _sample_sub_events(self, spec: ActionSpec, duration: int, name: str) -> List[SubEvent]:
        events = []
        for sub in spec.sub_events:
            if self.rng.random() < sub.chance:
                events.append(SubEvent(at_seconds=duration * sub.at_fraction,
                                       message=sub.message.format(name=name),
                                       deltas=dict(sub.deltas)))
        return events

    def _sample_toy_break(self, spec: ActionSpec) -> bool:
        if not spec.requires_toy:
            return False
        return self.rng.random() < self.profile.toy_break_chance

    def fire_sub_event(self, index: int, state: CareState, now: datetime, asleep: bool) -> bool:
        """Apply a scheduled mid-action event; no-op once the run is over or already fired."""
        run = self.active
        if run is None or index >= len(run.sub_events) or run.sub_events[index].fired:
            return False
        event = run.sub_events[index]
        event.fired = True
        state.set_stats(state.pet.stats.apply_deltas(event.deltas), now, asleep)
        state.log_event(event.message, now)
        log.info("action_sub_event", action=run.kind.value, deltas=event.deltas)
        return True

    def tick(self, state: CareState, now: datetime, asleep: bool) -> Optional[Completion]:
        """One second of countdown; completes the run when it reaches zero."""
        run = self.active
        if run is None:
            return None
        run.remaining -= 1
        if run.remaining > 0:
            return None
        return self._complete(state, now, asleep)

    def _complete(self, state: CareState, now: datetime, asleep: bool) -> Completion:
        run = self.active
        had_toy = state.ledger.has_toy
        state.set_stats(state.pet.stats.apply_deltas(run.deltas), now, asleep)
        if run.on_complete is not None:
            run.on_complete(state, now, self.profile)

        toy_broke = False
        if run.toy_breaks and state.ledger.has_toy:
            state.ledger.has_toy = False
            state.log_event(TOY_BROKE_MESSAGE, now)
            toy_broke = True

        state.log_event(f"Finished {run.label.lower()}", now, kind=run.kind)
        self.active = None
        log.info("action_completed", action=run.kind.value, stats=state.pet.stats.model_dump(),
                 toy_broke=toy_broke)
        return Completion(run=run, toy_broke=toy_broke, toy_acquired=not had_toy and state.ledger.has_toy)

    def cancel(self) -> Optional[ActionRun]:
        run, self.active = self.active, None
        if run is not None:
            log.info("action_cancelled", action=run.kind.value)
        return run


def _done_event(state: CareState, now: datetime, profile: CareProfile, kind: ActionKind) -> None:
    message = profile.action(kind).done_message
    if message:
        state.log_event(message.format(name=state.pet.name), now)


def _after_feed(state, now, profile):
    state.ledger.feed_count += 1


def _after_cooldown_action(kind: ActionKind):
    def side_effect(state, now, profile):
        state.ledger.stamp(COOLDOWN_STAMPS[kind], now)
        _done_event(state, now, profile, kind)
    return side_effect


def _after_buy_toy(state, now, profile):
    state.ledger.has_toy = True
    _done_event(state, now, profile, ActionKind.BUY_TOY)


def _after_vet(state, now, profile):
    _done_event(state, now, profile, ActionKind.VET_VISIT)


_SIDE_EFFECTS = {
    ActionKind.FEED: _after_feed,
    ActionKind.EXERCISE: _after_cooldown_action(ActionKind.EXERCISE),
    ActionKind.BATH: _after_cooldown_action(ActionKind.BATH),
    ActionKind.GROOM: _after_cooldown_action(ActionKind.GROOM),
    ActionKind.BUY_TOY: _after_buy_toy,
    ActionKind.VET_VISIT: _after_vet,
}
