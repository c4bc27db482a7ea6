# petcare/services/session.py
import random
from functools import partial
from typing import Dict, Optional, Union

import structlog

from petcare.core.errors import PreconditionRejected
from petcare.core.scheduler import Scheduler
from petcare.core.settings import Settings, settings as default_settings
from petcare.core.storage import KeyValueStore
from petcare.models.pet import CareState
from petcare.models.profiles import ActionKind, get_profile
from petcare.services.actions import ActionResolver, ActionResult, Completion
from petcare.services.catchup import restore
from petcare.services.cooldowns import Countdowns, project_countdowns
from petcare.services.decay import DecayClock
from petcare.services.persistence import PetRepository
from petcare.services.report import CareReport, TimeRange, build_report
from petcare.services.sleep_cycle import SleepCycle, SleepTransition

log = structlog.get_logger(__name__)

DECAY_TASK = "decay"
SLEEP_CHECK_TASK = "sleep-check"
IDLE_EVENTS_TASK = "idle-events"
COUNTDOWN_REFRESH_TASK = "countdown-refresh"
ACTION_COUNTDOWN_TASK = "action-countdown"
ACTION_EVENT_PREFIX = "action-event-"
TOY_PENALTY_TASK = "toy-penalty"

TOY_PENALTY = 30

IDLE_MESSAGES = (
    "{name} is napping peacefully 😴",
    "{name} barked at a sound 🐕",
    "{name} is watching you curiously 👀",
)
NEEDS_ATTENTION_MESSAGE = "{name} is waiting for attention 🥺"


class CareSession:
    """One pet and everything that acts on it.

    All timers belong to the session's scheduler and every change is written back
    to the store straight away, so a session can be dropped at any point and
    picked up again later through catch-up.
    """

    def __init__(self, archetype, name: str, store: KeyValueStore, clock,
                 scheduler: Optional[Scheduler] = None, rng: Optional[random.Random] = None,
                 config: Settings = default_settings):
        self.profile = get_profile(archetype)
        self.name = name
        self.clock = clock
        self.scheduler = scheduler or Scheduler(clock)
        self.rng = rng or random.Random()
        self.config = config
        self.repository = PetRepository(store, config.STORAGE_KEY)
        self.resolver = ActionResolver(self.profile, self.rng)
        self.sleep = SleepCycle(self.profile.sleep_window)
        self.decay = DecayClock(self.profile, tick_seconds=config.DECAY_INTERVAL_SECONDS)
        self.state: Optional[CareState] = None
        self.latest_countdowns: Optional[Countdowns] = None

    # --- lifecycle -----------------------------------------------------------

    def start(self) -> CareState:
        now = self.clock.now()
        restored = restore(self.repository.load(), self.profile, self.name, now)
        self.state = restored.state

        if not restored.fresh and restored.elapsed_minutes > self.config.WELCOME_BACK_MINUTES:
            self.state.log_event(f"Welcome back! {int(restored.elapsed_minutes)} minutes have passed.", now)

        self.decay.last_ambient_tick = now
        self._apply_sleep_check()

        self.scheduler.every(DECAY_TASK, self.config.DECAY_INTERVAL_SECONDS, self._on_decay)
        self.scheduler.every(SLEEP_CHECK_TASK, self.config.SLEEP_CHECK_INTERVAL_SECONDS, self._on_sleep_check)
        self.scheduler.every(IDLE_EVENTS_TASK, self.config.IDLE_EVENT_INTERVAL_SECONDS, self._on_idle)
        self.scheduler.every(COUNTDOWN_REFRESH_TASK, self.config.COUNTDOWN_REFRESH_SECONDS,
                             self._refresh_countdowns)
        self._refresh_countdowns()
        self._commit()
        log.info("care_session_started", archetype=self.profile.archetype.value, name=self.name,
                 fresh=restored.fresh, asleep=self.sleep.asleep)
        return self.state

    def close(self) -> None:
        """Stop every timer. An in-flight action is abandoned, its cost stays spent."""
        self.scheduler.cancel_all()
        self.resolver.cancel()
        log.info("care_session_closed", name=self.name)

    def reset(self) -> None:
        self.close()
        self.repository.clear()
        self.state = None
        log.info("care_session_reset", name=self.name)

    # --- queries ---------------------------------------------------------------

    @property
    def asleep(self) -> bool:
        return self.sleep.asleep

    @property
    def busy(self) -> bool:
        return self.resolver.active is not None

    def countdowns(self) -> Countdowns:
        return project_countdowns(self.profile, self.state.pet.stats, self.state.ledger, self.clock.now())

    def available_actions(self) -> Dict[ActionKind, bool]:
        now = self.clock.now()
        return {kind: self.resolver.check(kind, self.state, self.asleep, now) is None
                for kind in self.profile.actions}

    def report(self, time_range: Union[TimeRange, str, int] = TimeRange.WEEK) -> CareReport:
        state = self.state
        return build_report(
            stats=state.pet.stats,
            mood=state.pet.mood.value,
            events=state.events.entries,
            total_spent=state.total_spent,
            history=state.history.snapshots,
            time_range=TimeRange.parse(time_range),
            now=self.clock.now(),
        )

    # --- commands --------------------------------------------------------------

    def attempt(self, kind: Union[ActionKind, str]) -> ActionResult:
        kind = ActionKind(kind)
        result = self.resolver.attempt(kind, self.state, self.asleep, self.clock.now())
        if not result.accepted:
            return result

        run = self.resolver.active
        self.scheduler.every(ACTION_COUNTDOWN_TASK, self.config.ACTION_COUNTDOWN_SECONDS, self._on_action_countdown)
        for index, sub_event in enumerate(run.sub_events):
            self.scheduler.call_later(f"{ACTION_EVENT_PREFIX}{index}", sub_event.at_seconds,
                                      partial(self._on_sub_event, index))
        self._commit()
        return result

    def perform(self, kind: Union[ActionKind, str]) -> ActionResult:
        """Like ``attempt`` but a refused action raises ``PreconditionRejected``."""
        result = self.attempt(kind)
        if not result.accepted:
            raise PreconditionRejected(result.kind.value, result.reason.value)
        return result

    def buy_essentials(self) -> int:
        ledger = self.state.ledger
        if ledger.essentials_bought:
            raise PreconditionRejected("essentials", "already_purchased")
        cost = self.profile.essentials_cost
        ledger.initial_purchases = {item.id: True for item in self.profile.essentials}
        ledger.has_toy = True
        self.state.charge(cost)
        self.state.log_event(f"Purchased all essentials for ${cost}", self.clock.now())
        self.scheduler.cancel(TOY_PENALTY_TASK)
        self._commit()
        log.info("essentials_purchased", cost=cost, items=len(self.profile.essentials))
        return cost

    # --- scheduled callbacks -----------------------------------------------------

    def _on_decay(self) -> None:
        now = self.clock.now()
        stats = self.decay.tick(self.state.pet.stats, now, asleep=self.asleep,
                                daytime=self.sleep.is_daytime(now), action_active=self.busy)
        if stats is None:
            return
        self.state.set_stats(stats, now, self.asleep)
        log.debug("decay_tick_applied", asleep=self.asleep, stats=stats.model_dump())
        self._commit()

    def _on_sleep_check(self) -> None:
        if self._apply_sleep_check():
            self._commit()

    def _apply_sleep_check(self) -> Optional[SleepTransition]:
        now = self.clock.now()
        transition = self.sleep.check(now)
        if transition is None:
            return None
        if transition is SleepTransition.FELL_ASLEEP:
            self.state.log_event(f"{self.name} fell asleep 😴", now)
        else:
            self.state.log_event(f"{self.name} woke up! ☀️", now)
        self.state.set_stats(self.state.pet.stats, now, self.asleep)
        return transition

    def _on_idle(self) -> None:
        if self.asleep or self.busy:
            return
        if self.rng.random() >= self.config.IDLE_EVENT_CHANCE:
            return
        if self.state.pet.stats.happiness < 50:
            message = NEEDS_ATTENTION_MESSAGE
        else:
            message = self.rng.choice(IDLE_MESSAGES)
        self.state.log_event(message.format(name=self.name), self.clock.now())
        self._commit()

    def _refresh_countdowns(self) -> None:
        self.latest_countdowns = self.countdowns()

    def _on_sub_event(self, index: int) -> None:
        if self.resolver.fire_sub_event(index, self.state, self.clock.now(), self.asleep):
            self._commit()

    def _on_action_countdown(self) -> None:
        if self.resolver.active is None:
            self.scheduler.cancel(ACTION_COUNTDOWN_TASK)
            return
        completion = self.resolver.tick(self.state, self.clock.now(), self.asleep)
        if completion is not None:
            self._finish(completion)

    def _finish(self, completion: Completion) -> None:
        self.scheduler.cancel(ACTION_COUNTDOWN_TASK)
        self.scheduler.cancel_prefix(ACTION_EVENT_PREFIX)
        if completion.toy_acquired:
            self.scheduler.cancel(TOY_PENALTY_TASK)
        if completion.toy_broke:
            self.scheduler.call_later(TOY_PENALTY_TASK, self.config.TOY_PENALTY_DELAY_SECONDS,
                                      self._on_toy_penalty)
        self._refresh_countdowns()
        self._commit()

    def _on_toy_penalty(self) -> None:
        if self.state.ledger.has_toy:
            log.info("toy_penalty_skipped_toy_replaced")
            return
        now = self.clock.now()
        stats = self.state.pet.stats.apply_deltas({"happiness": -TOY_PENALTY})
        self.state.set_stats(stats, now, self.asleep)
        self.state.log_event(f"{self.name} is sad without a toy. -{TOY_PENALTY} Happiness 😢", now)
        log.info("toy_penalty_applied", happiness=stats.happiness)
        self._commit()

    def _commit(self) -> None:
        self.repository.save(self.state, self.clock.now())
