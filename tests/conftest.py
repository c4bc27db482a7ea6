"""Pytest fixtures for the pet care engine tests."""

import random
from datetime import datetime, timezone

import pytest

from petcare.core.clock import ManualClock
from petcare.core.scheduler import Scheduler
from petcare.core.settings import Settings
from petcare.core.storage import MemoryStore
from petcare.models.pet import CareState, PetState
from petcare.models.profiles import DOG
from petcare.models.stats import StatVector
from petcare.services.session import CareSession

MORNING = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def clock():
    """Manual clock pinned to a daytime hour."""
    return ManualClock(MORNING)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def config():
    # Idle flavour events are random noise in the event log; keep them off.
    return Settings(IDLE_EVENT_CHANCE=0.0)


@pytest.fixture
def make_state():
    def _make(profile=DOG, name="Rex", **stats):
        values = dict(hunger=80, thirst=80, happiness=80, hygiene=90, energy=80)
        values.update(stats)
        return CareState(pet=PetState(archetype=profile.archetype, name=name, stats=StatVector(**values)))
    return _make


@pytest.fixture
def make_session(store, rng, config):
    """Build (not start) a session; every session gets its own scheduler."""
    created = []

    def _make(clock, archetype="dog", name="Rex", random_source=None):
        session = CareSession(
            archetype=archetype,
            name=name,
            store=store,
            clock=clock,
            scheduler=Scheduler(clock),
            rng=random_source or rng,
            config=config,
        )
        created.append(session)
        return session

    yield _make
    for session in created:
        session.scheduler.cancel_all()
