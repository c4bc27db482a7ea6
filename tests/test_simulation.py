import json
import random

from petcare.models.profiles import ActionKind, Archetype
from petcare.models.pet import PetState
from petcare.models.stats import StatVector
from simulation.agents import NeglectfulAgent, NurturingAgent, RandomAgent
from simulation.simulator import generate_synthetic_data, run_episode


def pet(**stats):
    return PetState(archetype=Archetype.DOG, name="Sim", stats=StatVector(**stats))


def test_nurturing_agent_prefers_allowed_needs():
    agent = NurturingAgent("n1")
    available = {kind: False for kind in ActionKind}
    assert agent.choose_action(pet(), available) is None

    available[ActionKind.WATER] = True
    available[ActionKind.EXERCISE] = True
    assert agent.choose_action(pet(happiness=40), available) is ActionKind.WATER

    available[ActionKind.WATER] = False
    assert agent.choose_action(pet(happiness=40), available) is ActionKind.EXERCISE


def test_neglectful_agent_only_feeds_a_starving_pet():
    agent = NeglectfulAgent("x")
    available = {kind: True for kind in ActionKind}
    assert agent.choose_action(pet(hunger=50), available) is None
    assert agent.choose_action(pet(hunger=5), available) is ActionKind.FEED


def test_episode_ends_with_report():
    agent = NurturingAgent("n1", rng=random.Random(3))
    records = run_episode(agent, "SimPet", hours=6, step_minutes=10, seed=3)

    assert len(records) == 6 * 6 + 1
    assert records[-1]["step"] == "report"
    assert records[-1]["report"]["grade"]
    assert records[0]["state"]["name"] == "SimPet"


def test_random_episode_records_refusals():
    agent = RandomAgent("r1", rng=random.Random(7))
    records = run_episode(agent, "SimPet", archetype=Archetype.CAT, hours=3, step_minutes=15, seed=7)
    steps = records[:-1]
    assert len(steps) == 12
    assert all(r["accepted"] is None or isinstance(r["accepted"], bool) for r in steps)


def test_generate_synthetic_data_writes_jsonl(tmp_path):
    path = generate_synthetic_data(2, agent_type="nurturing", hours=1,
                                   output_file_prefix=str(tmp_path / "sim"), seed=11)
    with open(path, encoding="utf-8") as f:
        lines = [json.loads(line) for line in f]
    assert sum(1 for line in lines if line["step"] == "report") == 2


def test_unknown_agent_type():
    assert generate_synthetic_data(1, agent_type="sloppy") is None
