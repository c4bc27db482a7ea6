# simulation/simulator.py
"""Headless care episodes: an agent looks after a pet on a manual clock.

Nothing here sleeps in real time; the scheduler is advanced step by step, so
a week of care runs in well under a second.
"""
import json
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from petcare.core.clock import ManualClock
from petcare.core.scheduler import Scheduler
from petcare.core.settings import settings
from petcare.core.storage import MemoryStore
from petcare.models.profiles import Archetype
from petcare.services.report import TimeRange
from petcare.services.session import CareSession
from simulation.agents import AGENT_TYPES, BaseAgent

log = structlog.get_logger(__name__)

DEFAULT_START = datetime(2024, 3, 4, 8, 0, tzinfo=timezone.utc)


def run_episode(agent: BaseAgent, pet_name: str, archetype=Archetype.DOG, hours: float = 24,
                step_minutes: float = 10, seed: Optional[int] = None,
                start: datetime = DEFAULT_START) -> List[Dict]:
    clock = ManualClock(start)
    session = CareSession(
        archetype=archetype,
        name=pet_name,
        store=MemoryStore(),
        clock=clock,
        scheduler=Scheduler(clock),
        rng=random.Random(seed),
        config=settings,
    )
    session.start()
    session.buy_essentials()

    max_steps = int(hours * 60 / step_minutes)
    episode_data = []
    log.info("Starting new simulation episode", pet_name=pet_name, agent_type=type(agent).__name__,
             archetype=session.profile.archetype.value, max_steps=max_steps)

    for step in range(max_steps):
        state_before = session.state.pet.model_dump(mode="json")
        available = session.available_actions()
        action = agent.choose_action(session.state.pet, available)

        result = None
        if action is not None:
            result = session.attempt(action)
            log.debug("Agent action attempted", step=step, action=action.value, accepted=result.accepted,
                      reason=result.reason.value if result.reason else None)

        session.scheduler.advance(step_minutes * 60)

        episode_data.append({
            "step": step,
            "time": clock.now().isoformat(),
            "state": state_before,
            "action": action.value if action else None,
            "accepted": result.accepted if result else None,
            "reason": result.reason.value if result and result.reason else None,
            "cost": result.cost if result else 0,
            "next_state": session.state.pet.model_dump(mode="json"),
            "asleep": session.asleep,
            "pet_name": pet_name,
        })

    report = session.report(TimeRange.ALL)
    session.close()
    episode_data.append({"step": "report", "pet_name": pet_name, "report": report.model_dump(mode="json")})
    log.info("Episode finished.", pet_name=pet_name, total_steps=max_steps, score=report.score,
             grade=report.grade, total_spent=report.total_spent)
    return episode_data


def generate_synthetic_data(num_episodes: int, agent_type: str = "random", archetype=Archetype.DOG,
                            hours: float = 24, output_file_prefix: str = "synthetic_data",
                            seed: Optional[int] = None) -> Optional[str]:
    agent_cls = AGENT_TYPES.get(agent_type)
    if agent_cls is None:
        log.error(f"Unknown agent type: {agent_type}")
        return None

    base = random.Random(seed)
    all_episodes_data = []
    for i in range(num_episodes):
        episode_seed = base.randrange(2 ** 32)
        agent = agent_cls(agent_id=f"{agent_type}_{i + 1}", rng=random.Random(episode_seed))
        all_episodes_data.extend(
            run_episode(agent, f"SimPet_{i + 1}", archetype=archetype, hours=hours, seed=episode_seed))

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    output_path = Path(f"{output_file_prefix}_{agent_type}_{num_episodes}_episodes_{stamp}.jsonl")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        for record in all_episodes_data:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    log.info(f"Synthetic data generated and saved to {output_path}", total_records=len(all_episodes_data))
    return str(output_path)


if __name__ == "__main__":
    from petcare.core.logging_config import setup_logging

    setup_logging(log_level_str="INFO")
    generate_synthetic_data(num_episodes=5, agent_type="nurturing", hours=72,
                            output_file_prefix="data/raw/sim_nurturing")
