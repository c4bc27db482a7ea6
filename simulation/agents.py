# simulation/agents.py
import random
from abc import ABC, abstractmethod
from typing import Dict, Optional

from petcare.models.pet import PetState
from petcare.models.profiles import ActionKind


class BaseAgent(ABC):
    def __init__(self, agent_id: str, rng: Optional[random.Random] = None):
        self.agent_id = agent_id
        self.rng = rng or random.Random()

    @abstractmethod
    def choose_action(self, pet_state: PetState, available: Dict[ActionKind, bool]) -> Optional[ActionKind]:
        """
        Decides a care action from the pet's current state.
        ``available`` maps each action to whether its preconditions hold right now.
        Returns the action to attempt, or None to let time pass.
        """
        pass


class NurturingAgent(BaseAgent):
    # Checked in order; the first need that is present and allowed wins.
    PRIORITIES = (
        ActionKind.FEED,
        ActionKind.WATER,
        ActionKind.BUY_TOY,
        ActionKind.BATH,
        ActionKind.GROOM,
    )

    def choose_action(self, pet_state: PetState, available: Dict[ActionKind, bool]) -> Optional[ActionKind]:
        for kind in self.PRIORITIES:
            if available.get(kind):
                return kind

        stats = pet_state.stats
        # Proactive care
        if stats.happiness < 70 and available.get(ActionKind.EXERCISE):
            return ActionKind.EXERCISE
        if stats.happiness < 60 and available.get(ActionKind.PLAY):
            return ActionKind.PLAY
        if stats.happiness < 30 and stats.hygiene < 50 and available.get(ActionKind.VET_VISIT):
            return ActionKind.VET_VISIT
        return None  # No action if pet is generally okay


class RandomAgent(BaseAgent):
    def choose_action(self, pet_state: PetState, available: Dict[ActionKind, bool]) -> Optional[ActionKind]:
        if self.rng.random() < 0.3:  # Sometimes does nothing
            return None
        # Tries anything, allowed or not; refused attempts are part of the data.
        return self.rng.choice(list(available))


class NeglectfulAgent(BaseAgent):
    def choose_action(self, pet_state: PetState, available: Dict[ActionKind, bool]) -> Optional[ActionKind]:
        if pet_state.stats.hunger < 10 and available.get(ActionKind.FEED):
            return ActionKind.FEED
        return None


AGENT_TYPES = {
    "nurturing": NurturingAgent,
    "random": RandomAgent,
    "neglectful": NeglectfulAgent,
}
