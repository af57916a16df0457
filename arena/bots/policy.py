"""
Bot Policy - Interface for bot decision-making.

A BotPolicy picks champions during the draft and picks one action per
round from the legal actions for its team. Bots only see public state:
both teams' HP, modifiers and burns, never the opponent's hidden move.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
import random

from ..engine_core.action import TurnAction
from ..engine_core.damage import calculate_damage
from ..engine_core.draft import DraftSide, DraftState
from ..engine_core.state import TeamState
from ..games.champions import AbilityType, get_champion


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    Contains the action plus an explanation and scores for debugging.
    """
    action: TurnAction
    explanation: str = ""
    confidence: float = 1.0
    evaluated_actions: int = 0
    best_score: float = 0.0
    evaluation_details: dict[str, Any] = field(default_factory=dict)


def legal_actions(team: TeamState) -> list[TurnAction]:
    """Every (unit, ability) pair a team can play this round."""
    actions = []
    for unit in team.alive_units():
        champion = get_champion(unit.champion_id)
        for index in range(len(champion.abilities)):
            actions.append(TurnAction(unit.champion_id, index))
    return actions


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.
    """

    @abstractmethod
    def select_action(self, my_team: TeamState, opponent_team: TeamState) -> BotDecision:
        """Choose this round's action. Raises ValueError if nothing is legal."""
        pass

    @abstractmethod
    def select_pick(self, draft: DraftState, side: DraftSide) -> int:
        """Choose a champion id from the remaining pool."""
        pass

    def get_name(self) -> str:
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Random policy - uniform over legal actions and the remaining pool.

    Used for testing and as a baseline.
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_action(self, my_team: TeamState, opponent_team: TeamState) -> BotDecision:
        actions = legal_actions(my_team)
        if not actions:
            raise ValueError("No legal actions available")
        return BotDecision(
            action=self.rng.choice(actions),
            explanation="Selected randomly",
            confidence=1.0 / len(actions),
            evaluated_actions=len(actions),
        )

    def select_pick(self, draft: DraftState, side: DraftSide) -> int:
        if not draft.pool:
            raise ValueError("Pool is empty")
        return self.rng.choice(draft.pool)


class FirstLegalPolicy(BotPolicy):
    """
    First-legal policy - always the first legal action and lowest pool id.

    Used for deterministic testing.
    """

    def select_action(self, my_team: TeamState, opponent_team: TeamState) -> BotDecision:
        actions = legal_actions(my_team)
        if not actions:
            raise ValueError("No legal actions available")
        return BotDecision(action=actions[0], explanation="Selected first legal action", evaluated_actions=1)

    def select_pick(self, draft: DraftState, side: DraftSide) -> int:
        if not draft.pool:
            raise ValueError("Pool is empty")
        return min(draft.pool)


class GreedyPolicy(BotPolicy):
    """
    Greedy policy - maximizes expected damage this round.

    Damage is averaged over the opponent's living units, since their
    acting unit is unknown. A hurt unit with a heal prefers healing, and
    status abilities score a flat bonus so they are used when damage is
    poor. Drafts the champion with the highest stat total.
    """

    HEAL_THRESHOLD = 0.4
    STATUS_SCORE = 8.0

    def select_action(self, my_team: TeamState, opponent_team: TeamState) -> BotDecision:
        actions = legal_actions(my_team)
        if not actions:
            raise ValueError("No legal actions available")
        targets = opponent_team.alive_units()

        scores: dict[str, float] = {}
        best_action = actions[0]
        best_score = float("-inf")
        for action in actions:
            score = self._score(action, my_team, targets)
            scores[f"{action.champion_id}:{action.ability_index}"] = score
            if score > best_score:
                best_action, best_score = action, score

        return BotDecision(
            action=best_action,
            explanation=f"Highest expected value ({best_score:.1f})",
            evaluated_actions=len(actions),
            best_score=best_score,
            evaluation_details=scores,
        )

    def _score(self, action: TurnAction, my_team: TeamState, targets) -> float:
        champion = get_champion(action.champion_id)
        ability = champion.abilities[action.ability_index]
        unit = my_team.get_unit(action.champion_id)

        if ability.ability_type == AbilityType.HEAL:
            missing = unit.max_hp - unit.current_hp
            if unit.current_hp <= unit.max_hp * self.HEAL_THRESHOLD:
                return float(min(missing, ability.heal_amount)) * 1.5
            return float(min(missing, ability.heal_amount)) * 0.5

        if ability.ability_type == AbilityType.STAT_MOD:
            return self.STATUS_SCORE

        if not targets:
            return 0.0
        total = 0
        for target in targets:
            damage, _ = calculate_damage(
                champion, unit, get_champion(target.champion_id), target, ability,
            )
            total += min(damage, target.current_hp)
        expected = total / len(targets)
        if ability.ability_type == AbilityType.DAMAGE_DOT:
            expected += ability.duration * 2
        return float(expected)

    def select_pick(self, draft: DraftState, side: DraftSide) -> int:
        if not draft.pool:
            raise ValueError("Pool is empty")

        def stat_total(champion_id: int) -> int:
            c = get_champion(champion_id)
            return c.hp // 4 + c.attack + c.defense + c.speed

        return max(draft.pool, key=lambda cid: (stat_total(cid), -cid))


POLICIES: dict[str, type[BotPolicy]] = {
    "random": RandomPolicy,
    "first": FirstLegalPolicy,
    "greedy": GreedyPolicy,
}


def create_policy(name: str, seed: int | None = None) -> BotPolicy:
    """Build a policy by name. Raises ValueError for unknown names."""
    if name not in POLICIES:
        raise ValueError(f"Unknown bot policy: {name} (expected one of {sorted(POLICIES)})")
    if name == "random":
        return RandomPolicy(seed)
    return POLICIES[name]()
