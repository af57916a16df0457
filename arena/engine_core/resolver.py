"""
Combat Resolver - Deterministic resolution of one simultaneous round.

resolve_turn() is the single point of battle-state mutation:
1. Deep-copies both teams
2. Orders the two acting units by effective speed (ties: lower id first)
3. Executes the first action, then the second unless its unit was KO'd
4. Ticks burns on the acting units (local side first)
5. Ticks every modifier on both teams once, dropping expired ones

Given identical inputs the outcome, including event order, is identical.
No randomness, no clocks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import logging

from ..errors import InvalidMove
from ..games.champions import AbilityType, Champion, effectiveness_of, get_ability, get_champion
from .action import TurnAction
from .damage import calculate_burn_damage, calculate_damage, effective_speed
from .events import TurnEvent
from .state import BattleUnit, Modifier, TeamState

logger = logging.getLogger(__name__)


class Winner(Enum):
    """Match result from the local player's point of view."""
    ME = "me"
    OPPONENT = "opponent"
    DRAW = "draw"


@dataclass
class TurnOutcome:
    """Result of resolve_turn."""
    my_team: TeamState
    opponent_team: TeamState
    events: list[TurnEvent] = field(default_factory=list)
    first_actor_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "my_team": self.my_team.to_dict(),
            "opponent_team": self.opponent_team.to_dict(),
            "events": [e.to_dict() for e in self.events],
            "first_actor_id": self.first_actor_id,
        }


@dataclass
class _Side:
    champion: Champion
    unit: BattleUnit
    action: TurnAction


def init_unit_state(champion_id: int) -> BattleUnit:
    """Fresh unit at full HP with no modifiers."""
    champion = get_champion(champion_id)
    return BattleUnit(champion_id=champion.id, current_hp=champion.hp, max_hp=champion.hp)


def init_team(champion_ids: list[int]) -> TeamState:
    return TeamState(units=[init_unit_state(cid) for cid in champion_ids])


def is_team_eliminated(team: TeamState) -> bool:
    """True iff every unit is knocked out."""
    return all(unit.is_ko for unit in team.units)


def _acting_side(team: TeamState, action: TurnAction, label: str) -> _Side:
    unit = team.get_unit(action.champion_id)
    if unit is None:
        raise InvalidMove(
            f"{label} champion {action.champion_id} is not on the team",
            details={"champion_id": action.champion_id},
        )
    if unit.is_ko:
        raise InvalidMove(
            f"{label} champion {action.champion_id} is knocked out",
            details={"champion_id": action.champion_id},
        )
    try:
        get_ability(action.champion_id, action.ability_index)
    except KeyError as e:
        raise InvalidMove(str(e), details=action.to_dict()) from e
    return _Side(get_champion(action.champion_id), unit, action)


def _apply_damage(target: BattleUnit, damage: int, events: list[TurnEvent]) -> None:
    target.current_hp = max(0, target.current_hp - damage)
    if target.current_hp == 0 and not target.is_ko:
        target.is_ko = True
        events.append(TurnEvent.ko(target.champion_id))


def _execute(actor: _Side, target: _Side, events: list[TurnEvent]) -> None:
    ability = get_ability(actor.action.champion_id, actor.action.ability_index)

    if ability.ability_type in (AbilityType.DAMAGE, AbilityType.DAMAGE_DOT):
        damage, multiplier = calculate_damage(
            actor.champion, actor.unit, target.champion, target.unit, ability,
        )
        actor.unit.total_damage_dealt += damage
        new_hp = max(0, target.unit.current_hp - damage)
        events.append(TurnEvent.attack(
            actor.champion.id, target.champion.id, damage,
            multiplier, effectiveness_of(multiplier), new_hp,
        ))
        _apply_damage(target.unit, damage, events)

        if ability.ability_type == AbilityType.DAMAGE_DOT and not target.unit.is_ko:
            target.unit.burn_turns = ability.duration
            events.append(TurnEvent.burn_applied(
                actor.champion.id, target.champion.id, ability.duration,
            ))

    elif ability.ability_type == AbilityType.HEAL:
        old_hp = actor.unit.current_hp
        actor.unit.current_hp = min(actor.unit.max_hp, old_hp + ability.heal_amount)
        events.append(TurnEvent.heal(
            actor.champion.id, actor.unit.current_hp - old_hp, actor.unit.current_hp,
        ))

    elif ability.ability_type == AbilityType.STAT_MOD:
        modifier = Modifier(
            stat=ability.stat,
            value=ability.stat_value,
            turns_remaining=ability.duration,
            is_debuff=ability.is_debuff,
        )
        if ability.is_debuff:
            target.unit.modifiers.append(modifier)
            events.append(TurnEvent.debuff(
                actor.champion.id, target.champion.id,
                ability.stat, ability.stat_value, ability.duration,
            ))
        else:
            actor.unit.modifiers.append(modifier)
            events.append(TurnEvent.buff(
                actor.champion.id, ability.stat, ability.stat_value, ability.duration,
            ))


def _tick_burn(unit: BattleUnit, events: list[TurnEvent]) -> None:
    if unit.burn_turns <= 0 or unit.is_ko:
        return
    damage = calculate_burn_damage(unit)
    unit.burn_turns -= 1
    events.append(TurnEvent.burn_tick(
        unit.champion_id, damage, max(0, unit.current_hp - damage), unit.burn_turns,
    ))
    _apply_damage(unit, damage, events)


def _tick_modifiers(team: TeamState) -> None:
    for unit in team.units:
        for modifier in unit.modifiers:
            modifier.turns_remaining -= 1
        unit.modifiers = [m for m in unit.modifiers if m.turns_remaining > 0]


def resolve_turn(
    my_team: TeamState,
    opponent_team: TeamState,
    my_action: TurnAction,
    opponent_action: TurnAction,
) -> TurnOutcome:
    """
    Resolve one round in which both sides act simultaneously.

    Raises InvalidMove if either action names a unit that is missing
    from its team or already knocked out. The inputs are never mutated.
    """
    my_team = my_team.clone()
    opponent_team = opponent_team.clone()
    events: list[TurnEvent] = []

    mine = _acting_side(my_team, my_action, "My")
    theirs = _acting_side(opponent_team, opponent_action, "Opponent")

    my_speed = effective_speed(mine.champion, mine.unit)
    their_speed = effective_speed(theirs.champion, theirs.unit)
    if my_speed > their_speed or (
        my_speed == their_speed and mine.champion.id <= theirs.champion.id
    ):
        first, second = mine, theirs
    else:
        first, second = theirs, mine

    _execute(first, second, events)
    if not second.unit.is_ko:
        _execute(second, first, events)

    # Turn order, so both sides log the same events.
    _tick_burn(first.unit, events)
    _tick_burn(second.unit, events)

    _tick_modifiers(my_team)
    _tick_modifiers(opponent_team)

    logger.debug(
        "Resolved round: %s (spd %d) vs %s (spd %d), %d events",
        mine.champion.name, my_speed, theirs.champion.name, their_speed, len(events),
    )
    return TurnOutcome(my_team, opponent_team, events, first_actor_id=first.champion.id)


def determine_winner(my_team: TeamState, opponent_team: TeamState) -> Winner | None:
    """None while both sides still have a unit standing."""
    mine_out = is_team_eliminated(my_team)
    theirs_out = is_team_eliminated(opponent_team)
    if mine_out and theirs_out:
        return Winner.DRAW
    if theirs_out:
        return Winner.ME
    if mine_out:
        return Winner.OPPONENT
    return None


def find_mvp(my_team: TeamState, opponent_team: TeamState) -> int | None:
    """Unit with the most damage dealt across both teams, first one wins ties."""
    best: BattleUnit | None = None
    for unit in my_team.units + opponent_team.units:
        if best is None or unit.total_damage_dealt > best.total_damage_dealt:
            best = unit
    return best.champion_id if best else None
