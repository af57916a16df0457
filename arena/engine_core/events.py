"""
Turn Events - Append-only record of what happened during resolution.

Event kinds:
- attack: attacker hits defender (damage, multiplier, effectiveness)
- heal: caster restores HP (actual amount after clamping)
- buff: modifier added to the caster
- debuff: modifier added to the opponent
- burn_applied: defender starts burning
- burn_tick: a burning unit takes its periodic damage
- ko: a unit reached 0 HP

Events are immutable. The engine never reads them back.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..games.champions import Effectiveness, StatKind


class EventType(Enum):
    ATTACK = "attack"
    HEAL = "heal"
    BUFF = "buff"
    DEBUFF = "debuff"
    BURN_APPLIED = "burn_applied"
    BURN_TICK = "burn_tick"
    KO = "ko"


@dataclass(frozen=True)
class TurnEvent:
    """
    One entry in the battle log.

    actor_id is the unit the event is about (attacker, healer, buffed
    unit, burning unit, knocked-out unit); target_id is set when a second
    unit is involved.
    """
    event_type: EventType
    actor_id: int
    target_id: int | None = None
    amount: int = 0
    new_hp: int | None = None
    multiplier: int | None = None
    effectiveness: Effectiveness | None = None
    stat: StatKind | None = None
    duration: int = 0

    @classmethod
    def attack(cls, attacker_id: int, defender_id: int, damage: int,
               multiplier: int, effectiveness: Effectiveness, new_hp: int) -> TurnEvent:
        return cls(
            EventType.ATTACK, attacker_id, defender_id, damage,
            new_hp=new_hp, multiplier=multiplier, effectiveness=effectiveness,
        )

    @classmethod
    def heal(cls, champion_id: int, amount: int, new_hp: int) -> TurnEvent:
        return cls(EventType.HEAL, champion_id, amount=amount, new_hp=new_hp)

    @classmethod
    def buff(cls, champion_id: int, stat: StatKind, value: int, duration: int) -> TurnEvent:
        return cls(EventType.BUFF, champion_id, amount=value, stat=stat, duration=duration)

    @classmethod
    def debuff(cls, caster_id: int, target_id: int, stat: StatKind,
               value: int, duration: int) -> TurnEvent:
        return cls(EventType.DEBUFF, caster_id, target_id, value, stat=stat, duration=duration)

    @classmethod
    def burn_applied(cls, caster_id: int, target_id: int, duration: int) -> TurnEvent:
        return cls(EventType.BURN_APPLIED, caster_id, target_id, duration=duration)

    @classmethod
    def burn_tick(cls, champion_id: int, damage: int, new_hp: int, turns_left: int) -> TurnEvent:
        return cls(EventType.BURN_TICK, champion_id, amount=damage, new_hp=new_hp, duration=turns_left)

    @classmethod
    def ko(cls, champion_id: int) -> TurnEvent:
        return cls(EventType.KO, champion_id)

    def to_dict(self) -> dict[str, Any]:
        """Flat dict for presentation. Unset optional fields are omitted."""
        data: dict[str, Any] = {"type": self.event_type.value, "actor_id": self.actor_id}
        if self.target_id is not None:
            data["target_id"] = self.target_id
        if self.event_type != EventType.KO and self.event_type != EventType.BURN_APPLIED:
            data["amount"] = self.amount
        if self.new_hp is not None:
            data["new_hp"] = self.new_hp
        if self.multiplier is not None:
            data["multiplier"] = self.multiplier
        if self.effectiveness is not None:
            data["effectiveness"] = self.effectiveness.value
        if self.stat is not None:
            data["stat"] = self.stat.value
        if self.event_type in (EventType.BUFF, EventType.DEBUFF,
                               EventType.BURN_APPLIED, EventType.BURN_TICK):
            data["duration"] = self.duration
        return data
