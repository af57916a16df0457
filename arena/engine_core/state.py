"""
Battle State - Per-unit and per-team battle state.

Design principles:
- Created at battle start from draft results (see resolver.init_team)
- Mutated only by the combat resolver, on a private deep copy
- Serializable: to_dict() for presentation and the HTTP layer
"""

from __future__ import annotations
from dataclasses import dataclass, field
from copy import deepcopy
from typing import Any

from ..games.champions import StatKind


@dataclass
class Modifier:
    """A timed buff or debuff on one stat."""
    stat: StatKind
    value: int
    turns_remaining: int
    is_debuff: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "stat": self.stat.value,
            "value": self.value,
            "turns_remaining": self.turns_remaining,
            "is_debuff": self.is_debuff,
        }


@dataclass
class BattleUnit:
    """
    Runtime state of one drafted champion.

    Static stats live in the roster; this only tracks what changes.
    """
    champion_id: int
    current_hp: int
    max_hp: int
    modifiers: list[Modifier] = field(default_factory=list)
    burn_turns: int = 0
    is_ko: bool = False
    total_damage_dealt: int = 0

    def active_modifiers(self, stat: StatKind, debuffs: bool) -> list[Modifier]:
        return [
            m for m in self.modifiers
            if m.stat == stat and m.is_debuff == debuffs and m.turns_remaining > 0
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "champion_id": self.champion_id,
            "current_hp": self.current_hp,
            "max_hp": self.max_hp,
            "modifiers": [m.to_dict() for m in self.modifiers],
            "burn_turns": self.burn_turns,
            "is_ko": self.is_ko,
            "total_damage_dealt": self.total_damage_dealt,
        }


@dataclass
class TeamState:
    """One side's units, in draft order."""
    units: list[BattleUnit] = field(default_factory=list)

    def get_unit(self, champion_id: int) -> BattleUnit | None:
        for unit in self.units:
            if unit.champion_id == champion_id:
                return unit
        return None

    def alive_units(self) -> list[BattleUnit]:
        return [u for u in self.units if not u.is_ko]

    @property
    def champion_ids(self) -> list[int]:
        return [u.champion_id for u in self.units]

    def clone(self) -> TeamState:
        """Deep copy, so callers never see in-place mutation."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {"units": [u.to_dict() for u in self.units]}
