"""
Damage - Integer combat formulas.

    effective_attack = max(0, attack - attack debuffs) + attack buffs
    effective_defense = defense + defense buffs
    raw = power * (20 + effective_attack) * multiplier_x100 // 2000
    damage = raw - effective_defense, minimum 1

    burn tick = max(1, max_hp // 10)
"""

from __future__ import annotations

from ..games.champions import Ability, Champion, StatKind, type_multiplier
from .state import BattleUnit


def sum_modifiers(unit: BattleUnit, stat: StatKind, debuffs: bool = False) -> int:
    return sum(m.value for m in unit.active_modifiers(stat, debuffs))


def effective_attack(champion: Champion, unit: BattleUnit) -> int:
    reduced = max(0, champion.attack - sum_modifiers(unit, StatKind.ATTACK, debuffs=True))
    return reduced + sum_modifiers(unit, StatKind.ATTACK)


def effective_defense(champion: Champion, unit: BattleUnit) -> int:
    return champion.defense + sum_modifiers(unit, StatKind.DEFENSE)


def effective_speed(champion: Champion, unit: BattleUnit) -> int:
    """Base speed plus speed buffs. Speed debuffs never slow a unit."""
    return champion.speed + sum_modifiers(unit, StatKind.SPEED)


def calculate_damage(
    attacker: Champion,
    attacker_unit: BattleUnit,
    defender: Champion,
    defender_unit: BattleUnit,
    ability: Ability,
) -> tuple[int, int]:
    """Returns (damage, multiplier_x100)."""
    multiplier = type_multiplier(attacker.element, defender.element)
    raw = ability.power * (20 + effective_attack(attacker, attacker_unit)) * multiplier // 2000
    defense = effective_defense(defender, defender_unit)
    damage = raw - defense if raw > defense else 1
    return damage, multiplier


def calculate_burn_damage(unit: BattleUnit) -> int:
    return max(1, unit.max_hp // 10)
