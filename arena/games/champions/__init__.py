"""
Champions - Static roster for the arena battle game.

10 champions, 2 abilities each, 4 elements.
"""

from .elements import Element, Effectiveness, type_multiplier, effectiveness_of
from .roster import (
    AbilityType,
    StatKind,
    Ability,
    Champion,
    CHAMPIONS,
    POOL_SIZE,
    ABILITIES_PER_CHAMPION,
    get_champion,
    get_ability,
)

__all__ = [
    "Element",
    "Effectiveness",
    "type_multiplier",
    "effectiveness_of",
    "AbilityType",
    "StatKind",
    "Ability",
    "Champion",
    "CHAMPIONS",
    "POOL_SIZE",
    "ABILITIES_PER_CHAMPION",
    "get_champion",
    "get_ability",
]
