"""
Elements - Cyclic advantage graph between element tags.

Fire beats Earth, Earth beats Wind, Wind beats Water, Water beats Fire.
Multipliers are integer percentages so resolution stays in integer math.
"""

from __future__ import annotations
from enum import Enum


class Element(Enum):
    """Element tags carried by every champion."""
    FIRE = "fire"
    WATER = "water"
    EARTH = "earth"
    WIND = "wind"


class Effectiveness(Enum):
    """How an attack landed, for presentation."""
    SUPER_EFFECTIVE = "super_effective"
    NEUTRAL = "neutral"
    RESISTED = "resisted"


ADVANTAGE = 150
DISADVANTAGE = 67
NEUTRAL = 100

# attacker element -> element it beats
_BEATS: dict[Element, Element] = {
    Element.FIRE: Element.EARTH,
    Element.EARTH: Element.WIND,
    Element.WIND: Element.WATER,
    Element.WATER: Element.FIRE,
}


def type_multiplier(attacker: Element, defender: Element) -> int:
    """Damage multiplier x100 for an attack from one element onto another."""
    if _BEATS[attacker] == defender:
        return ADVANTAGE
    if _BEATS[defender] == attacker:
        return DISADVANTAGE
    return NEUTRAL


def effectiveness_of(multiplier: int) -> Effectiveness:
    if multiplier > NEUTRAL:
        return Effectiveness.SUPER_EFFECTIVE
    if multiplier < NEUTRAL:
        return Effectiveness.RESISTED
    return Effectiveness.NEUTRAL
