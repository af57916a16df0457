"""
Champion Roster - Static champion and ability definitions.

Roster structure:
- 10 champions, ids 0-9 (the draft pool)
- 2 abilities per champion
- Base stats: hp, attack, defense, speed
- One element tag each

Ability types:
- damage: power-scaled hit modified by element and defense
- heal: restores a fixed amount to the caster
- stat_mod: timed buff on self or debuff on the opponent
- damage_dot: a hit that also sets a burn counter on the target
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .elements import Element


class AbilityType(Enum):
    """Effect families an ability can have."""
    DAMAGE = "damage"
    HEAL = "heal"
    STAT_MOD = "stat_mod"
    DAMAGE_DOT = "damage_dot"


class StatKind(Enum):
    """Stats a modifier can touch."""
    ATTACK = "attack"
    DEFENSE = "defense"
    SPEED = "speed"


@dataclass(frozen=True)
class Ability:
    """
    A champion ability.

    Only the fields relevant to the ability type are set:
    damage/damage_dot use power, heal uses heal_amount, stat_mod uses
    stat/stat_value/is_debuff, and duration is shared by stat_mod
    (modifier turns) and damage_dot (burn turns).
    """
    name: str
    ability_type: AbilityType
    power: int = 0
    heal_amount: int = 0
    stat: StatKind | None = None
    stat_value: int = 0
    duration: int = 0
    is_debuff: bool = False
    description: str = ""


@dataclass(frozen=True)
class Champion:
    """Static champion definition. Never mutated during a match."""
    id: int
    name: str
    hp: int
    attack: int
    defense: int
    speed: int
    element: Element
    abilities: tuple[Ability, ...]


def _damage(name: str, power: int, description: str) -> Ability:
    return Ability(name, AbilityType.DAMAGE, power=power, description=description)


def _stat(name: str, stat: StatKind, value: int, duration: int,
          description: str, is_debuff: bool = False) -> Ability:
    return Ability(
        name,
        AbilityType.STAT_MOD,
        stat=stat,
        stat_value=value,
        duration=duration,
        is_debuff=is_debuff,
        description=description,
    )


CHAMPIONS: tuple[Champion, ...] = (
    Champion(0, "Inferno", 80, 20, 5, 16, Element.FIRE, (
        _damage("Eruption", 35, "Erupts with volcanic fury"),
        _damage("Scorch", 20, "Sears the target with intense heat"),
    )),
    Champion(1, "Boulder", 140, 14, 16, 5, Element.EARTH, (
        _damage("Rock Slam", 28, "Smashes with a massive boulder"),
        _stat("Fortify", StatKind.DEFENSE, 6, 2, "Hardens skin like stone (+6 DEF)"),
    )),
    Champion(2, "Ember", 90, 16, 8, 14, Element.FIRE, (
        _damage("Fireball", 25, "Hurls a blazing fireball"),
        _stat("Flame Shield", StatKind.DEFENSE, 5, 2, "Wraps in protective flames (+5 DEF)"),
    )),
    Champion(3, "Torrent", 110, 12, 12, 10, Element.WATER, (
        _damage("Tidal Wave", 22, "Unleashes a crushing wave"),
        Ability("Heal", AbilityType.HEAL, heal_amount=25,
                description="Restores 25 HP with healing waters"),
    )),
    Champion(4, "Gale", 75, 15, 6, 18, Element.WIND, (
        _damage("Wind Blade", 24, "Slices with razor-sharp wind"),
        _stat("Haste", StatKind.SPEED, 5, 2, "Accelerates to blinding speed (+5 SPD)"),
    )),
    Champion(5, "Tide", 100, 11, 14, 9, Element.WATER, (
        _damage("Whirlpool", 20, "Drags foe into a whirlpool"),
        _stat("Mist", StatKind.ATTACK, 4, 2, "Shrouds enemy in mist (-4 ATK)", is_debuff=True),
    )),
    Champion(6, "Quake", 130, 13, 15, 7, Element.EARTH, (
        _damage("Earthquake", 26, "Shakes the earth violently"),
        _stat("Stone Wall", StatKind.DEFENSE, 8, 1, "Raises a stone barrier (+8 DEF)"),
    )),
    Champion(7, "Storm", 85, 17, 7, 15, Element.WIND, (
        _damage("Lightning", 30, "Strikes with lightning"),
        _stat("Dodge", StatKind.SPEED, 6, 2, "Enhances evasive reflexes (+6 SPD)"),
    )),
    Champion(8, "Cinder", 95, 15, 9, 12, Element.FIRE, (
        Ability("Immolate", AbilityType.DAMAGE_DOT, power=18, duration=3,
                description="Sets the target ablaze for 3 turns"),
        _stat("Kindle", StatKind.ATTACK, 4, 2, "Stokes the inner fire (+4 ATK)"),
    )),
    Champion(9, "Monsoon", 105, 13, 11, 11, Element.WATER, (
        _damage("Downpour", 24, "Batters the foe with rain"),
        _stat("Riptide", StatKind.ATTACK, 3, 2, "Drags the foe off balance (-3 ATK)", is_debuff=True),
    )),
)

POOL_SIZE = len(CHAMPIONS)
ABILITIES_PER_CHAMPION = 2


def get_champion(champion_id: int) -> Champion:
    """Look up a champion by id. Raises KeyError for unknown ids."""
    if not 0 <= champion_id < POOL_SIZE:
        raise KeyError(f"Unknown champion id: {champion_id}")
    return CHAMPIONS[champion_id]


def get_ability(champion_id: int, ability_index: int) -> Ability:
    """Look up one ability of a champion. Raises KeyError when out of range."""
    champion = get_champion(champion_id)
    if not 0 <= ability_index < len(champion.abilities):
        raise KeyError(f"Champion {champion_id} has no ability {ability_index}")
    return champion.abilities[ability_index]
