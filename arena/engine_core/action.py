"""
Action Codec - Turn actions and their integer encodings.

Move encoding (combat):
    move = champion_id * ABILITIES_PER_CHAMPION + ability_index + 1
    valid range [MOVE_MIN, MOVE_MAX] = [1, 20]

Draft pick encoding:
    pick = champion_id + 1
    valid range [1, POOL_SIZE] = [1, 10]

Both encodings are strict bijections over their domains. Anything outside
the domain raises InvalidMove; values are never clamped.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..errors import InvalidMove
from ..games.champions import POOL_SIZE, ABILITIES_PER_CHAMPION

MOVE_MIN = 1
MOVE_MAX = POOL_SIZE * ABILITIES_PER_CHAMPION

DRAFT_PICK_MIN = 1
DRAFT_PICK_MAX = POOL_SIZE


@dataclass(frozen=True)
class TurnAction:
    """A (unit, ability) selection for one round."""
    champion_id: int
    ability_index: int

    def to_dict(self) -> dict[str, int]:
        return {"champion_id": self.champion_id, "ability_index": self.ability_index}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def encode_move(action: TurnAction) -> int:
    """Encode an action as a move in [MOVE_MIN, MOVE_MAX]."""
    if not _is_int(action.champion_id) or not 0 <= action.champion_id < POOL_SIZE:
        raise InvalidMove(
            f"Champion id out of range: {action.champion_id}",
            details={"champion_id": action.champion_id},
        )
    if not _is_int(action.ability_index) or not 0 <= action.ability_index < ABILITIES_PER_CHAMPION:
        raise InvalidMove(
            f"Ability index out of range: {action.ability_index}",
            details={"ability_index": action.ability_index},
        )
    return action.champion_id * ABILITIES_PER_CHAMPION + action.ability_index + 1


def decode_move(move: int) -> TurnAction:
    """Decode a move back to its action. Raises InvalidMove when out of range."""
    if not _is_int(move) or not MOVE_MIN <= move <= MOVE_MAX:
        raise InvalidMove(f"Move out of range [{MOVE_MIN}, {MOVE_MAX}]: {move!r}", details={"move": move})
    index = move - 1
    return TurnAction(
        champion_id=index // ABILITIES_PER_CHAMPION,
        ability_index=index % ABILITIES_PER_CHAMPION,
    )


def is_valid_move(move: int) -> bool:
    return _is_int(move) and MOVE_MIN <= move <= MOVE_MAX


def encode_draft_pick(champion_id: int) -> int:
    if not _is_int(champion_id) or not 0 <= champion_id < POOL_SIZE:
        raise InvalidMove(f"Champion id out of range: {champion_id!r}", details={"champion_id": champion_id})
    return champion_id + 1


def decode_draft_pick(pick: int) -> int:
    if not _is_int(pick) or not DRAFT_PICK_MIN <= pick <= DRAFT_PICK_MAX:
        raise InvalidMove(
            f"Draft pick out of range [{DRAFT_PICK_MIN}, {DRAFT_PICK_MAX}]: {pick!r}",
            details={"pick": pick},
        )
    return pick - 1
