"""
Engine Core - Deterministic battle state and combat resolution.

The engine:
1. Encodes and decodes turn actions (move codec)
2. Builds team state from draft results
3. Resolves simultaneous rounds into new state plus an event log
4. Decides winner and MVP
"""

from .state import Modifier, BattleUnit, TeamState
from .action import (
    TurnAction,
    MOVE_MIN,
    MOVE_MAX,
    encode_move,
    decode_move,
    is_valid_move,
    encode_draft_pick,
    decode_draft_pick,
)
from .events import EventType, TurnEvent
from .resolver import (
    Winner,
    TurnOutcome,
    resolve_turn,
    init_unit_state,
    init_team,
    is_team_eliminated,
    determine_winner,
    find_mvp,
)
from .draft import DraftSide, DraftState, DRAFT_ORDER, TEAM_SIZE

__all__ = [
    "Modifier",
    "BattleUnit",
    "TeamState",
    "TurnAction",
    "MOVE_MIN",
    "MOVE_MAX",
    "encode_move",
    "decode_move",
    "is_valid_move",
    "encode_draft_pick",
    "decode_draft_pick",
    "EventType",
    "TurnEvent",
    "Winner",
    "TurnOutcome",
    "resolve_turn",
    "init_unit_state",
    "init_team",
    "is_team_eliminated",
    "determine_winner",
    "find_mvp",
    "DraftSide",
    "DraftState",
    "DRAFT_ORDER",
    "TEAM_SIZE",
]
