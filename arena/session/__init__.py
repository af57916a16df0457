"""
Session Module - Match lifecycle and round orchestration.

Components:
- TurnPhaseMachine: synchronous per-round state machine
- BattleLoop: async driver over a transport
- MatchSession / SessionManager: lobby, draft, battle, leave
- LocalMatch: two sessions over an in-memory network
"""

from .turn_machine import (
    RoundPhase,
    TurnPhaseMachine,
    MatchResult,
    LocalCommitSent,
    LocalCommitFailed,
    OpponentCommitObserved,
    LocalRevealSent,
    LocalRevealFailed,
    OpponentRevealObserved,
    LedgerObserved,
    AnimationFinished,
    OpponentLeft,
    SendCommit,
    SendReveal,
    StartAnimation,
    PhaseChanged,
    EventsEmitted,
    MatchDecided,
)
from .game_loop import BattleLoop
from .manager import MatchSession, SessionManager, SessionState, Role
from .local_match import LocalMatch, gather_or_cancel

__all__ = [
    "RoundPhase",
    "TurnPhaseMachine",
    "MatchResult",
    "LocalCommitSent",
    "LocalCommitFailed",
    "OpponentCommitObserved",
    "LocalRevealSent",
    "LocalRevealFailed",
    "OpponentRevealObserved",
    "LedgerObserved",
    "AnimationFinished",
    "OpponentLeft",
    "SendCommit",
    "SendReveal",
    "StartAnimation",
    "PhaseChanged",
    "EventsEmitted",
    "MatchDecided",
    "BattleLoop",
    "MatchSession",
    "SessionManager",
    "SessionState",
    "Role",
    "LocalMatch",
    "gather_or_cancel",
]
