"""
API Module - HTTP interface for practice matches.

Exposes the battle core via a REST API:
1. Browse the roster
2. Create a match against a bot (lobby handshake and draft run server-side)
3. Submit one move per round and read back the round's events
4. Follow a match over a WebSocket

All state is in memory. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateMatchRequest,
    MoveRequest,
    # Responses
    MatchResponse,
    MoveResponse,
    EventsResponse,
    RosterResponse,
    ErrorResponse,
    # Shared
    ChampionInfo,
    UnitInfo,
    EventInfo,
)
from .service import APIService, MatchNotFound
from .app import create_app

__all__ = [
    # Requests
    "CreateMatchRequest",
    "MoveRequest",
    # Responses
    "MatchResponse",
    "MoveResponse",
    "EventsResponse",
    "RosterResponse",
    "ErrorResponse",
    # Shared
    "ChampionInfo",
    "UnitInfo",
    "EventInfo",
    # Service
    "APIService",
    "MatchNotFound",
    "create_app",
]
