"""
Pydantic Schemas for API - Request/response models for OpenAPI.

Error Codes:
- INVALID_MOVE: Champion/ability outside the domain, or a unit that cannot act
- NOT_MY_TURN_OR_WRONG_PHASE: Operation not legal in the current phase
- TRANSPORT_SEND_FAILED: Send failed; safe to retry
- VERIFICATION_FAILED: Opponent reveal did not match their commitment
- OPPONENT_TIMEOUT: Opponent did not act in time
- MATCH_ABANDONED: Opponent left the match
- INVALID_PICK: Draft pick out of turn or not in the pool
- MATCH_NOT_FOUND: Match does not exist or has ended
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class MatchStatus(str, Enum):
    """Match status values."""
    ACTIVE = "active"
    GAME_OVER = "game_over"
    ABANDONED = "abandoned"


class ErrorCode(str, Enum):
    """Error codes returned in ErrorResponse."""
    INVALID_MOVE = "INVALID_MOVE"
    NOT_MY_TURN_OR_WRONG_PHASE = "NOT_MY_TURN_OR_WRONG_PHASE"
    TRANSPORT_SEND_FAILED = "TRANSPORT_SEND_FAILED"
    INITIAL_STATE_MISMATCH = "INITIAL_STATE_MISMATCH"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    MALFORMED_SIGNAL = "MALFORMED_SIGNAL"
    OPPONENT_TIMEOUT = "OPPONENT_TIMEOUT"
    MATCH_ABANDONED = "MATCH_ABANDONED"
    INVALID_PICK = "INVALID_PICK"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    ARENA_ERROR = "ARENA_ERROR"


# =============================================================================
# Roster
# =============================================================================

class AbilityInfo(BaseModel):
    """One champion ability."""
    index: int
    name: str
    ability_type: str
    power: int = 0
    heal_amount: int = 0
    stat: Optional[str] = None
    stat_value: int = 0
    duration: int = 0
    is_debuff: bool = False
    description: str = ""
    move: int = Field(..., description="Encoded move for this ability (1-20)")


class ChampionInfo(BaseModel):
    """Static champion data."""
    id: int
    name: str
    element: str
    hp: int
    attack: int
    defense: int
    speed: int
    abilities: list[AbilityInfo]


class RosterResponse(BaseModel):
    champions: list[ChampionInfo]
    count: int


# =============================================================================
# Battle state
# =============================================================================

class ModifierInfo(BaseModel):
    stat: str
    value: int
    turns_remaining: int
    is_debuff: bool

    model_config = {"from_attributes": True}


class UnitInfo(BaseModel):
    """Runtime state of one drafted champion."""
    champion_id: int
    name: str
    current_hp: int
    max_hp: int
    modifiers: list[ModifierInfo] = Field(default_factory=list)
    burn_turns: int = 0
    is_ko: bool = False
    total_damage_dealt: int = 0


class EventInfo(BaseModel):
    """One battle log entry."""
    round_number: int
    type: str
    actor_id: int
    target_id: Optional[int] = None
    amount: Optional[int] = None
    new_hp: Optional[int] = None
    multiplier: Optional[int] = None
    effectiveness: Optional[str] = None
    stat: Optional[str] = None
    duration: Optional[int] = None


class ResultInfo(BaseModel):
    """Final result, from the player's point of view."""
    winner: str = Field(..., description="me, opponent or draw")
    mvp_id: Optional[int] = None
    rounds: int
    decided_by: str = "local"


class ActionInfo(BaseModel):
    champion_id: int
    ability_index: int


# =============================================================================
# Requests
# =============================================================================

class CreateMatchRequest(BaseModel):
    """Start a practice match against a bot."""
    team: Optional[list[int]] = Field(
        default=None,
        description="3 champion ids in pick order; drafted automatically when omitted",
    )
    bot: str = Field(default="greedy", description="Bot policy: random, first or greedy")
    seed: Optional[int] = Field(default=None, description="Seed for random policies")


class MoveRequest(BaseModel):
    champion_id: int = Field(..., ge=0)
    ability_index: int = Field(..., ge=0)


# =============================================================================
# Responses
# =============================================================================

class MatchResponse(BaseModel):
    """Full match snapshot."""
    match_id: str
    status: MatchStatus
    phase: str
    round_number: int
    my_team: list[UnitInfo]
    opponent_team: list[UnitInfo]
    draft_order: list[int] = Field(default_factory=list)
    result: Optional[ResultInfo] = None
    last_error: Optional[str] = None
    last_error_code: Optional[str] = None
    retryable: bool = False


class MoveResponse(BaseModel):
    """Outcome of one resolved round."""
    match_id: str
    round_number: int
    my_action: ActionInfo
    opponent_action: Optional[ActionInfo] = None
    events: list[EventInfo]
    match: MatchResponse


class EventsResponse(BaseModel):
    match_id: str
    events: list[EventInfo]
    count: int


class MatchListResponse(BaseModel):
    matches: list[str]
    count: int


class EndMatchResponse(BaseModel):
    success: bool
    match_id: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    error_code: ErrorCode
    retryable: bool = False
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    env: str
