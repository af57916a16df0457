"""
Signal Types - Closed set of typed interpretations of inbound messages.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class SignalKind(Enum):
    """
    Signal categories. The value doubles as the message tag on the wire.
    """
    JOIN = "join"
    ACCEPT = "accept"
    LEAVE = "leave"
    DRAFT_PICK = "draft_pick"
    COMMIT = "commit"
    REVEAL = "reveal"
    MALFORMED = "malformed"


class RevealPart(Enum):
    MOVE = "move"
    NONCE = "nonce"


class Stage(Enum):
    """Match stage, used to classify untagged amounts whose ranges overlap."""
    LOBBY = "lobby"
    DRAFT = "draft"
    BATTLE = "battle"


@dataclass(frozen=True)
class Signal:
    """
    A classified message.

    value holds the decoded payload: champion id for draft picks, the
    raw commitment part for commits, the move or nonce part for reveals.
    """
    kind: SignalKind
    message_id: str
    sender: str
    amount: int
    value: int | None = None
    reveal_part: RevealPart | None = None
    reason: str = ""


@dataclass(frozen=True)
class CommitGroup:
    """Both commitment parts from one sender."""
    sender: str
    parts: tuple[int, ...]
    message_ids: tuple[str, ...]


@dataclass(frozen=True)
class RevealGroup:
    """A move and its nonce parts from one sender."""
    sender: str
    move: int
    nonce_parts: tuple[int, ...]
    message_ids: tuple[str, ...]
