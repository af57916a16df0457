"""
Wire Encoding - Mapping protocol values onto transport amounts.

The transport carries one bounded positive integer per message. Ranges:

    draft pick      [1, 10]             champion_id + 1
    reveal move     [1, 20]             move
    reveal nonce    [21, 65_556]        nonce chunk + 21
    join            100
    accept          101
    leave           102
    commit chunk    [100_001, 165_536]  digest chunk + 1 + 100_000

Draft picks overlap the reveal-move range, so an amount alone is never
enough to classify a message; see signals.classifier.
"""

from __future__ import annotations

from ..engine_core.action import DRAFT_PICK_MAX, DRAFT_PICK_MIN, MOVE_MAX, MOVE_MIN
from ..errors import MalformedSignal
from .commitment import DEFAULT_SCHEME, Commitment, CommitmentScheme, Reveal

JOIN_SIGNAL = 100
ACCEPT_SIGNAL = 101
LEAVE_SIGNAL = 102

COMMIT_AMOUNT_OFFSET = 100_000
COMMIT_CHUNK_MIN = DEFAULT_SCHEME.part_offset + COMMIT_AMOUNT_OFFSET
COMMIT_CHUNK_MAX = DEFAULT_SCHEME.max_part + COMMIT_AMOUNT_OFFSET

NONCE_CHUNK_MIN = DEFAULT_SCHEME.nonce_offset
NONCE_CHUNK_MAX = DEFAULT_SCHEME.max_nonce_part

__all__ = [
    "JOIN_SIGNAL",
    "ACCEPT_SIGNAL",
    "LEAVE_SIGNAL",
    "COMMIT_AMOUNT_OFFSET",
    "COMMIT_CHUNK_MIN",
    "COMMIT_CHUNK_MAX",
    "NONCE_CHUNK_MIN",
    "NONCE_CHUNK_MAX",
    "DRAFT_PICK_MIN",
    "DRAFT_PICK_MAX",
    "MOVE_MIN",
    "MOVE_MAX",
    "is_commit_amount",
    "is_nonce_amount",
    "is_move_amount",
    "is_draft_pick_amount",
    "commitment_amounts",
    "reveal_amounts",
    "commit_part_from_amount",
]


def is_commit_amount(amount: int, scheme: CommitmentScheme = DEFAULT_SCHEME) -> bool:
    return scheme.part_offset + COMMIT_AMOUNT_OFFSET <= amount <= scheme.max_part + COMMIT_AMOUNT_OFFSET


def is_nonce_amount(amount: int, scheme: CommitmentScheme = DEFAULT_SCHEME) -> bool:
    return scheme.nonce_offset <= amount <= scheme.max_nonce_part


def is_move_amount(amount: int) -> bool:
    return MOVE_MIN <= amount <= MOVE_MAX


def is_draft_pick_amount(amount: int) -> bool:
    return DRAFT_PICK_MIN <= amount <= DRAFT_PICK_MAX


def commitment_amounts(commitment: Commitment) -> list[int]:
    """Amounts to send, one message per commitment part."""
    return [part + COMMIT_AMOUNT_OFFSET for part in commitment.parts]


def reveal_amounts(reveal: Reveal) -> list[int]:
    """Amounts to send: the move, then each nonce part."""
    return [reveal.move, *reveal.nonce_parts]


def commit_part_from_amount(amount: int, scheme: CommitmentScheme = DEFAULT_SCHEME) -> int:
    if not is_commit_amount(amount, scheme):
        raise MalformedSignal(
            f"Amount {amount} is outside the commit range "
            f"[{scheme.part_offset + COMMIT_AMOUNT_OFFSET}, {scheme.max_part + COMMIT_AMOUNT_OFFSET}]",
            details={"amount": amount},
        )
    return amount - COMMIT_AMOUNT_OFFSET
