"""
Commitment Engine - Commit-reveal for hidden simultaneous moves.

Scheme (defaults):
- nonce: 4 random bytes from `secrets`, fresh per commitment
- digest: hash(bytes([move]) + nonce), sha256 by default
- commitment parts: first 4 digest bytes as two big-endian 16-bit
  chunks, each + 1 so no part is ever zero
- reveal nonce parts: the nonce as two big-endian 16-bit chunks, each
  + 21 so they never overlap the move range [1, 20]

Both players of a match must use the same CommitmentScheme.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from itertools import permutations
import hashlib
import secrets

from ..engine_core.action import MOVE_MAX, MOVE_MIN, is_valid_move
from ..errors import InvalidMove

SUPPORTED_HASHES = ("sha256", "blake2s")


@dataclass(frozen=True)
class CommitmentScheme:
    """Hash and chunking convention shared by both sides of a match."""
    hash_name: str = "sha256"
    chunk_bits: int = 16
    chunk_count: int = 2
    nonce_bytes: int = 4
    part_offset: int = 1
    nonce_offset: int = MOVE_MAX + 1

    def __post_init__(self):
        if self.hash_name not in SUPPORTED_HASHES:
            raise ValueError(
                f"Unsupported hash scheme: {self.hash_name} (expected one of {SUPPORTED_HASHES})"
            )
        if self.chunk_bits % 8 != 0:
            raise ValueError("chunk_bits must be a whole number of bytes")
        if self.nonce_bytes != self.chunk_bytes * self.chunk_count:
            raise ValueError("nonce_bytes must split evenly into chunk_count chunks")

    @property
    def chunk_bytes(self) -> int:
        return self.chunk_bits // 8

    @property
    def max_part(self) -> int:
        """Largest commitment part value."""
        return (1 << self.chunk_bits) - 1 + self.part_offset

    @property
    def max_nonce_part(self) -> int:
        return (1 << self.chunk_bits) - 1 + self.nonce_offset

    def digest(self, move: int, nonce: bytes) -> bytes:
        return hashlib.new(self.hash_name, bytes([move]) + nonce).digest()

    def split(self, data: bytes, offset: int) -> tuple[int, ...]:
        width = self.chunk_bytes
        return tuple(
            int.from_bytes(data[i * width:(i + 1) * width], "big") + offset
            for i in range(self.chunk_count)
        )

    def commitment_parts(self, move: int, nonce: bytes) -> tuple[int, ...]:
        return self.split(self.digest(move, nonce), self.part_offset)

    def join_nonce(self, nonce_parts: tuple[int, ...] | list[int]) -> bytes | None:
        """Reassemble a nonce from its parts. None if any part is out of range."""
        chunks = []
        for part in nonce_parts:
            raw = part - self.nonce_offset
            if not 0 <= raw < (1 << self.chunk_bits):
                return None
            chunks.append(raw.to_bytes(self.chunk_bytes, "big"))
        return b"".join(chunks)


DEFAULT_SCHEME = CommitmentScheme()


def get_scheme(hash_name: str) -> CommitmentScheme:
    """Scheme with default chunking for a given hash name."""
    if hash_name == DEFAULT_SCHEME.hash_name:
        return DEFAULT_SCHEME
    return CommitmentScheme(hash_name=hash_name)


@dataclass(frozen=True)
class Reveal:
    move: int
    nonce_parts: tuple[int, ...]


@dataclass(frozen=True)
class Commitment:
    """
    A hidden move.

    Held by its creator until reveal time. Only `parts` is ever published
    before the reveal.
    """
    move: int
    nonce: bytes = field(repr=False)
    parts: tuple[int, ...]
    scheme: CommitmentScheme = DEFAULT_SCHEME

    def reveal(self) -> Reveal:
        return create_reveal(self.move, self.nonce, self.scheme)


def create_commitment(move: int, scheme: CommitmentScheme = DEFAULT_SCHEME) -> Commitment:
    """Commit to a move with a fresh random nonce."""
    if not is_valid_move(move):
        raise InvalidMove(f"Move out of range [{MOVE_MIN}, {MOVE_MAX}]: {move!r}", details={"move": move})
    nonce = secrets.token_bytes(scheme.nonce_bytes)
    return Commitment(move, nonce, scheme.commitment_parts(move, nonce), scheme)


def create_reveal(move: int, nonce: bytes, scheme: CommitmentScheme = DEFAULT_SCHEME) -> Reveal:
    if len(nonce) != scheme.nonce_bytes:
        raise ValueError(f"Nonce must be {scheme.nonce_bytes} bytes, got {len(nonce)}")
    return Reveal(move, scheme.split(nonce, scheme.nonce_offset))


def verify_reveal(
    move: int,
    nonce_parts: tuple[int, ...] | list[int],
    commitment_parts: tuple[int, ...] | list[int],
    scheme: CommitmentScheme = DEFAULT_SCHEME,
) -> bool:
    """
    Check a reveal against a published commitment.

    Parts may arrive in any relative order, so every ordering of the
    nonce parts is tried and commitment parts are compared as a multiset.
    Returns False on any mismatch or malformed input; never raises.
    """
    if not is_valid_move(move):
        return False
    if len(nonce_parts) != scheme.chunk_count or len(commitment_parts) != scheme.chunk_count:
        return False
    expected = sorted(commitment_parts)
    for ordering in _orderings(tuple(nonce_parts)):
        nonce = scheme.join_nonce(ordering)
        if nonce is None:
            return False
        if sorted(scheme.commitment_parts(move, nonce)) == expected:
            return True
    return False


def _orderings(parts: tuple[int, ...]) -> list[tuple[int, ...]]:
    seen: list[tuple[int, ...]] = []
    for ordering in permutations(parts):
        if ordering not in seen:
            seen.append(ordering)
    return seen
