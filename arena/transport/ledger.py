"""
Ledger Reader - Read-only view of externally settled round state.

Some deployments settle each round on an authoritative ledger that
re-verifies commitments itself. The phase machine can consume its
snapshots in place of (or as a fallback to) locally observed messages.

Slots are indexed by draft side: A is the host, B the joiner.
Winner codes: 0 = undecided, 1 = A, 2 = B, 3 = draw.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
import logging

from ..engine_core.draft import DraftSide
from ..protocol.commitment import DEFAULT_SCHEME, CommitmentScheme, verify_reveal

logger = logging.getLogger(__name__)


class LedgerWinner(IntEnum):
    NONE = 0
    A = 1
    B = 2
    DRAW = 3


@dataclass(frozen=True)
class SettledRound:
    """Moves the ledger accepted for one round, after its own verification."""
    round_number: int
    move_a: int
    move_b: int

    def move_of(self, side: DraftSide) -> int:
        return self.move_a if side == DraftSide.A else self.move_b


@dataclass(frozen=True)
class LedgerSnapshot:
    round_number: int
    commit_a: bool = False
    commit_b: bool = False
    reveal_a: bool = False
    reveal_b: bool = False
    winner: LedgerWinner = LedgerWinner.NONE
    settled: tuple[SettledRound, ...] = ()

    def commit_posted(self, side: DraftSide) -> bool:
        return self.commit_a if side == DraftSide.A else self.commit_b

    def settled_round(self, round_number: int) -> SettledRound | None:
        for entry in self.settled:
            if entry.round_number == round_number:
                return entry
        return None


class LedgerReader(ABC):
    @abstractmethod
    async def snapshot(self) -> LedgerSnapshot:
        pass


@dataclass
class InMemoryLedger(LedgerReader):
    """
    Local settlement account for tests and simulation.

    Stores both sides' commitment parts, verifies reveals with the shared
    scheme, and settles the round once both reveals verify.
    """
    scheme: CommitmentScheme = DEFAULT_SCHEME
    round_number: int = 1
    winner: LedgerWinner = LedgerWinner.NONE

    _commits: dict[DraftSide, tuple[int, ...]] = field(default_factory=dict)
    _reveals: dict[DraftSide, int] = field(default_factory=dict)
    _settled: list[SettledRound] = field(default_factory=list)

    def record_commit(self, side: DraftSide, parts: tuple[int, ...]) -> None:
        if side in self._commits:
            raise ValueError(f"Side {side.value} already committed for round {self.round_number}")
        self._commits[side] = tuple(parts)

    def record_reveal(self, side: DraftSide, move: int, nonce_parts: tuple[int, ...]) -> bool:
        """Returns False (and records nothing) when the reveal does not verify."""
        parts = self._commits.get(side)
        if parts is None or not verify_reveal(move, nonce_parts, parts, self.scheme):
            logger.warning("Ledger rejected reveal from side %s in round %d", side.value, self.round_number)
            return False
        self._reveals[side] = move
        if len(self._reveals) == 2:
            self._settled.append(SettledRound(
                self.round_number, self._reveals[DraftSide.A], self._reveals[DraftSide.B],
            ))
            self.round_number += 1
            self._commits.clear()
            self._reveals.clear()
        return True

    def declare_winner(self, winner: LedgerWinner) -> None:
        self.winner = winner

    async def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            round_number=self.round_number,
            commit_a=DraftSide.A in self._commits,
            commit_b=DraftSide.B in self._commits,
            reveal_a=DraftSide.A in self._reveals,
            reveal_b=DraftSide.B in self._reveals,
            winner=self.winner,
            settled=tuple(self._settled),
        )
