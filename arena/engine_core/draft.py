"""
Draft - Snake draft over the champion pool.

Order is A, B, B, A, A, B where A is the host. Each side ends with
TEAM_SIZE champions. Every apply_pick returns a new DraftState.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum

from ..errors import DraftError
from ..games.champions import POOL_SIZE


class DraftSide(Enum):
    A = "A"  # host
    B = "B"  # joiner


DRAFT_ORDER: tuple[DraftSide, ...] = (
    DraftSide.A, DraftSide.B, DraftSide.B, DraftSide.A, DraftSide.A, DraftSide.B,
)
TEAM_SIZE = 3


def initial_pool() -> tuple[int, ...]:
    return tuple(range(POOL_SIZE))


@dataclass(frozen=True)
class DraftState:
    pool: tuple[int, ...] = field(default_factory=initial_pool)
    team_a: tuple[int, ...] = ()
    team_b: tuple[int, ...] = ()

    @property
    def pick_number(self) -> int:
        return len(self.team_a) + len(self.team_b)

    @property
    def is_complete(self) -> bool:
        return len(self.team_a) == TEAM_SIZE and len(self.team_b) == TEAM_SIZE

    def current_picker(self) -> DraftSide | None:
        if self.is_complete:
            return None
        return DRAFT_ORDER[self.pick_number]

    def team_of(self, side: DraftSide) -> tuple[int, ...]:
        return self.team_a if side == DraftSide.A else self.team_b

    def apply_pick(self, side: DraftSide, champion_id: int) -> DraftState:
        """Record a pick. Raises DraftError when out of turn or not in the pool."""
        picker = self.current_picker()
        if picker is None:
            raise DraftError("Draft is already complete")
        if picker != side:
            raise DraftError(
                f"Side {side.value} picked out of turn (pick {self.pick_number} belongs to {picker.value})",
                details={"pick_number": self.pick_number},
            )
        if champion_id not in self.pool:
            raise DraftError(
                f"Champion {champion_id} is not in the pool",
                details={"champion_id": champion_id},
            )
        pool = tuple(c for c in self.pool if c != champion_id)
        if side == DraftSide.A:
            return replace(self, pool=pool, team_a=self.team_a + (champion_id,))
        return replace(self, pool=pool, team_b=self.team_b + (champion_id,))
