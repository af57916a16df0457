"""
Local Match - Two sessions wired over one in-memory network.

Used for bot-vs-bot simulation, practice matches behind the HTTP API,
and end-to-end tests. Both sides run the full protocol (lobby, draft
picks, commit/reveal) over the network.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar
import asyncio

from ..config import ArenaConfig
from ..engine_core.action import TurnAction
from ..engine_core.draft import DraftSide, DraftState
from ..transport.memory import InMemoryNetwork
from .manager import MatchSession, SessionManager
from .turn_machine import RoundPhase

T = TypeVar("T")

PickFn = Callable[[DraftState, DraftSide], int]


@dataclass
class LocalMatch:
    network: InMemoryNetwork
    host: MatchSession
    joiner: MatchSession

    @classmethod
    async def connect(
        cls,
        config: ArenaConfig | None = None,
        host_id: str = "host",
        joiner_id: str = "joiner",
        network: InMemoryNetwork | None = None,
        manager: SessionManager | None = None,
    ) -> LocalMatch:
        """Create both sessions and run the join/accept handshake."""
        network = network or InMemoryNetwork()
        manager = manager or SessionManager(config)
        host = manager.create_session(network.transport(host_id))
        joiner = manager.create_session(network.transport(joiner_id))

        hosting = asyncio.ensure_future(host.host())
        await asyncio.sleep(0)
        try:
            await joiner.join(host_id)
            await hosting
        except BaseException:
            hosting.cancel()
            raise
        return cls(network, host, joiner)

    def session_for(self, side: DraftSide) -> MatchSession:
        return self.host if side == DraftSide.A else self.joiner

    async def draft(self, host_pick: PickFn, joiner_pick: PickFn) -> DraftState:
        """Run the snake draft to completion and start the battle on both sides."""
        await gather_or_cancel(
            _draft_side(self.host, host_pick),
            _draft_side(self.joiner, joiner_pick),
        )

        self.host.start_battle()
        self.joiner.start_battle()
        return self.host.draft

    async def play_round(
        self, host_action: TurnAction, joiner_action: TurnAction,
    ) -> tuple[RoundPhase, RoundPhase]:
        """Both sides submit and wait concurrently."""
        return tuple(await gather_or_cancel(
            self.host.play_round(host_action),
            self.joiner.play_round(joiner_action),
        ))

    @property
    def is_over(self) -> bool:
        return not (self.host.is_active() and self.joiner.is_active())


async def _draft_side(session: MatchSession, choose: PickFn) -> None:
    while not session.draft.is_complete:
        if session.is_my_pick():
            await session.pick(choose(session.draft, session.my_side))
        else:
            await session.wait_for_opponent_picks()


async def gather_or_cancel(*coros: Awaitable[T]) -> list[T]:
    """Like asyncio.gather, but the first failure cancels the others."""
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
