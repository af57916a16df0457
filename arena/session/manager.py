"""
Session Manager - Creates and manages match sessions.

LIFECYCLE:
1. Lobby: host waits for a join signal and answers with accept; the
   joiner sends join and waits for accept
2. Draft: snake draft over the transport (A = host)
3. Battle: rounds driven by a BattleLoop around a TurnPhaseMachine
4. Game over or leave: session reset, handled-sets kept

STALE MESSAGES:
- Hosting snapshots every visible join signal
- Once the joiner is known, everything it sent before is snapshotted
- Joining snapshots everything the host sent before the join
Neither side can have sent anything for this match before those
snapshots, so nothing genuine is ever skipped.

All state is in memory and owned by the session object; several
sessions can run side by side in one process.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar
import asyncio
import logging
import time
import uuid

from ..config import ArenaConfig
from ..engine_core.action import TurnAction, encode_draft_pick
from ..engine_core.draft import DraftSide, DraftState
from ..engine_core.resolver import init_team
from ..errors import DraftError, MatchAbandoned, OpponentTimeout, WrongPhaseError
from ..protocol import wire
from ..protocol.commitment import get_scheme
from ..signals import SignalClassifier, SignalKind, Stage
from ..transport.adapter import Message, TransportAdapter
from ..transport.ledger import LedgerReader
from ..transport.send_queue import SendQueue
from .game_loop import BattleLoop
from .turn_machine import RoundPhase, TurnPhaseMachine

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_KINDS = frozenset(SignalKind)


class SessionState(Enum):
    """State of a match session."""
    IDLE = "idle"
    HOSTING = "hosting"  # Waiting for a join signal
    JOINING = "joining"  # Waiting for the host's accept
    DRAFTING = "drafting"
    BATTLE = "battle"
    GAME_OVER = "game_over"
    ABANDONED = "abandoned"  # Opponent left or integrity failure


class Role(Enum):
    HOST = "host"
    JOINER = "joiner"


@dataclass
class MatchSession:
    """
    One player's side of a match.

    Owns the classifier (handled-sets), the send queue and, once the
    draft completes, the phase machine and its battle loop.
    """
    session_id: str
    transport: TransportAdapter
    config: ArenaConfig = field(default_factory=ArenaConfig)
    ledger: LedgerReader | None = None
    created_at: float = field(default_factory=time.time)

    state: SessionState = SessionState.IDLE
    role: Role | None = None
    opponent_id: str | None = None
    draft: DraftState = field(default_factory=DraftState)

    classifier: SignalClassifier = field(init=False)
    queue: SendQueue = field(init=False)
    machine: TurnPhaseMachine | None = None
    loop: BattleLoop | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.scheme = get_scheme(self.config.hash_scheme)
        self.classifier = SignalClassifier(Stage.LOBBY, self.scheme)
        self.queue = SendQueue(
            self.transport,
            max_attempts=self.config.send_max_attempts,
            retry_delay=self.config.send_retry_delay,
        )

    @property
    def account_id(self) -> str:
        return self.transport.account_id

    @property
    def my_side(self) -> DraftSide:
        return DraftSide.B if self.role == Role.JOINER else DraftSide.A

    @property
    def opponent_side(self) -> DraftSide:
        return DraftSide.A if self.my_side == DraftSide.B else DraftSide.B

    def is_active(self) -> bool:
        return self.state in {
            SessionState.HOSTING,
            SessionState.JOINING,
            SessionState.DRAFTING,
            SessionState.BATTLE,
        }

    # -------------------------------------------------------------------------
    # Lobby
    # -------------------------------------------------------------------------

    async def host(self, timeout: float | None = None) -> str:
        """Wait for a joiner, accept it, and return its account id."""
        if self.opponent_id is not None:
            await self.leave()

        self.role = Role.HOST
        self.state = SessionState.HOSTING
        self.classifier.stage = Stage.LOBBY
        await self._capture_baseline({SignalKind.JOIN})
        logger.info("%s hosting", self.account_id)

        async def next_join() -> str | None:
            joins = self.classifier.take_signals(await self.transport.observe(), SignalKind.JOIN)
            return joins[0].sender if joins else None

        joiner = await self._wait_for(next_join, timeout, "join signal")
        self.opponent_id = joiner
        self.classifier.capture_baseline(await self.transport.observe(joiner), ALL_KINDS, sender=joiner)
        await self.queue.send(joiner, wire.ACCEPT_SIGNAL, SignalKind.ACCEPT.value)
        self._enter_draft()
        logger.info("%s accepted %s", self.account_id, joiner)
        return joiner

    async def join(self, host_id: str, timeout: float | None = None) -> None:
        """Ask a host to start a match and wait for its accept."""
        if self.opponent_id is not None:
            await self.leave()

        self.role = Role.JOINER
        self.state = SessionState.JOINING
        self.opponent_id = host_id
        self.classifier.stage = Stage.LOBBY
        await self._capture_baseline(ALL_KINDS, sender=host_id)
        await self.queue.send(host_id, wire.JOIN_SIGNAL, SignalKind.JOIN.value)
        logger.info("%s sent join to %s", self.account_id, host_id)

        async def accepted() -> bool | None:
            messages = await self.transport.observe(host_id)
            return True if self.classifier.take_signals(messages, SignalKind.ACCEPT, host_id) else None

        await self._wait_for(accepted, timeout, "accept signal")
        self._enter_draft()

    async def _capture_baseline(self, kinds, sender: str | None = None) -> None:
        if self.transport.ready:
            self.classifier.capture_baseline(await self.transport.observe(sender), kinds, sender=sender)
            return
        self.classifier.capture_baseline(None, kinds, sender=sender)

        async def first_cycle() -> bool | None:
            if not self.transport.ready:
                return None
            self.classifier.apply_deferred(await self.transport.observe(sender))
            return True

        await self._wait_for(first_cycle, None, "observer readiness")

    def _enter_draft(self) -> None:
        self.state = SessionState.DRAFTING
        self.draft = DraftState()
        self.classifier.stage = Stage.DRAFT

    # -------------------------------------------------------------------------
    # Draft
    # -------------------------------------------------------------------------

    def is_my_pick(self) -> bool:
        return self.draft.current_picker() == self.my_side

    async def pick(self, champion_id: int) -> DraftState:
        """Pick a champion and send the pick to the opponent."""
        self._require(SessionState.DRAFTING)
        if not self.is_my_pick():
            raise DraftError(
                f"Not {self.account_id}'s pick (pick {self.draft.pick_number})",
                details={"pick_number": self.draft.pick_number},
            )
        updated = self.draft.apply_pick(self.my_side, champion_id)
        await self.queue.send(self.opponent_id, encode_draft_pick(champion_id), SignalKind.DRAFT_PICK.value)
        self.draft = updated
        logger.debug("%s picked %d", self.account_id, champion_id)
        return self.draft

    async def wait_for_opponent_picks(self, timeout: float | None = None) -> DraftState:
        """Apply opponent picks until it is our turn or the draft is complete."""
        self._require(SessionState.DRAFTING)

        async def opponent_done() -> bool | None:
            if self.draft.is_complete or self.is_my_pick():
                return True
            messages = await self.transport.observe(self.opponent_id)
            self._check_left(messages)
            for signal in self.classifier.take_signals(messages, SignalKind.DRAFT_PICK, self.opponent_id):
                self.draft = self.draft.apply_pick(self.opponent_side, signal.value)
                logger.debug("%s saw opponent pick %d", self.account_id, signal.value)
            if self.draft.is_complete or self.is_my_pick():
                return True
            return None

        await self._wait_for(opponent_done, timeout, "opponent draft pick")
        return self.draft

    # -------------------------------------------------------------------------
    # Battle
    # -------------------------------------------------------------------------

    def start_battle(self) -> BattleLoop:
        """Build team state from the finished draft and arm the phase machine."""
        self._require(SessionState.DRAFTING)
        if not self.draft.is_complete:
            raise DraftError("Draft is not complete")
        self.machine = TurnPhaseMachine(
            my_team=init_team(list(self.draft.team_of(self.my_side))),
            opponent_team=init_team(list(self.draft.team_of(self.opponent_side))),
            scheme=self.scheme,
            authority=self.config.verification_authority,
            ledger_side=self.my_side,
        )
        self.classifier.stage = Stage.BATTLE
        self.loop = BattleLoop(
            self.machine,
            self.transport,
            self.queue,
            self.classifier,
            self.opponent_id,
            self.config,
            ledger=self.ledger,
        )
        self.state = SessionState.BATTLE
        logger.info("%s battle started vs %s", self.account_id, self.opponent_id)
        return self.loop

    async def play_round(self, action: TurnAction, timeout: float | None = None) -> RoundPhase:
        round_number = self.machine.round_number if self.machine else 0
        await self.submit_move(action)
        return await self.wait_for_round_end(round_number, timeout)

    async def submit_move(self, action: TurnAction) -> RoundPhase:
        """Commit to an action. Invalid moves fail here, before anything is sent."""
        self._require(SessionState.BATTLE)
        phase = await self.loop.submit_move(action)
        self._sync_state()
        return phase

    async def wait_for_round_end(self, round_number: int, timeout: float | None = None) -> RoundPhase:
        self._require(SessionState.BATTLE)
        phase = await self.loop.wait_for_round_end(round_number, timeout)
        self._sync_state()
        return phase

    async def retry(self, timeout: float | None = None) -> RoundPhase:
        self._require(SessionState.BATTLE)
        phase = await self.loop.retry(timeout)
        self._sync_state()
        return phase

    def _sync_state(self) -> None:
        phase = self.machine.current_phase()
        if phase == RoundPhase.GAME_OVER:
            self.state = SessionState.GAME_OVER
        elif phase == RoundPhase.ABORTED:
            self.state = SessionState.ABANDONED

    # -------------------------------------------------------------------------
    # Leave
    # -------------------------------------------------------------------------

    async def leave(self) -> None:
        """
        Notify the opponent, then reset local match state.

        The leave signal goes through the send queue, so it waits for any
        in-flight send instead of racing it.
        """
        if self.opponent_id is not None and self.state != SessionState.IDLE:
            await self.queue.send(self.opponent_id, wire.LEAVE_SIGNAL, SignalKind.LEAVE.value)
            logger.info("%s left match with %s", self.account_id, self.opponent_id)
        self.reset()

    def reset(self) -> None:
        """Clear match state. Handled-sets are kept so old messages stay stale."""
        self.state = SessionState.IDLE
        self.role = None
        self.opponent_id = None
        self.draft = DraftState()
        self.machine = None
        self.loop = None
        self.classifier.stage = Stage.LOBBY

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, state: SessionState) -> None:
        if self.state != state:
            raise WrongPhaseError(
                f"Session is {self.state.value}, expected {state.value}",
                details={"state": self.state.value},
            )

    def _check_left(self, messages: list[Message]) -> None:
        if self.classifier.take_signals(messages, SignalKind.LEAVE, self.opponent_id):
            self.state = SessionState.ABANDONED
            raise MatchAbandoned(f"{self.opponent_id} left the match")

    async def _wait_for(
        self,
        fetch: Callable[[], Awaitable[T | None]],
        timeout: float | None,
        what: str,
    ) -> T:
        timeout = self.config.opponent_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        while True:
            result = await fetch()
            if result is not None:
                return result
            if time.monotonic() >= deadline:
                raise OpponentTimeout(f"Timed out after {timeout:g}s waiting for {what}")
            await asyncio.sleep(self.config.poll_interval)


class SessionManager:
    """
    Manages match sessions.

    Responsibilities:
    - Create sessions bound to a transport
    - Track active sessions
    - End sessions (sending leave when a match is in progress)

    No persistence - sessions are in-memory only.
    """

    def __init__(self, config: ArenaConfig | None = None):
        self.config = config or ArenaConfig()
        self._sessions: dict[str, MatchSession] = {}

    def create_session(
        self,
        transport: TransportAdapter,
        ledger: LedgerReader | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> MatchSession:
        session = MatchSession(
            session_id=str(uuid.uuid4()),
            transport=transport,
            config=self.config,
            ledger=ledger,
            metadata=metadata or {},
        )
        self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> MatchSession | None:
        return self._sessions.get(session_id)

    async def end_session(self, session_id: str) -> bool:
        """Leave any match in progress and forget the session."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        if session.is_active():
            await session.leave()
        return True

    def list_active_sessions(self) -> list[str]:
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """Drop finished sessions older than max_age. Returns how many were removed."""
        now = time.time()
        stale = [
            sid for sid, session in self._sessions.items()
            if now - session.created_at > max_age_seconds and not session.is_active()
        ]
        for sid in stale:
            del self._sessions[sid]
        return len(stale)
