"""
Battle Loop - Async driver for the TurnPhaseMachine.

The loop:
1. Local player submits a move -> machine returns SendCommit
2. Loop sends it through the SendQueue, reports LocalCommitSent/Failed
3. Loop polls the opponent's messages at a bounded interval and feeds
   claimed commitments/reveals (and ledger snapshots) to the machine
4. Machine returns SendReveal, then StartAnimation once resolved
5. After the animation the machine is back in CHOOSING or GAME_OVER

Suspension points are exactly the transport calls, ledger reads and the
poll/animation sleeps.
"""

from __future__ import annotations
from collections import deque
from typing import Awaitable, Callable
import asyncio
import logging
import time

from ..config import ArenaConfig
from ..engine_core.action import TurnAction
from ..errors import OpponentTimeout, TransportSendFailed
from ..signals import SignalClassifier, SignalKind
from ..transport.adapter import Message, TransportAdapter
from ..transport.ledger import LedgerReader
from ..transport.send_queue import SendQueue
from .turn_machine import (
    AnimationFinished,
    Command,
    LedgerObserved,
    LocalCommitFailed,
    LocalCommitSent,
    LocalRevealFailed,
    LocalRevealSent,
    OpponentCommitObserved,
    OpponentLeft,
    OpponentRevealObserved,
    RoundPhase,
    SendCommit,
    SendReveal,
    StartAnimation,
    TERMINAL_PHASES,
    TurnPhaseMachine,
)

logger = logging.getLogger(__name__)


class BattleLoop:
    """
    Runs one match's rounds over a transport.

    Usage:
        loop = BattleLoop(machine, transport, queue, classifier, opponent_id, config)
        phase = await loop.play_round(TurnAction(4, 0))
    """

    def __init__(
        self,
        machine: TurnPhaseMachine,
        transport: TransportAdapter,
        queue: SendQueue,
        classifier: SignalClassifier,
        opponent_id: str,
        config: ArenaConfig | None = None,
        ledger: LedgerReader | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.machine = machine
        self.transport = transport
        self.queue = queue
        self.classifier = classifier
        self.opponent_id = opponent_id
        self.config = config or ArenaConfig()
        self.ledger = ledger
        self._sleep = sleep
        self._clock = clock
        self._round_snapshot: list[Message] = []

    async def submit_move(self, action: TurnAction) -> RoundPhase:
        await self._run(self.machine.submit_move(action))
        return self.machine.current_phase()

    async def retry(self, timeout: float | None = None) -> RoundPhase:
        """Re-send the pending commit or reveal, then keep waiting for the round."""
        round_number = self.machine.round_number
        await self._run(self.machine.retry_send())
        return await self.wait_for_round_end(round_number, timeout)

    async def play_round(self, action: TurnAction, timeout: float | None = None) -> RoundPhase:
        """Submit a move and wait until the round is over."""
        round_number = self.machine.round_number
        await self.submit_move(action)
        return await self.wait_for_round_end(round_number, timeout)

    async def wait_for_round_end(self, round_number: int, timeout: float | None = None) -> RoundPhase:
        """
        Poll until the machine leaves `round_number` or the match ends.

        Raises OpponentTimeout after `timeout` seconds (default from
        config); escalation such as a forfeit is up to the caller.
        A failed send stops the wait so the caller can retry.
        """
        timeout = self.config.opponent_timeout if timeout is None else timeout
        deadline = self._clock() + timeout
        while True:
            phase = self.machine.current_phase()
            if phase in TERMINAL_PHASES or self.machine.round_number != round_number:
                return phase
            error = self.machine.last_error()
            if error is not None and error.retryable and self.machine.pending_command is not None:
                return phase

            await self.poll_once()
            if self.machine.current_phase() in TERMINAL_PHASES or self.machine.round_number != round_number:
                continue

            if self._clock() >= deadline:
                error = OpponentTimeout(
                    f"Opponent did not act within {timeout:g}s in round {round_number}",
                    details={"round": round_number, "phase": phase.value},
                )
                self.machine.record_error(error)
                raise error
            await self._sleep(self.config.poll_interval)

    async def poll_once(self) -> None:
        """One observation cycle: opponent messages, then ledger."""
        messages = await self.transport.observe(self.opponent_id)

        if self.classifier.take_signals(messages, SignalKind.LEAVE, self.opponent_id):
            logger.info("Opponent %s left the match", self.opponent_id)
            await self._run(self.machine.handle(OpponentLeft()))
            return

        # Claims are gated on the machine so a fast opponent's next-round
        # commitment stays unclaimed until that round starts.
        if self.machine.wants_opponent_commit:
            group = self.classifier.take_commit(messages, self.opponent_id)
            if group is not None:
                await self._run(self.machine.handle(OpponentCommitObserved(group.parts)))

        if self.machine.wants_opponent_reveal:
            reveal = self.classifier.take_reveal(messages, self.opponent_id)
            if reveal is not None:
                await self._run(self.machine.handle(
                    OpponentRevealObserved(reveal.move, reveal.nonce_parts)
                ))

        if self.ledger is not None and not self.machine.is_finished:
            snapshot = await self.ledger.snapshot()
            await self._run(self.machine.handle(LedgerObserved(snapshot)))

    async def _run(self, commands: list[Command]) -> None:
        queue = deque(commands)
        while queue:
            command = queue.popleft()
            queue.extend(await self._execute(command))

    async def _execute(self, command: Command) -> list[Command]:
        if isinstance(command, SendCommit):
            try:
                await self.queue.send_many(self.opponent_id, list(command.unsent), SignalKind.COMMIT.value)
            except TransportSendFailed as e:
                return self.machine.handle(LocalCommitFailed(e, sent=e.details.get("sent", 0)))
            return self.machine.handle(LocalCommitSent())

        if isinstance(command, SendReveal):
            if command.sent == 0:
                # Anything the opponent posted before our reveal exists belongs to this round or earlier.
                self._round_snapshot = await self.transport.observe(self.opponent_id)
            try:
                await self.queue.send_many(self.opponent_id, list(command.unsent), SignalKind.REVEAL.value)
            except TransportSendFailed as e:
                return self.machine.handle(LocalRevealFailed(e, sent=e.details.get("sent", 0)))
            return self.machine.handle(LocalRevealSent())

        if isinstance(command, StartAnimation):
            await self._sleep(self.config.animation_delay)
            commands = self.machine.handle(AnimationFinished())
            if self.machine.current_phase() == RoundPhase.CHOOSING:
                stale = self.classifier.start_round(self._round_snapshot)
                if stale:
                    logger.debug("Round %d: %d leftover message(s) marked stale",
                                 command.round_number, stale)
            return commands

        raise TypeError(f"Unknown command: {command!r}")
