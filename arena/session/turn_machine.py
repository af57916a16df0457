"""
Turn Phase Machine - One player's view of the commit/reveal round.

Phases per round (forward only):
    CHOOSING -> COMMITTING -> (WAITING_COMMIT) -> REVEALING
             -> (WAITING_REVEAL) -> RESOLVING -> ANIMATING
             -> CHOOSING (next round) | GAME_OVER

ABORTED is terminal and entered on an integrity violation or when the
opponent leaves.

The machine is synchronous. It is advanced by submit_move() and by
discrete events passed to handle(); both return the commands (sends,
animation) the async driver must execute and report back on. Nothing in
here touches the network.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Union
import logging

from ..config import VerificationAuthority
from ..engine_core.action import TurnAction, decode_move, encode_move
from ..engine_core.draft import DraftSide
from ..engine_core.events import TurnEvent
from ..engine_core.resolver import (
    TurnOutcome,
    Winner,
    determine_winner,
    find_mvp,
    resolve_turn,
)
from ..engine_core.state import TeamState
from ..errors import ArenaError, InvalidMove, MatchAbandoned, VerificationFailed, WrongPhaseError
from ..protocol import wire
from ..protocol.commitment import (
    DEFAULT_SCHEME,
    Commitment,
    CommitmentScheme,
    Reveal,
    create_commitment,
    verify_reveal,
)
from ..transport.ledger import LedgerSnapshot, LedgerWinner

logger = logging.getLogger(__name__)


class RoundPhase(Enum):
    CHOOSING = "choosing"
    COMMITTING = "committing"
    WAITING_COMMIT = "waiting_commit"
    REVEALING = "revealing"
    WAITING_REVEAL = "waiting_reveal"
    RESOLVING = "resolving"
    ANIMATING = "animating"
    GAME_OVER = "game_over"
    ABORTED = "aborted"


TERMINAL_PHASES = frozenset({RoundPhase.GAME_OVER, RoundPhase.ABORTED})

_TRANSITIONS: dict[RoundPhase, frozenset[RoundPhase]] = {
    RoundPhase.CHOOSING: frozenset({RoundPhase.COMMITTING}),
    RoundPhase.COMMITTING: frozenset({RoundPhase.WAITING_COMMIT, RoundPhase.REVEALING}),
    RoundPhase.WAITING_COMMIT: frozenset({RoundPhase.REVEALING, RoundPhase.RESOLVING}),
    RoundPhase.REVEALING: frozenset({RoundPhase.WAITING_REVEAL, RoundPhase.RESOLVING}),
    RoundPhase.WAITING_REVEAL: frozenset({RoundPhase.RESOLVING}),
    RoundPhase.RESOLVING: frozenset({RoundPhase.ANIMATING}),
    RoundPhase.ANIMATING: frozenset({RoundPhase.CHOOSING, RoundPhase.GAME_OVER}),
    RoundPhase.GAME_OVER: frozenset(),
    RoundPhase.ABORTED: frozenset(),
}


# =============================================================================
# Events (inputs)
# =============================================================================

@dataclass(frozen=True)
class LocalCommitSent:
    pass


@dataclass(frozen=True)
class LocalCommitFailed:
    """sent counts the amounts this attempt posted before it failed."""
    error: ArenaError
    sent: int = 0


@dataclass(frozen=True)
class OpponentCommitObserved:
    """parts is None when the commitment was only seen on the ledger."""
    parts: tuple[int, ...] | None = None


@dataclass(frozen=True)
class LocalRevealSent:
    pass


@dataclass(frozen=True)
class LocalRevealFailed:
    error: ArenaError
    sent: int = 0


@dataclass(frozen=True)
class OpponentRevealObserved:
    move: int
    nonce_parts: tuple[int, ...]


@dataclass(frozen=True)
class LedgerObserved:
    snapshot: LedgerSnapshot


@dataclass(frozen=True)
class AnimationFinished:
    pass


@dataclass(frozen=True)
class OpponentLeft:
    pass


MachineEvent = Union[
    LocalCommitSent, LocalCommitFailed, OpponentCommitObserved,
    LocalRevealSent, LocalRevealFailed, OpponentRevealObserved,
    LedgerObserved, AnimationFinished, OpponentLeft,
]


# =============================================================================
# Commands (outputs)
# =============================================================================

@dataclass(frozen=True)
class SendCommit:
    """amounts[:sent] are already on the channel and must not be posted again."""
    round_number: int
    amounts: tuple[int, ...]
    sent: int = 0

    @property
    def unsent(self) -> tuple[int, ...]:
        return self.amounts[self.sent:]


@dataclass(frozen=True)
class SendReveal:
    round_number: int
    amounts: tuple[int, ...]
    sent: int = 0

    @property
    def unsent(self) -> tuple[int, ...]:
        return self.amounts[self.sent:]


@dataclass(frozen=True)
class StartAnimation:
    round_number: int
    events: tuple[TurnEvent, ...]


Command = Union[SendCommit, SendReveal, StartAnimation]


# =============================================================================
# Notifications (to subscribers)
# =============================================================================

@dataclass(frozen=True)
class PhaseChanged:
    round_number: int
    old: RoundPhase
    new: RoundPhase


@dataclass(frozen=True)
class EventsEmitted:
    round_number: int
    events: tuple[TurnEvent, ...]


@dataclass
class MatchResult:
    winner: Winner
    mvp_id: int | None
    rounds: int
    decided_by: str = "local"

    def to_dict(self) -> dict[str, Any]:
        return {
            "winner": self.winner.value,
            "mvp_id": self.mvp_id,
            "rounds": self.rounds,
            "decided_by": self.decided_by,
        }


@dataclass(frozen=True)
class MatchDecided:
    result: MatchResult


Notification = Union[PhaseChanged, EventsEmitted, MatchDecided]


@dataclass
class _RoundState:
    """Transient per-round fields, reset at each round start."""
    my_action: TurnAction | None = None
    commitment: Commitment | None = None
    reveal: Reveal | None = None
    commit_sent: bool = False
    reveal_sent: bool = False
    opponent_commit_seen: bool = False
    opponent_commit_parts: tuple[int, ...] | None = None
    opponent_reveal: OpponentRevealObserved | None = None
    opponent_action: TurnAction | None = None
    pending: SendCommit | SendReveal | None = None


class TurnPhaseMachine:
    """
    Drives one match, round by round, for the local player.

    Usage:
        machine = TurnPhaseMachine(my_team, opponent_team)
        commands = machine.submit_move(TurnAction(4, 0))
        # execute SendCommit, then:
        commands = machine.handle(LocalCommitSent())
        ...
        commands = machine.handle(OpponentRevealObserved(move, nonce_parts))
    """

    def __init__(
        self,
        my_team: TeamState,
        opponent_team: TeamState,
        round_number: int = 1,
        scheme: CommitmentScheme = DEFAULT_SCHEME,
        authority: VerificationAuthority = VerificationAuthority.LOCAL,
        ledger_side: DraftSide = DraftSide.A,
    ):
        self.my_team = my_team
        self.opponent_team = opponent_team
        self.round_number = round_number
        self.scheme = scheme
        self.authority = authority
        self.ledger_side = ledger_side

        self.event_log: list[TurnEvent] = []
        self.last_outcome: TurnOutcome | None = None
        self.result: MatchResult | None = None

        self._phase = RoundPhase.CHOOSING
        self._round = _RoundState()
        self._resolved_round = 0
        self._last_error: ArenaError | None = None
        self._subscribers: list[Callable[[Notification], None]] = []

    # -------------------------------------------------------------------------
    # Upward command surface
    # -------------------------------------------------------------------------

    def current_phase(self) -> RoundPhase:
        return self._phase

    def last_error(self) -> ArenaError | None:
        return self._last_error

    @property
    def is_finished(self) -> bool:
        return self._phase in TERMINAL_PHASES

    @property
    def opponent_side(self) -> DraftSide:
        return DraftSide.B if self.ledger_side == DraftSide.A else DraftSide.A

    @property
    def my_action(self) -> TurnAction | None:
        return self._round.my_action

    @property
    def pending_command(self) -> SendCommit | SendReveal | None:
        return self._round.pending

    @property
    def wants_opponent_commit(self) -> bool:
        """True until this round's opponent commitment parts are known."""
        return self._round_open and self._round.opponent_commit_parts is None

    @property
    def wants_opponent_reveal(self) -> bool:
        return self._round_open and self._round.opponent_reveal is None

    @property
    def _round_open(self) -> bool:
        return self._phase not in (RoundPhase.RESOLVING, RoundPhase.ANIMATING) and not self.is_finished

    def subscribe(self, callback: Callable[[Notification], None]) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def record_error(self, error: ArenaError) -> None:
        """Surface an error raised outside the machine (e.g. a timeout)."""
        self._last_error = error

    def submit_move(self, action: TurnAction) -> list[Command]:
        """
        Commit to the local action for this round.

        Raises WrongPhaseError outside CHOOSING and InvalidMove for an
        action that cannot be played; neither changes any state.
        """
        if self._phase != RoundPhase.CHOOSING:
            raise WrongPhaseError(
                f"Cannot submit a move during {self._phase.value}",
                details={"phase": self._phase.value},
            )
        move = encode_move(action)
        unit = self.my_team.get_unit(action.champion_id)
        if unit is None or unit.is_ko:
            raise InvalidMove(
                f"Champion {action.champion_id} cannot act",
                details={"champion_id": action.champion_id},
            )

        commitment = create_commitment(move, self.scheme)
        self._round.my_action = action
        self._round.commitment = commitment
        self._last_error = None
        self._set_phase(RoundPhase.COMMITTING)

        command = SendCommit(self.round_number, tuple(wire.commitment_amounts(commitment)))
        self._round.pending = command
        logger.info("Round %d: committed to move %d", self.round_number, move)
        return [command]

    def retry_send(self) -> list[Command]:
        """Re-issue the pending send, resuming after the amounts already posted."""
        if self._round.pending is None:
            raise WrongPhaseError(
                f"Nothing to retry during {self._phase.value}",
                details={"phase": self._phase.value},
            )
        self._last_error = None
        return [self._round.pending]

    # -------------------------------------------------------------------------
    # Event dispatch
    # -------------------------------------------------------------------------

    def handle(self, event: MachineEvent) -> list[Command]:
        if self.is_finished:
            logger.debug("Ignoring %s: match is over", type(event).__name__)
            return []

        handler = {
            LocalCommitSent: self._on_commit_sent,
            LocalCommitFailed: self._on_send_failed,
            OpponentCommitObserved: self._on_opponent_commit,
            LocalRevealSent: self._on_reveal_sent,
            LocalRevealFailed: self._on_send_failed,
            OpponentRevealObserved: self._on_opponent_reveal,
            LedgerObserved: self._on_ledger,
            AnimationFinished: self._on_animation_finished,
            OpponentLeft: self._on_opponent_left,
        }.get(type(event))
        if handler is None:
            raise TypeError(f"Unknown machine event: {event!r}")
        return handler(event)

    def _on_commit_sent(self, event: LocalCommitSent) -> list[Command]:
        if self._phase != RoundPhase.COMMITTING:
            logger.debug("Duplicate commit confirmation in %s", self._phase.value)
            return []
        self._round.commit_sent = True
        self._round.pending = None
        if self._round.opponent_commit_seen:
            return self._enter_revealing()
        self._set_phase(RoundPhase.WAITING_COMMIT)
        return []

    def _on_send_failed(self, event: LocalCommitFailed | LocalRevealFailed) -> list[Command]:
        logger.warning("Round %d: send failed in %s: %s",
                       self.round_number, self._phase.value, event.error)
        self._last_error = event.error
        pending = self._round.pending
        if pending is not None and event.sent:
            self._round.pending = replace(pending, sent=pending.sent + event.sent)
        return []

    def _on_opponent_commit(self, event: OpponentCommitObserved) -> list[Command]:
        if self._round.opponent_commit_seen and (
            event.parts is None or self._round.opponent_commit_parts is not None
        ):
            return []
        self._round.opponent_commit_seen = True
        if event.parts is not None:
            self._round.opponent_commit_parts = tuple(event.parts)
        logger.debug("Round %d: opponent commitment observed", self.round_number)

        commands: list[Command] = []
        if self._phase == RoundPhase.WAITING_COMMIT:
            commands = self._enter_revealing()
        if self._round.opponent_reveal is not None and self._round.opponent_action is None:
            commands += self._check_opponent_reveal()
        return commands

    def _enter_revealing(self) -> list[Command]:
        self._set_phase(RoundPhase.REVEALING)
        if self._round.reveal_sent:
            return []
        reveal = self._round.commitment.reveal()
        self._round.reveal = reveal
        command = SendReveal(self.round_number, tuple(wire.reveal_amounts(reveal)))
        self._round.pending = command
        return [command]

    def _on_reveal_sent(self, event: LocalRevealSent) -> list[Command]:
        if self._phase != RoundPhase.REVEALING or self._round.reveal_sent:
            logger.debug("Duplicate reveal confirmation in %s", self._phase.value)
            return []
        self._round.reveal_sent = True
        self._round.pending = None
        if self._round.opponent_action is not None:
            return self._resolve(self._round.opponent_action)
        self._set_phase(RoundPhase.WAITING_REVEAL)
        return []

    def _on_opponent_reveal(self, event: OpponentRevealObserved) -> list[Command]:
        if self._round.opponent_reveal is not None:
            return []
        self._round.opponent_reveal = event
        return self._check_opponent_reveal()

    def _check_opponent_reveal(self) -> list[Command]:
        reveal = self._round.opponent_reveal
        parts = self._round.opponent_commit_parts
        if parts is None:
            # Commitment only seen on the ledger (or not yet): wait for settlement.
            return []

        valid = verify_reveal(reveal.move, reveal.nonce_parts, parts, self.scheme)
        action = None
        if valid:
            action = decode_move(reveal.move)
            unit = self.opponent_team.get_unit(action.champion_id)
            if unit is None or unit.is_ko:
                valid = False

        if not valid:
            error = VerificationFailed(
                f"Opponent reveal for round {self.round_number} does not match their commitment",
                details={"round": self.round_number, "move": reveal.move},
            )
            if self.authority == VerificationAuthority.LEDGER:
                logger.warning("%s; deferring to ledger", error.message)
                return []
            self._abort(error)
            return []

        self._round.opponent_action = action
        if self._phase == RoundPhase.WAITING_REVEAL:
            return self._resolve(action)
        return []

    def _on_ledger(self, event: LedgerObserved) -> list[Command]:
        snapshot = event.snapshot
        commands: list[Command] = []

        if (
            self.authority == VerificationAuthority.LEDGER
            and snapshot.round_number == self.round_number
            and snapshot.commit_posted(self.opponent_side)
        ):
            commands += self._on_opponent_commit(OpponentCommitObserved(parts=None))

        waiting = self._phase in (
            RoundPhase.WAITING_COMMIT, RoundPhase.REVEALING, RoundPhase.WAITING_REVEAL,
        )
        settled = snapshot.settled_round(self.round_number)
        if settled is not None and waiting and self._resolved_round != self.round_number:
            move = settled.move_of(self.opponent_side)
            try:
                action = decode_move(move)
            except InvalidMove as e:
                self._abort(VerificationFailed(
                    f"Ledger settled an invalid opponent move for round {self.round_number}: {e.message}",
                    details={"round": self.round_number, "move": move},
                ))
                return []
            local = self._round.opponent_action
            if local is not None and local != action:
                logger.warning(
                    "Round %d: ledger settled opponent move %s, local reveal said %s",
                    self.round_number, action, local,
                )
            logger.info("Round %d: resolving from ledger settlement", self.round_number)
            self._round.pending = None
            return commands + self._resolve(action)

        if snapshot.winner != LedgerWinner.NONE and self._phase != RoundPhase.ANIMATING:
            self._finish(self._winner_from_ledger(snapshot.winner), decided_by="ledger")
            return []

        return commands

    def _winner_from_ledger(self, code: LedgerWinner) -> Winner:
        if code == LedgerWinner.DRAW:
            return Winner.DRAW
        mine = LedgerWinner.A if self.ledger_side == DraftSide.A else LedgerWinner.B
        return Winner.ME if code == mine else Winner.OPPONENT

    def _resolve(self, opponent_action: TurnAction) -> list[Command]:
        if self._resolved_round == self.round_number:
            logger.debug("Round %d already resolved", self.round_number)
            return []
        try:
            outcome = resolve_turn(
                self.my_team, self.opponent_team, self._round.my_action, opponent_action,
            )
        except InvalidMove as e:
            self._abort(VerificationFailed(
                f"Opponent move for round {self.round_number} cannot be played: {e.message}",
                details={"round": self.round_number, "action": opponent_action.to_dict()},
            ))
            return []
        self._set_phase(RoundPhase.RESOLVING)
        self._resolved_round = self.round_number
        self._round.opponent_action = opponent_action
        self.my_team = outcome.my_team
        self.opponent_team = outcome.opponent_team
        self.last_outcome = outcome
        self.event_log.extend(outcome.events)

        events = tuple(outcome.events)
        self._notify(EventsEmitted(self.round_number, events))
        self._set_phase(RoundPhase.ANIMATING)
        return [StartAnimation(self.round_number, events)]

    def _on_animation_finished(self, event: AnimationFinished) -> list[Command]:
        if self._phase != RoundPhase.ANIMATING:
            logger.debug("Stray animation completion in %s", self._phase.value)
            return []
        winner = determine_winner(self.my_team, self.opponent_team)
        if winner is not None:
            self._finish(winner)
            return []
        self.round_number += 1
        self._round = _RoundState()
        self._set_phase(RoundPhase.CHOOSING)
        return []

    def _abort(self, error: ArenaError) -> None:
        logger.error("Round %d aborted: %s", self.round_number, error.message)
        self._last_error = error
        self._round.pending = None
        self._set_phase(RoundPhase.ABORTED)

    def _on_opponent_left(self, event: OpponentLeft) -> list[Command]:
        self._last_error = MatchAbandoned("Opponent left the match")
        self._round.pending = None
        self._set_phase(RoundPhase.ABORTED)
        return []

    def _finish(self, winner: Winner, decided_by: str = "local") -> None:
        self.result = MatchResult(
            winner=winner,
            mvp_id=find_mvp(self.my_team, self.opponent_team),
            rounds=self.round_number,
            decided_by=decided_by,
        )
        self._round.pending = None
        self._phase_change(RoundPhase.GAME_OVER)
        logger.info("Match over after %d round(s): %s", self.round_number, winner.value)
        self._notify(MatchDecided(self.result))

    # -------------------------------------------------------------------------
    # Phase bookkeeping
    # -------------------------------------------------------------------------

    def _set_phase(self, new: RoundPhase) -> None:
        if new != RoundPhase.ABORTED and new not in _TRANSITIONS[self._phase]:
            raise WrongPhaseError(
                f"Illegal transition {self._phase.value} -> {new.value}",
                details={"from": self._phase.value, "to": new.value},
            )
        self._phase_change(new)

    def _phase_change(self, new: RoundPhase) -> None:
        old = self._phase
        self._phase = new
        logger.debug("Round %d: %s -> %s", self.round_number, old.value, new.value)
        self._notify(PhaseChanged(self.round_number, old, new))

    def _notify(self, notification: Notification) -> None:
        for callback in list(self._subscribers):
            callback(notification)
