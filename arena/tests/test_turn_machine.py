"""
Tests for the turn phase machine.

Tests:
- Happy path through every phase, in both event orders
- Duplicate and out-of-order events are absorbed
- Send failures leave the round resumable via retry_send
- Verification failures abort (local authority) or defer to the ledger
- Match end, opponent leave and subscriber notifications
"""

import pytest

from ..config import VerificationAuthority
from ..engine_core import TurnAction, Winner, encode_move, init_team
from ..engine_core.draft import DraftSide
from ..errors import (
    InvalidMove,
    MatchAbandoned,
    TransportSendFailed,
    VerificationFailed,
    WrongPhaseError,
)
from ..protocol import create_commitment, wire
from ..session import (
    AnimationFinished,
    EventsEmitted,
    LedgerObserved,
    LocalCommitFailed,
    LocalCommitSent,
    LocalRevealFailed,
    LocalRevealSent,
    MatchDecided,
    OpponentCommitObserved,
    OpponentLeft,
    OpponentRevealObserved,
    PhaseChanged,
    RoundPhase,
    SendCommit,
    SendReveal,
    StartAnimation,
    TurnPhaseMachine,
)
from ..transport import LedgerSnapshot, LedgerWinner, SettledRound

FIREBALL = TurnAction(2, 0)
ROCK_SLAM = TurnAction(1, 0)
FORTIFY = TurnAction(1, 1)


@pytest.fixture
def machine(ember_team, boulder_team) -> TurnPhaseMachine:
    """Local Ember against an opponent Boulder."""
    return TurnPhaseMachine(ember_team, boulder_team)


def _opponent(action=ROCK_SLAM):
    commitment = create_commitment(encode_move(action))
    return commitment, commitment.reveal()


def _play_to_waiting_reveal(machine, commitment):
    machine.submit_move(FIREBALL)
    machine.handle(LocalCommitSent())
    machine.handle(OpponentCommitObserved(commitment.parts))
    machine.handle(LocalRevealSent())


class TestHappyPath:
    """Tests for a full round."""

    def test_full_round(self, machine):
        commitment, reveal = _opponent()

        commands = machine.submit_move(FIREBALL)
        assert machine.current_phase() == RoundPhase.COMMITTING
        assert len(commands) == 1 and isinstance(commands[0], SendCommit)
        assert all(wire.is_commit_amount(a) for a in commands[0].amounts)
        assert machine.my_action == FIREBALL

        assert machine.handle(LocalCommitSent()) == []
        assert machine.current_phase() == RoundPhase.WAITING_COMMIT

        commands = machine.handle(OpponentCommitObserved(commitment.parts))
        assert machine.current_phase() == RoundPhase.REVEALING
        assert isinstance(commands[0], SendReveal)
        assert commands[0].amounts[0] == encode_move(FIREBALL)

        assert machine.handle(LocalRevealSent()) == []
        assert machine.current_phase() == RoundPhase.WAITING_REVEAL

        commands = machine.handle(OpponentRevealObserved(reveal.move, reveal.nonce_parts))
        assert machine.current_phase() == RoundPhase.ANIMATING
        assert isinstance(commands[0], StartAnimation)
        assert machine.opponent_team.get_unit(1).current_hp == 89
        assert machine.my_team.get_unit(2).current_hp == 67

        machine.handle(AnimationFinished())
        assert machine.current_phase() == RoundPhase.CHOOSING
        assert machine.round_number == 2
        assert machine.my_action is None

    def test_opponent_commits_first(self, machine):
        """An early opponent commitment skips WAITING_COMMIT."""
        commitment, _ = _opponent()
        assert machine.handle(OpponentCommitObserved(commitment.parts)) == []
        assert machine.current_phase() == RoundPhase.CHOOSING

        machine.submit_move(FIREBALL)
        commands = machine.handle(LocalCommitSent())
        assert machine.current_phase() == RoundPhase.REVEALING
        assert isinstance(commands[0], SendReveal)

    def test_opponent_reveals_before_our_reveal_lands(self, machine):
        """A reveal seen while ours is in flight resolves once ours is confirmed."""
        commitment, reveal = _opponent()
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())
        machine.handle(OpponentCommitObserved(commitment.parts))

        assert machine.handle(OpponentRevealObserved(reveal.move, reveal.nonce_parts)) == []
        assert machine.current_phase() == RoundPhase.REVEALING

        commands = machine.handle(LocalRevealSent())
        assert isinstance(commands[0], StartAnimation)
        assert machine.current_phase() == RoundPhase.ANIMATING

    def test_reveal_parts_in_any_order(self, machine):
        commitment, reveal = _opponent()
        _play_to_waiting_reveal(machine, commitment)
        machine.handle(OpponentRevealObserved(reveal.move, tuple(reversed(reveal.nonce_parts))))
        assert machine.current_phase() == RoundPhase.ANIMATING


class TestGuards:
    """Tests for illegal calls and duplicate events."""

    def test_submit_outside_choosing(self, machine):
        machine.submit_move(FIREBALL)
        with pytest.raises(WrongPhaseError):
            machine.submit_move(FIREBALL)

    def test_submit_unit_not_on_team(self, machine):
        with pytest.raises(InvalidMove):
            machine.submit_move(TurnAction(7, 0))
        assert machine.current_phase() == RoundPhase.CHOOSING

    def test_submit_bad_ability(self, machine):
        with pytest.raises(InvalidMove):
            machine.submit_move(TurnAction(2, 3))
        assert machine.current_phase() == RoundPhase.CHOOSING

    def test_submit_knocked_out_unit(self, boulder_team):
        team = init_team([2, 3])
        team.units[0].is_ko = True
        machine = TurnPhaseMachine(team, boulder_team)
        with pytest.raises(InvalidMove):
            machine.submit_move(FIREBALL)

    def test_duplicate_events_ignored(self, machine):
        commitment, reveal = _opponent()
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())
        assert machine.handle(LocalCommitSent()) == []

        machine.handle(OpponentCommitObserved(commitment.parts))
        assert machine.handle(OpponentCommitObserved(commitment.parts)) == []

        machine.handle(LocalRevealSent())
        machine.handle(OpponentRevealObserved(reveal.move, reveal.nonce_parts))
        assert machine.handle(OpponentRevealObserved(reveal.move, reveal.nonce_parts)) == []
        assert machine.handle(LocalRevealSent()) == []
        assert machine.current_phase() == RoundPhase.ANIMATING
        assert len(machine.event_log) == 2

    def test_stray_animation_finished(self, machine):
        assert machine.handle(AnimationFinished()) == []
        assert machine.current_phase() == RoundPhase.CHOOSING

    def test_unknown_event(self, machine):
        with pytest.raises(TypeError):
            machine.handle(object())


class TestSendFailures:
    """Tests for failed sends and retry."""

    def test_commit_failure_is_resumable(self, machine):
        commands = machine.submit_move(FIREBALL)
        error = TransportSendFailed("channel down")

        assert machine.handle(LocalCommitFailed(error)) == []
        assert machine.current_phase() == RoundPhase.COMMITTING
        assert machine.last_error() is error
        assert machine.last_error().retryable

        retried = machine.retry_send()
        assert retried == commands
        assert machine.last_error() is None

        machine.handle(LocalCommitSent())
        assert machine.current_phase() == RoundPhase.WAITING_COMMIT
        assert machine.pending_command is None

    def test_reveal_failure_keeps_same_reveal(self, machine):
        commitment, _ = _opponent()
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())
        reveal_commands = machine.handle(OpponentCommitObserved(commitment.parts))

        machine.handle(LocalRevealFailed(TransportSendFailed("down")))
        assert machine.current_phase() == RoundPhase.REVEALING
        assert machine.retry_send() == reveal_commands

    def test_partial_commit_resumes_after_posted_parts(self, machine):
        commands = machine.submit_move(FIREBALL)
        machine.handle(LocalCommitFailed(TransportSendFailed("down"), sent=1))

        retried = machine.retry_send()[0]
        assert retried.amounts == commands[0].amounts
        assert retried.unsent == commands[0].amounts[1:]

    def test_partial_reveal_failures_accumulate(self, machine):
        commitment, _ = _opponent()
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())
        reveal = machine.handle(OpponentCommitObserved(commitment.parts))[0]

        machine.handle(LocalRevealFailed(TransportSendFailed("down"), sent=1))
        assert machine.retry_send()[0].unsent == reveal.amounts[1:]
        machine.handle(LocalRevealFailed(TransportSendFailed("down"), sent=1))
        assert machine.retry_send()[0].unsent == reveal.amounts[2:]

    def test_retry_with_nothing_pending(self, machine):
        with pytest.raises(WrongPhaseError):
            machine.retry_send()


class TestVerification:
    """Tests for reveal verification."""

    def test_bad_reveal_aborts_with_local_authority(self, machine):
        commitment, reveal = _opponent()
        _play_to_waiting_reveal(machine, commitment)

        assert machine.handle(OpponentRevealObserved(encode_move(FORTIFY), reveal.nonce_parts)) == []
        assert machine.current_phase() == RoundPhase.ABORTED
        assert isinstance(machine.last_error(), VerificationFailed)
        assert machine.is_finished

    def test_reveal_for_unit_not_on_team_aborts(self, machine):
        """A valid reveal of a move the opponent cannot play is rejected."""
        commitment, reveal = _opponent(TurnAction(7, 0))
        _play_to_waiting_reveal(machine, commitment)
        machine.handle(OpponentRevealObserved(reveal.move, reveal.nonce_parts))
        assert machine.current_phase() == RoundPhase.ABORTED

    def test_bad_reveal_defers_to_ledger(self, ember_team, boulder_team):
        machine = TurnPhaseMachine(ember_team, boulder_team, authority=VerificationAuthority.LEDGER)
        commitment, reveal = _opponent()
        _play_to_waiting_reveal(machine, commitment)

        machine.handle(OpponentRevealObserved(encode_move(FORTIFY), reveal.nonce_parts))
        assert machine.current_phase() == RoundPhase.WAITING_REVEAL
        assert machine.last_error() is None

        snapshot = LedgerSnapshot(
            round_number=2,
            settled=(SettledRound(1, encode_move(FIREBALL), encode_move(ROCK_SLAM)),),
        )
        commands = machine.handle(LedgerObserved(snapshot))
        assert isinstance(commands[0], StartAnimation)
        assert machine.opponent_team.get_unit(1).current_hp == 89


class TestLedger:
    """Tests for ledger snapshots."""

    def test_ledger_commit_unblocks_reveal(self, ember_team, boulder_team):
        """With ledger authority a posted commitment is enough to reveal."""
        machine = TurnPhaseMachine(ember_team, boulder_team, authority=VerificationAuthority.LEDGER)
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())

        commands = machine.handle(LedgerObserved(LedgerSnapshot(round_number=1, commit_b=True)))
        assert machine.current_phase() == RoundPhase.REVEALING
        assert isinstance(commands[0], SendReveal)

    def test_ledger_commit_ignored_with_local_authority(self, machine):
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())
        machine.handle(LedgerObserved(LedgerSnapshot(round_number=1, commit_b=True)))
        assert machine.current_phase() == RoundPhase.WAITING_COMMIT

    def test_settled_round_is_fallback(self, machine):
        """A settled round resolves a machine still waiting for the reveal."""
        commitment, _ = _opponent()
        _play_to_waiting_reveal(machine, commitment)
        snapshot = LedgerSnapshot(
            round_number=2,
            settled=(SettledRound(1, encode_move(FIREBALL), encode_move(FORTIFY)),),
        )
        machine.handle(LedgerObserved(snapshot))
        assert machine.current_phase() == RoundPhase.ANIMATING
        assert machine.opponent_team.get_unit(1).modifiers

    def test_settled_move_for_missing_unit_aborts(self, machine):
        """A settled move for a unit the opponent does not field is never resolved."""
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())
        snapshot = LedgerSnapshot(
            round_number=2,
            settled=(SettledRound(1, encode_move(FIREBALL), encode_move(TurnAction(4, 0))),),
        )

        assert machine.handle(LedgerObserved(snapshot)) == []
        assert machine.current_phase() == RoundPhase.ABORTED
        assert isinstance(machine.last_error(), VerificationFailed)
        assert machine.opponent_team.get_unit(1).current_hp == 140
        assert machine.event_log == []

    def test_settled_move_out_of_range_aborts(self, machine):
        machine.submit_move(FIREBALL)
        machine.handle(LocalCommitSent())
        snapshot = LedgerSnapshot(round_number=2, settled=(SettledRound(1, encode_move(FIREBALL), 25),))

        assert machine.handle(LedgerObserved(snapshot)) == []
        assert machine.current_phase() == RoundPhase.ABORTED
        assert machine.last_error().details["move"] == 25

    def test_ledger_winner_ends_match(self, machine):
        machine.handle(LedgerObserved(LedgerSnapshot(round_number=1, winner=LedgerWinner.A)))
        assert machine.current_phase() == RoundPhase.GAME_OVER
        assert machine.result.winner == Winner.ME
        assert machine.result.decided_by == "ledger"

    def test_ledger_winner_for_side_b(self, ember_team, boulder_team):
        machine = TurnPhaseMachine(ember_team, boulder_team, ledger_side=DraftSide.B)
        machine.handle(LedgerObserved(LedgerSnapshot(round_number=1, winner=LedgerWinner.A)))
        assert machine.result.winner == Winner.OPPONENT

    def test_ledger_draw(self, machine):
        machine.handle(LedgerObserved(LedgerSnapshot(round_number=1, winner=LedgerWinner.DRAW)))
        assert machine.result.winner == Winner.DRAW


class TestMatchEnd:
    """Tests for game over and leave."""

    def test_knockout_ends_match(self, ember_team):
        boulder = init_team([1])
        boulder.units[0].current_hp = 10
        machine = TurnPhaseMachine(ember_team, boulder)
        decided = []
        machine.subscribe(lambda n: decided.append(n) if isinstance(n, MatchDecided) else None)

        commitment, reveal = _opponent()
        _play_to_waiting_reveal(machine, commitment)
        machine.handle(OpponentRevealObserved(reveal.move, reveal.nonce_parts))
        assert machine.current_phase() == RoundPhase.ANIMATING

        machine.handle(AnimationFinished())
        assert machine.current_phase() == RoundPhase.GAME_OVER
        assert machine.result.winner == Winner.ME
        assert machine.result.mvp_id == 2
        assert machine.result.rounds == 1
        assert [d.result for d in decided] == [machine.result]

        with pytest.raises(WrongPhaseError):
            machine.submit_move(FIREBALL)

    def test_opponent_left(self, machine):
        machine.submit_move(FIREBALL)
        machine.handle(OpponentLeft())
        assert machine.current_phase() == RoundPhase.ABORTED
        assert isinstance(machine.last_error(), MatchAbandoned)
        assert machine.pending_command is None
        assert machine.handle(LocalCommitSent()) == []


class TestSubscribers:
    """Tests for notifications."""

    def test_phase_and_event_notifications(self, machine):
        seen = []
        unsubscribe = machine.subscribe(seen.append)
        commitment, reveal = _opponent()
        _play_to_waiting_reveal(machine, commitment)
        machine.handle(OpponentRevealObserved(reveal.move, reveal.nonce_parts))

        phases = [n.new for n in seen if isinstance(n, PhaseChanged)]
        assert phases == [
            RoundPhase.COMMITTING,
            RoundPhase.WAITING_COMMIT,
            RoundPhase.REVEALING,
            RoundPhase.WAITING_REVEAL,
            RoundPhase.RESOLVING,
            RoundPhase.ANIMATING,
        ]
        emitted = [n for n in seen if isinstance(n, EventsEmitted)]
        assert len(emitted) == 1
        assert emitted[0].round_number == 1
        assert len(emitted[0].events) == 2

        unsubscribe()
        count = len(seen)
        machine.handle(AnimationFinished())
        assert len(seen) == count
