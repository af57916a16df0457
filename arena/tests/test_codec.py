"""
Tests for move, draft-pick and wire amount encoding.

Tests:
- Move codec covers exactly [1, 20] and round-trips
- Out-of-domain values raise InvalidMove
- Wire amount ranges do not overlap where the stage needs them apart
"""

import pytest

from ..engine_core.action import (
    MOVE_MAX,
    MOVE_MIN,
    TurnAction,
    decode_draft_pick,
    decode_move,
    encode_draft_pick,
    encode_move,
    is_valid_move,
)
from ..errors import InvalidMove, MalformedSignal
from ..protocol import create_commitment, wire


class TestMoveCodec:
    """Tests for encode_move / decode_move."""

    def test_known_encodings(self):
        """Move is champion_id * 2 + ability_index + 1."""
        assert encode_move(TurnAction(0, 0)) == 1
        assert encode_move(TurnAction(0, 1)) == 2
        assert encode_move(TurnAction(2, 0)) == 5
        assert encode_move(TurnAction(9, 1)) == 20

    def test_every_move_round_trips(self):
        """decode(encode(a)) == a over the whole domain."""
        seen = set()
        for champion_id in range(10):
            for ability_index in range(2):
                action = TurnAction(champion_id, ability_index)
                move = encode_move(action)
                assert MOVE_MIN <= move <= MOVE_MAX
                assert decode_move(move) == action
                seen.add(move)
        assert seen == set(range(1, 21))

    @pytest.mark.parametrize("action", [
        TurnAction(10, 0),
        TurnAction(-1, 0),
        TurnAction(0, 2),
        TurnAction(0, -1),
    ])
    def test_encode_rejects_out_of_range(self, action):
        """Champion ids outside 0-9 and ability indexes outside 0-1 are rejected."""
        with pytest.raises(InvalidMove):
            encode_move(action)

    @pytest.mark.parametrize("move", [0, 21, -5, 100, True, "3"])
    def test_decode_rejects_out_of_range(self, move):
        """Anything outside [1, 20] (or not an int) is rejected."""
        with pytest.raises(InvalidMove):
            decode_move(move)

    def test_is_valid_move(self):
        assert is_valid_move(1)
        assert is_valid_move(20)
        assert not is_valid_move(0)
        assert not is_valid_move(21)
        assert not is_valid_move(False)


class TestDraftPickCodec:
    """Tests for draft pick amounts."""

    def test_pick_is_id_plus_one(self):
        assert encode_draft_pick(0) == 1
        assert encode_draft_pick(9) == 10
        assert decode_draft_pick(1) == 0
        assert decode_draft_pick(10) == 9

    def test_pick_out_of_range(self):
        with pytest.raises(InvalidMove):
            encode_draft_pick(10)
        with pytest.raises(InvalidMove):
            decode_draft_pick(0)
        with pytest.raises(InvalidMove):
            decode_draft_pick(11)


class TestWireAmounts:
    """Tests for the amount ranges used on the transport."""

    def test_commit_range_bounds(self):
        """Commit chunks occupy [100001, 165536]."""
        assert wire.COMMIT_CHUNK_MIN == 100_001
        assert wire.COMMIT_CHUNK_MAX == 165_536
        assert wire.is_commit_amount(100_001)
        assert wire.is_commit_amount(165_536)
        assert not wire.is_commit_amount(100_000)
        assert not wire.is_commit_amount(165_537)

    def test_nonce_range_starts_above_moves(self):
        """Nonce parts never collide with a move."""
        assert wire.NONCE_CHUNK_MIN == MOVE_MAX + 1
        assert not wire.is_nonce_amount(MOVE_MAX)
        assert wire.is_move_amount(MOVE_MAX)

    def test_control_signals_are_outside_commit_and_draft_ranges(self):
        for amount in (wire.JOIN_SIGNAL, wire.ACCEPT_SIGNAL, wire.LEAVE_SIGNAL):
            assert not wire.is_commit_amount(amount)
            assert not wire.is_draft_pick_amount(amount)

    def test_commitment_amounts(self):
        """Each commitment part is sent offset into the commit range."""
        commitment = create_commitment(7)
        amounts = wire.commitment_amounts(commitment)
        assert len(amounts) == 2
        assert all(wire.is_commit_amount(a) for a in amounts)
        assert [wire.commit_part_from_amount(a) for a in amounts] == list(commitment.parts)

    def test_reveal_amounts(self):
        """A reveal is the move followed by its nonce parts."""
        reveal = create_commitment(7).reveal()
        amounts = wire.reveal_amounts(reveal)
        assert amounts[0] == 7
        assert all(wire.is_nonce_amount(a) for a in amounts[1:])

    def test_commit_part_from_bad_amount(self):
        with pytest.raises(MalformedSignal):
            wire.commit_part_from_amount(99)
