"""
Tests for the commitment engine.

Tests:
- Parts and nonce parts stay in their ranges
- Honest reveals always verify, in any part order
- Tampered reveals and malformed input fail without raising
"""

import pytest

from ..errors import InvalidMove
from ..protocol import (
    CommitmentScheme,
    DEFAULT_SCHEME,
    create_commitment,
    create_reveal,
    get_scheme,
    verify_reveal,
)


def _moves(count):
    return [(i % 20) + 1 for i in range(count)]


class TestCommitmentRanges:
    """Range properties of commitments and reveals."""

    def test_parts_in_range(self):
        """Commitment parts are in [1, 65536] and nonce parts in [21, 65556]."""
        for move in _moves(500):
            commitment = create_commitment(move)
            reveal = commitment.reveal()
            assert len(commitment.parts) == 2
            assert all(1 <= p <= 65536 for p in commitment.parts)
            assert len(reveal.nonce_parts) == 2
            assert all(21 <= p <= 65556 for p in reveal.nonce_parts)

    def test_nonce_is_four_bytes(self):
        assert len(create_commitment(1).nonce) == 4

    def test_fresh_nonce_per_commitment(self):
        """Committing to the same move twice uses different nonces."""
        nonces = {create_commitment(3).nonce for _ in range(50)}
        assert len(nonces) > 1

    def test_no_collisions_for_one_move(self):
        """500 commitments to the same move never share a digest."""
        batch = [create_commitment(7) for _ in range(500)]
        assert len({c.parts for c in batch}) == len(batch)

    def test_nonce_not_in_repr(self):
        """The nonce stays out of logs."""
        assert "nonce=" not in repr(create_commitment(3))

    def test_parts_are_deterministic(self):
        nonce = bytes([1, 2, 3, 4])
        assert DEFAULT_SCHEME.commitment_parts(5, nonce) == DEFAULT_SCHEME.commitment_parts(5, nonce)

    def test_reveal_splits_nonce_big_endian(self):
        """Nonce 0x0001 0x0203 becomes parts 1 + 21 and 515 + 21."""
        reveal = create_reveal(4, bytes([0, 1, 2, 3]))
        assert reveal.nonce_parts == (22, 536)


class TestVerifyReveal:
    """Tests for verify_reveal."""

    def test_round_trip(self):
        """Every honest reveal verifies, and no two commitments collide."""
        batch = [create_commitment(move) for move in _moves(1000)]
        for commitment in batch:
            reveal = commitment.reveal()
            assert verify_reveal(reveal.move, reveal.nonce_parts, commitment.parts)
        assert len({c.parts for c in batch}) == len(batch)

    def test_order_independent(self):
        """Nonce parts and commitment parts may arrive in any order."""
        for move in _moves(100):
            commitment = create_commitment(move)
            reveal = commitment.reveal()
            nonce = tuple(reversed(reveal.nonce_parts))
            parts = tuple(reversed(commitment.parts))
            assert verify_reveal(move, nonce, parts)
            assert verify_reveal(move, list(nonce), list(commitment.parts))

    def test_wrong_move_fails(self):
        commitment = create_commitment(5)
        reveal = commitment.reveal()
        assert not verify_reveal(6, reveal.nonce_parts, commitment.parts)

    def test_tampered_nonce_fails(self):
        commitment = create_commitment(5)
        first, second = commitment.reveal().nonce_parts
        tampered = first + 1 if first < 65556 else first - 1
        assert not verify_reveal(5, (tampered, second), commitment.parts)

    def test_tampered_commitment_fails(self):
        commitment = create_commitment(5)
        reveal = commitment.reveal()
        first, second = commitment.parts
        tampered = first + 1 if first < 65536 else first - 1
        assert not verify_reveal(5, reveal.nonce_parts, (tampered, second))

    @pytest.mark.parametrize("move, nonce_parts, parts", [
        (0, (30, 40), (1, 2)),
        (21, (30, 40), (1, 2)),
        (5, (30,), (1, 2)),
        (5, (30, 40, 50), (1, 2)),
        (5, (30, 40), (1,)),
        (5, (3, 40), (1, 2)),
        (5, (30, 70000), (1, 2)),
        ("5", (30, 40), (1, 2)),
    ])
    def test_malformed_input_returns_false(self, move, nonce_parts, parts):
        """Malformed reveals fail verification and never raise."""
        assert verify_reveal(move, nonce_parts, parts) is False

    def test_schemes_do_not_cross_verify(self):
        """A sha256 commitment does not verify under blake2s."""
        commitment = create_commitment(9)
        reveal = commitment.reveal()
        assert not verify_reveal(9, reveal.nonce_parts, commitment.parts, get_scheme("blake2s"))

    def test_blake2s_round_trip(self):
        scheme = get_scheme("blake2s")
        for move in _moves(40):
            commitment = create_commitment(move, scheme)
            reveal = commitment.reveal()
            assert verify_reveal(move, reveal.nonce_parts, commitment.parts, scheme)


class TestCommitmentErrors:
    """Error paths."""

    @pytest.mark.parametrize("move", [0, 21, -1])
    def test_commit_to_invalid_move(self, move):
        with pytest.raises(InvalidMove):
            create_commitment(move)

    def test_reveal_with_short_nonce(self):
        with pytest.raises(ValueError):
            create_reveal(3, b"\x00\x01\x02")

    def test_unsupported_hash(self):
        with pytest.raises(ValueError):
            CommitmentScheme(hash_name="md5")

    def test_get_scheme_default(self):
        assert get_scheme("sha256") is DEFAULT_SCHEME
