"""
Tests for the snake draft.
"""

import pytest

from ..engine_core.draft import DRAFT_ORDER, DraftSide, DraftState, TEAM_SIZE
from ..errors import DraftError


class TestDraft:
    """Tests for DraftState."""

    def test_snake_order(self):
        """Picks go A, B, B, A, A, B."""
        assert [s.value for s in DRAFT_ORDER] == ["A", "B", "B", "A", "A", "B"]

    def test_full_draft(self):
        draft = DraftState()
        for champion_id, side in zip([4, 1, 3, 2, 0, 9], DRAFT_ORDER):
            assert draft.current_picker() == side
            draft = draft.apply_pick(side, champion_id)

        assert draft.is_complete
        assert draft.current_picker() is None
        assert draft.team_a == (4, 2, 0)
        assert draft.team_b == (1, 3, 9)
        assert len(draft.team_of(DraftSide.A)) == TEAM_SIZE
        assert draft.pool == (5, 6, 7, 8)

    def test_apply_pick_returns_new_state(self):
        draft = DraftState()
        updated = draft.apply_pick(DraftSide.A, 4)
        assert draft.team_a == ()
        assert 4 in draft.pool
        assert updated.team_a == (4,)
        assert 4 not in updated.pool

    def test_out_of_turn(self):
        with pytest.raises(DraftError):
            DraftState().apply_pick(DraftSide.B, 1)

    def test_pick_not_in_pool(self):
        draft = DraftState().apply_pick(DraftSide.A, 4)
        with pytest.raises(DraftError):
            draft.apply_pick(DraftSide.B, 4)
        with pytest.raises(DraftError):
            draft.apply_pick(DraftSide.B, 10)

    def test_pick_after_complete(self):
        draft = DraftState()
        for champion_id, side in zip(range(6), DRAFT_ORDER):
            draft = draft.apply_pick(side, champion_id)
        with pytest.raises(DraftError):
            draft.apply_pick(DraftSide.A, 9)

    def test_error_code(self):
        with pytest.raises(DraftError) as exc_info:
            DraftState().apply_pick(DraftSide.B, 1)
        assert exc_info.value.error_code == "INVALID_PICK"
