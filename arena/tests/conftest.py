"""
Pytest fixtures for arena tests.
"""

import pytest

from ..config import ArenaConfig
from ..engine_core.resolver import init_team
from ..engine_core.state import TeamState
from ..transport.memory import InMemoryNetwork


@pytest.fixture
def fast_config() -> ArenaConfig:
    """Config with no polling, retry or animation delays."""
    return ArenaConfig(
        poll_interval=0.0,
        send_retry_delay=0.0,
        animation_delay=0.0,
        opponent_timeout=5.0,
    )


@pytest.fixture
def network() -> InMemoryNetwork:
    return InMemoryNetwork()


@pytest.fixture
def ember_team() -> TeamState:
    """A single Ember (fire, 90 HP, speed 14)."""
    return init_team([2])


@pytest.fixture
def boulder_team() -> TeamState:
    """A single Boulder (earth, 140 HP, speed 5)."""
    return init_team([1])


@pytest.fixture
def first_pick_draft():
    """Picks made by FirstLegalPolicy on both sides: A gets 0, 3, 4 and B gets 1, 2, 5."""
    return {"team_a": (0, 3, 4), "team_b": (1, 2, 5)}
