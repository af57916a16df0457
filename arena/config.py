"""
Configuration - Environment-driven settings.

Environment variables:
    ARENA_ENV                       development | production
    ARENA_POLL_INTERVAL             seconds between transport polls (1.0)
    ARENA_OPPONENT_TIMEOUT          seconds to wait for the opponent (300)
    ARENA_SEND_MAX_ATTEMPTS         attempts per send on state mismatch (3)
    ARENA_SEND_RETRY_DELAY          seconds between send attempts (2.0)
    ARENA_ANIMATION_DELAY           seconds spent in the animating phase (0)
    ARENA_HASH_SCHEME               sha256 | blake2s
    ARENA_VERIFICATION_AUTHORITY    local | ledger
    ALLOWED_ORIGINS                 comma-separated CORS origins
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import os


class VerificationAuthority(Enum):
    """Which party's verification decides a round."""
    LOCAL = "local"
    LEDGER = "ledger"


@dataclass
class ArenaConfig:
    env: str = "development"
    poll_interval: float = 1.0
    opponent_timeout: float = 300.0
    send_max_attempts: int = 3
    send_retry_delay: float = 2.0
    animation_delay: float = 0.0
    hash_scheme: str = "sha256"
    verification_authority: VerificationAuthority = VerificationAuthority.LOCAL
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> ArenaConfig:
        """Build a config from ARENA_* environment variables."""
        return cls(
            env=os.getenv("ARENA_ENV", "development"),
            poll_interval=float(os.getenv("ARENA_POLL_INTERVAL", "1.0")),
            opponent_timeout=float(os.getenv("ARENA_OPPONENT_TIMEOUT", "300")),
            send_max_attempts=int(os.getenv("ARENA_SEND_MAX_ATTEMPTS", "3")),
            send_retry_delay=float(os.getenv("ARENA_SEND_RETRY_DELAY", "2.0")),
            animation_delay=float(os.getenv("ARENA_ANIMATION_DELAY", "0")),
            hash_scheme=os.getenv("ARENA_HASH_SCHEME", "sha256"),
            verification_authority=VerificationAuthority(
                os.getenv("ARENA_VERIFICATION_AUTHORITY", "local").lower()
            ),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        )
