"""
Errors - Exception hierarchy for the arena core.

Every error carries a stable error_code (used by the API layer) and a
retryable flag so presentation can choose between "retry" and
"abort match".

Propagation:
- Codec and phase-legality errors are raised synchronously, before any
  state change.
- Transport and verification errors are recorded on the phase machine
  (see TurnPhaseMachine.last_error) and leave it in a resumable state.
"""

from __future__ import annotations


class ArenaError(Exception):
    """Base class for all arena errors."""
    error_code = "ARENA_ERROR"
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "retryable": self.retryable,
            "details": self.details,
        }


class InvalidMove(ArenaError):
    """A move, unit or ability outside the valid domain."""
    error_code = "INVALID_MOVE"


class WrongPhaseError(ArenaError):
    """An operation attempted outside its legal phase."""
    error_code = "NOT_MY_TURN_OR_WRONG_PHASE"


class TransportSendFailed(ArenaError):
    """The transport could not post a message. Safe to retry."""
    error_code = "TRANSPORT_SEND_FAILED"
    retryable = True


class InitialStateMismatch(TransportSendFailed):
    """
    The sender's account state moved while a send was being built.

    Transient: retried by the send queue once the in-flight send finishes.
    """
    error_code = "INITIAL_STATE_MISMATCH"


class VerificationFailed(ArenaError):
    """The opponent's reveal does not match their commitment."""
    error_code = "VERIFICATION_FAILED"


class MalformedSignal(ArenaError):
    """An inbound message could not be decoded into a signal."""
    error_code = "MALFORMED_SIGNAL"


class OpponentTimeout(ArenaError):
    """The opponent did not act within the configured wait."""
    error_code = "OPPONENT_TIMEOUT"
    retryable = True


class MatchAbandoned(ArenaError):
    """The opponent left the match."""
    error_code = "MATCH_ABANDONED"


class DraftError(ArenaError):
    """A draft pick out of turn or outside the pool."""
    error_code = "INVALID_PICK"
