"""
Transport Adapter - Interface to the asynchronous message channel.

The channel carries one bounded positive integer (amount) per message,
optionally with a category tag. Messages can be reordered, duplicated
across sessions or delayed indefinitely; callers must not assume any
cross-sender ordering.

Callers guarantee at most one send in flight per sender (see SendQueue).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Message:
    """One message visible on the channel."""
    id: str
    sender: str
    recipient: str
    amount: int
    tag: str | None = None


class TransportAdapter(ABC):
    """
    Send/observe interface.

    Implementations:
    - InMemoryTransport: local network for tests, simulation and practice
    """

    @property
    @abstractmethod
    def account_id(self) -> str:
        """Identity messages are sent from and observed for."""
        pass

    @abstractmethod
    async def send(self, recipient: str, amount: int, tag: str | None = None) -> str:
        """
        Post one message and return its id.

        Raises TransportSendFailed (or InitialStateMismatch) on failure.
        """
        pass

    @abstractmethod
    async def observe(self, sender: str | None = None) -> list[Message]:
        """
        All currently visible messages addressed to this account.

        Idempotent and safe to poll. `sender` filters by counterparty.
        """
        pass

    @property
    def ready(self) -> bool:
        """False until the observer can return a complete view of the channel."""
        return True

    async def sync(self) -> None:
        """Refresh local account state before retrying a send."""
        return None
