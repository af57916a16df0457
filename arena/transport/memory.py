"""
In-Memory Transport - A local stand-in for the message network.

Features used by tests and simulation:
- seeded reordering of observed messages
- failure injection (fail the next N sends of an account)
- overlapping sends from one account fail with InitialStateMismatch,
  the same way the real channel rejects a stale account state
"""

from __future__ import annotations
from dataclasses import dataclass, field
import asyncio
import itertools
import logging
import random

from ..errors import InitialStateMismatch, TransportSendFailed
from .adapter import Message, TransportAdapter

logger = logging.getLogger(__name__)


@dataclass
class InMemoryNetwork:
    """Shared message board for any number of InMemoryTransports."""
    shuffle: bool = False
    seed: int | None = None
    latency: float = 0.0

    messages: list[Message] = field(default_factory=list)
    _failures: dict[str, list[Exception | None]] = field(default_factory=dict)
    _counter: itertools.count = field(default_factory=lambda: itertools.count(1))
    _rng: random.Random = field(init=False)

    def __post_init__(self):
        self._rng = random.Random(self.seed)

    def post(self, sender: str, recipient: str, amount: int, tag: str | None = None) -> Message:
        if amount <= 0:
            raise TransportSendFailed(f"Amount must be positive, got {amount}")
        message = Message(
            id=f"msg-{next(self._counter)}",
            sender=sender,
            recipient=recipient,
            amount=amount,
            tag=tag,
        )
        self.messages.append(message)
        return message

    def inbox(self, recipient: str, sender: str | None = None) -> list[Message]:
        found = [
            m for m in self.messages
            if m.recipient == recipient and (sender is None or m.sender == sender)
        ]
        if self.shuffle:
            self._rng.shuffle(found)
        return found

    def fail_next(
        self, account_id: str, count: int = 1, error: Exception | None = None, after: int = 0,
    ) -> None:
        """Let `after` sends from an account through, then make the next `count` raise `error`."""
        queue = self._failures.setdefault(account_id, [])
        queue.extend([None] * after)
        for _ in range(count):
            queue.append(error or InitialStateMismatch(f"Injected state mismatch for {account_id}"))

    def take_failure(self, account_id: str) -> Exception | None:
        queue = self._failures.get(account_id)
        if queue:
            return queue.pop(0)
        return None

    def transport(self, account_id: str, ready: bool = True) -> InMemoryTransport:
        return InMemoryTransport(self, account_id, ready)


class InMemoryTransport(TransportAdapter):
    """One account's view of an InMemoryNetwork."""

    def __init__(self, network: InMemoryNetwork, account_id: str, ready: bool = True):
        self.network = network
        self._account_id = account_id
        self._ready = ready
        self._in_flight = False
        self.sent: list[Message] = []
        self.sync_count = 0

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def ready(self) -> bool:
        return self._ready

    def mark_ready(self) -> None:
        self._ready = True

    async def send(self, recipient: str, amount: int, tag: str | None = None) -> str:
        if self._in_flight:
            raise InitialStateMismatch(
                f"Send from {self._account_id} overlapped an in-flight send"
            )
        self._in_flight = True
        try:
            await asyncio.sleep(self.network.latency)
            failure = self.network.take_failure(self._account_id)
            if failure is not None:
                raise failure
            message = self.network.post(self._account_id, recipient, amount, tag)
            self.sent.append(message)
            logger.debug("%s -> %s: %d [%s] (%s)", self._account_id, recipient, amount, tag, message.id)
            return message.id
        finally:
            self._in_flight = False

    async def observe(self, sender: str | None = None) -> list[Message]:
        return self.network.inbox(self._account_id, sender)

    async def sync(self) -> None:
        self.sync_count += 1
