"""
Send Queue - Strictly sequential sends for one account.

The channel rejects a send whose starting account state is stale
("initial state mismatch"). Sends are therefore serialized behind one
lock, and a mismatch is retried only after the failed send has fully
returned, with a re-sync and a bounded delay between attempts.
"""

from __future__ import annotations
from typing import Awaitable, Callable
import asyncio
import logging

from ..errors import ArenaError, InitialStateMismatch, TransportSendFailed
from .adapter import TransportAdapter

logger = logging.getLogger(__name__)

MAX_RETRY_DELAY = 10.0


class SendQueue:
    """Serializes and retries sends through a TransportAdapter."""

    def __init__(
        self,
        transport: TransportAdapter,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.transport = transport
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def send(self, recipient: str, amount: int, tag: str | None = None) -> str:
        async with self._lock:
            return await self._send_with_retry(recipient, amount, tag)

    async def send_many(self, recipient: str, amounts: list[int], tag: str | None = None) -> list[str]:
        """
        Send several amounts back to back without letting another send interleave.

        On failure the raised TransportSendFailed carries details["sent"], the
        number of amounts already posted, so a retry can skip them.
        """
        async with self._lock:
            ids = []
            for amount in amounts:
                try:
                    ids.append(await self._send_with_retry(recipient, amount, tag))
                except TransportSendFailed as e:
                    e.details["sent"] = len(ids)
                    raise
            return ids

    async def _send_with_retry(self, recipient: str, amount: int, tag: str | None) -> str:
        last_error: InitialStateMismatch | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.transport.send(recipient, amount, tag)
            except InitialStateMismatch as e:
                last_error = e
                logger.warning(
                    "Send %d/%d to %s failed with state mismatch: %s",
                    attempt, self.max_attempts, recipient, e,
                )
                if attempt == self.max_attempts:
                    break
                await self._sleep(min(self.retry_delay * attempt, MAX_RETRY_DELAY))
                await self.transport.sync()
            except ArenaError:
                raise
            except Exception as e:
                raise TransportSendFailed(f"Send to {recipient} failed: {e}") from e

        raise TransportSendFailed(
            f"Send to {recipient} failed after {self.max_attempts} attempts",
            details={"amount": amount, "tag": tag},
        ) from last_error
