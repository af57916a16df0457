"""
Tests for the in-memory transport, the send queue and the ledger.

Tests:
- Overlapping sends from one account are rejected
- SendQueue serializes sends and retries state mismatches with backoff
- Non-retryable failures surface immediately as TransportSendFailed
- InMemoryLedger verifies reveals and settles rounds
"""

import asyncio

import pytest

from ..engine_core.draft import DraftSide
from ..errors import InitialStateMismatch, TransportSendFailed
from ..protocol import create_commitment
from ..transport import (
    InMemoryLedger,
    InMemoryNetwork,
    LedgerWinner,
    SendQueue,
)


class _FakeSleep:
    """Records requested delays without sleeping."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestInMemoryNetwork:
    """Tests for InMemoryNetwork / InMemoryTransport."""

    @pytest.mark.asyncio
    async def test_send_and_observe(self, network):
        alice, bob = network.transport("alice"), network.transport("bob")
        message_id = await alice.send("bob", 5, "commit")

        inbox = await bob.observe()
        assert [(m.id, m.sender, m.amount, m.tag) for m in inbox] == [(message_id, "alice", 5, "commit")]
        assert await bob.observe("carol") == []
        assert await alice.observe() == []

    @pytest.mark.asyncio
    async def test_non_positive_amount_rejected(self, network):
        with pytest.raises(TransportSendFailed):
            await network.transport("alice").send("bob", 0)

    @pytest.mark.asyncio
    async def test_overlapping_sends_rejected(self):
        network = InMemoryNetwork(latency=0.01)
        alice = network.transport("alice")
        results = await asyncio.gather(
            alice.send("bob", 1),
            alice.send("bob", 2),
            return_exceptions=True,
        )
        assert isinstance(results[0], str)
        assert isinstance(results[1], InitialStateMismatch)

    @pytest.mark.asyncio
    async def test_injected_failure(self, network):
        alice = network.transport("alice")
        network.fail_next("alice")
        with pytest.raises(InitialStateMismatch):
            await alice.send("bob", 1)
        assert await alice.send("bob", 1)

    @pytest.mark.asyncio
    async def test_shuffle_keeps_messages(self):
        network = InMemoryNetwork(shuffle=True, seed=3)
        alice, bob = network.transport("alice"), network.transport("bob")
        for amount in range(1, 11):
            await alice.send("bob", amount)
        inbox = await bob.observe()
        assert sorted(m.amount for m in inbox) == list(range(1, 11))


class TestSendQueue:
    """Tests for SendQueue."""

    @pytest.mark.asyncio
    async def test_retries_state_mismatch(self, network):
        transport = network.transport("alice")
        sleep = _FakeSleep()
        queue = SendQueue(transport, max_attempts=3, retry_delay=2.0, sleep=sleep)
        network.fail_next("alice", count=2)

        message_id = await queue.send("bob", 7)

        assert message_id == transport.sent[0].id
        assert sleep.delays == [2.0, 4.0]
        assert transport.sync_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, network):
        transport = network.transport("alice")
        sleep = _FakeSleep()
        queue = SendQueue(transport, max_attempts=3, retry_delay=2.0, sleep=sleep)
        network.fail_next("alice", count=3)

        with pytest.raises(TransportSendFailed) as exc_info:
            await queue.send("bob", 7)

        assert type(exc_info.value) is TransportSendFailed
        assert exc_info.value.retryable
        assert isinstance(exc_info.value.__cause__, InitialStateMismatch)
        assert sleep.delays == [2.0, 4.0]
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, network):
        sleep = _FakeSleep()
        queue = SendQueue(network.transport("alice"), max_attempts=3, retry_delay=8.0, sleep=sleep)
        network.fail_next("alice", count=2)
        await queue.send("bob", 7)
        assert sleep.delays == [8.0, 10.0]

    @pytest.mark.asyncio
    async def test_other_arena_errors_not_retried(self, network):
        sleep = _FakeSleep()
        queue = SendQueue(network.transport("alice"), sleep=sleep)
        network.fail_next("alice", error=TransportSendFailed("channel down"))

        with pytest.raises(TransportSendFailed, match="channel down"):
            await queue.send("bob", 7)
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_unexpected_errors_wrapped(self, network):
        queue = SendQueue(network.transport("alice"), sleep=_FakeSleep())
        network.fail_next("alice", error=RuntimeError("boom"))

        with pytest.raises(TransportSendFailed) as exc_info:
            await queue.send("bob", 7)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_partial_batch_reports_sent_count(self, network):
        transport = network.transport("alice")
        queue = SendQueue(transport, sleep=_FakeSleep())
        network.fail_next("alice", error=TransportSendFailed("channel down"), after=1)

        with pytest.raises(TransportSendFailed) as exc_info:
            await queue.send_many("bob", [7, 8, 9])

        assert exc_info.value.details["sent"] == 1
        assert [m.amount for m in transport.sent] == [7]

    @pytest.mark.asyncio
    async def test_concurrent_sends_are_serialized(self):
        """Sends that would overlap on the transport go out one at a time."""
        network = InMemoryNetwork(latency=0.01)
        transport = network.transport("alice")
        queue = SendQueue(transport, sleep=_FakeSleep())

        await asyncio.gather(
            queue.send_many("bob", [1, 2]),
            queue.send("bob", 3),
            queue.send_many("bob", [4, 5]),
        )

        amounts = [m.amount for m in transport.sent]
        assert sorted(amounts) == [1, 2, 3, 4, 5]
        assert amounts.index(2) == amounts.index(1) + 1
        assert amounts.index(5) == amounts.index(4) + 1

    def test_rejects_zero_attempts(self, network):
        with pytest.raises(ValueError):
            SendQueue(network.transport("alice"), max_attempts=0)


class TestInMemoryLedger:
    """Tests for InMemoryLedger."""

    @pytest.mark.asyncio
    async def test_settles_after_both_reveals(self):
        ledger = InMemoryLedger()
        commit_a, commit_b = create_commitment(3), create_commitment(8)
        ledger.record_commit(DraftSide.A, commit_a.parts)
        ledger.record_commit(DraftSide.B, commit_b.parts)

        snapshot = await ledger.snapshot()
        assert snapshot.commit_posted(DraftSide.A) and snapshot.commit_posted(DraftSide.B)
        assert snapshot.settled_round(1) is None

        reveal_a, reveal_b = commit_a.reveal(), commit_b.reveal()
        assert ledger.record_reveal(DraftSide.A, reveal_a.move, reveal_a.nonce_parts)
        assert (await ledger.snapshot()).reveal_a
        assert ledger.record_reveal(DraftSide.B, reveal_b.move, reveal_b.nonce_parts)

        snapshot = await ledger.snapshot()
        settled = snapshot.settled_round(1)
        assert snapshot.round_number == 2
        assert settled.move_of(DraftSide.A) == 3
        assert settled.move_of(DraftSide.B) == 8
        assert not snapshot.commit_posted(DraftSide.A)

    def test_rejects_bad_reveal(self):
        ledger = InMemoryLedger()
        commitment = create_commitment(3)
        ledger.record_commit(DraftSide.A, commitment.parts)
        assert not ledger.record_reveal(DraftSide.A, 4, commitment.reveal().nonce_parts)
        assert not ledger.record_reveal(DraftSide.B, 3, commitment.reveal().nonce_parts)

    def test_duplicate_commit(self):
        ledger = InMemoryLedger()
        ledger.record_commit(DraftSide.A, (1, 2))
        with pytest.raises(ValueError):
            ledger.record_commit(DraftSide.A, (3, 4))

    @pytest.mark.asyncio
    async def test_winner(self):
        ledger = InMemoryLedger()
        ledger.declare_winner(LedgerWinner.B)
        assert (await ledger.snapshot()).winner == LedgerWinner.B
