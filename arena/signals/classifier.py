"""
Signal Classifier - Typed classification and exactly-once consumption.

Responsibilities:
- Map each inbound Message to a Signal (explicit tag first, then amount
  within the current Stage)
- Keep one handled-set per SignalKind, keyed by message id, appended to
  monotonically
- Baseline snapshots so leftovers from a previous match or round are
  never treated as new
- Claim multi-part groups (commitments, reveals) atomically

Baselines requested before the observer is ready (messages=None) are
deferred: the first observation cycle afterwards is consumed as the
baseline and yields nothing new.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable
import logging

from ..engine_core.action import decode_draft_pick
from ..protocol import wire
from ..protocol.commitment import DEFAULT_SCHEME, CommitmentScheme
from ..transport.adapter import Message
from .kinds import CommitGroup, RevealGroup, RevealPart, Signal, SignalKind, Stage

logger = logging.getLogger(__name__)

_CONTROL_AMOUNTS = {
    wire.JOIN_SIGNAL: SignalKind.JOIN,
    wire.ACCEPT_SIGNAL: SignalKind.ACCEPT,
    wire.LEAVE_SIGNAL: SignalKind.LEAVE,
}


@dataclass(frozen=True)
class _DeferredBaseline:
    kinds: frozenset[SignalKind]
    sender: str | None


def _malformed(message: Message, reason: str) -> Signal:
    return Signal(SignalKind.MALFORMED, message.id, message.sender, message.amount, reason=reason)


def classify(message: Message, stage: Stage, scheme: CommitmentScheme = DEFAULT_SCHEME) -> Signal:
    """
    Classify one message. Never raises; undecodable input yields MALFORMED.

    Tagged messages are classified by tag and must fall in that tag's
    amount range. Untagged messages are classified by amount within the
    stage: in BATTLE the control amounts 100-102 sit inside the nonce
    range and are read as nonce parts, so leave signals there must be
    tagged.
    """
    amount = message.amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        return _malformed(message, f"non-integer amount {amount!r}")

    if message.tag is not None:
        try:
            kind = SignalKind(message.tag)
        except ValueError:
            return _malformed(message, f"unknown tag {message.tag!r}")
        if kind == SignalKind.MALFORMED:
            return _malformed(message, "reserved tag")
        return _classify_as(message, kind, scheme)

    if stage == Stage.BATTLE:
        if wire.is_commit_amount(amount, scheme):
            return _classify_as(message, SignalKind.COMMIT, scheme)
        return _classify_as(message, SignalKind.REVEAL, scheme)

    if amount in _CONTROL_AMOUNTS:
        return _classify_as(message, _CONTROL_AMOUNTS[amount], scheme)
    if stage == Stage.DRAFT:
        return _classify_as(message, SignalKind.DRAFT_PICK, scheme)
    return _malformed(message, f"amount {amount} is not a lobby signal")


def _classify_as(message: Message, kind: SignalKind, scheme: CommitmentScheme) -> Signal:
    amount = message.amount

    if kind in (SignalKind.JOIN, SignalKind.ACCEPT, SignalKind.LEAVE):
        if _CONTROL_AMOUNTS.get(amount) != kind:
            return _malformed(message, f"{kind.value} signal with amount {amount}")
        return Signal(kind, message.id, message.sender, amount)

    if kind == SignalKind.DRAFT_PICK:
        if not wire.is_draft_pick_amount(amount):
            return _malformed(message, f"draft pick amount {amount} out of range")
        return Signal(kind, message.id, message.sender, amount, value=decode_draft_pick(amount))

    if kind == SignalKind.COMMIT:
        if not wire.is_commit_amount(amount, scheme):
            return _malformed(message, f"commit amount {amount} out of range")
        return Signal(kind, message.id, message.sender, amount,
                      value=wire.commit_part_from_amount(amount, scheme))

    if wire.is_move_amount(amount):
        return Signal(kind, message.id, message.sender, amount, value=amount, reveal_part=RevealPart.MOVE)
    if wire.is_nonce_amount(amount, scheme):
        return Signal(kind, message.id, message.sender, amount, value=amount, reveal_part=RevealPart.NONCE)
    return _malformed(message, f"reveal amount {amount} out of range")


class SignalClassifier:
    """
    Stateful classifier owned by one match session.

    Usage:
        classifier = SignalClassifier()
        classifier.capture_baseline(await transport.observe(host), ALL_KINDS, sender=host)
        ...
        group = classifier.take_commit(await transport.observe(opponent), opponent)
    """

    def __init__(self, stage: Stage = Stage.LOBBY, scheme: CommitmentScheme = DEFAULT_SCHEME):
        self.stage = stage
        self.scheme = scheme
        self._handled: dict[SignalKind, set[str]] = {kind: set() for kind in SignalKind}
        self._deferred: list[_DeferredBaseline] = []
        self._commit_claimed: set[str] = set()

    # -------------------------------------------------------------------------
    # Handled sets
    # -------------------------------------------------------------------------

    def is_handled(self, message_id: str) -> bool:
        return any(message_id in ids for ids in self._handled.values())

    def handled_ids(self, kind: SignalKind) -> frozenset[str]:
        return frozenset(self._handled[kind])

    def _mark(self, signal: Signal) -> None:
        self._handled[signal.kind].add(signal.message_id)

    def classify(self, message: Message) -> Signal:
        return classify(message, self.stage, self.scheme)

    # -------------------------------------------------------------------------
    # Baselines
    # -------------------------------------------------------------------------

    def capture_baseline(
        self,
        messages: list[Message] | None,
        kinds: Iterable[SignalKind],
        sender: str | None = None,
    ) -> int:
        """
        Mark every visible message of the given kinds as handled.

        Pass messages=None when the observer is not ready yet; the next
        observation cycle then becomes the baseline. Returns the number of
        messages captured now.
        """
        kinds = frozenset(kinds)
        if messages is None:
            self._deferred.append(_DeferredBaseline(kinds, sender))
            logger.debug("Baseline deferred for %s", sorted(k.value for k in kinds))
            return 0
        return self._apply_baseline(messages, kinds, sender)

    def _apply_baseline(self, messages: list[Message], kinds: frozenset[SignalKind],
                        sender: str | None) -> int:
        count = 0
        for message in messages:
            if sender is not None and message.sender != sender:
                continue
            if self.is_handled(message.id):
                continue
            signal = self.classify(message)
            if signal.kind in kinds or signal.kind == SignalKind.MALFORMED:
                self._mark(signal)
                count += 1
        logger.debug("Baseline captured %d stale message(s)", count)
        return count

    def start_round(self, messages: list[Message]) -> int:
        """Snapshot round leftovers and reset per-round claim state."""
        self._commit_claimed.clear()
        return self._apply_baseline(messages, frozenset(SignalKind), None)

    def apply_deferred(self, messages: list[Message]) -> bool:
        """Consume this observation cycle as the pending baseline, if any."""
        if not self._deferred:
            return False
        for baseline in self._deferred:
            self._apply_baseline(messages, baseline.kinds, baseline.sender)
        self._deferred.clear()
        return True

    def _ready(self, messages: list[Message]) -> bool:
        return not self.apply_deferred(messages)

    # -------------------------------------------------------------------------
    # Consumption
    # -------------------------------------------------------------------------

    def _fresh(self, messages: list[Message], sender: str | None) -> list[Signal]:
        """Unhandled, well-formed signals in message order. Malformed ones are logged once."""
        fresh = []
        for message in messages:
            if sender is not None and message.sender != sender:
                continue
            if self.is_handled(message.id):
                continue
            signal = self.classify(message)
            if signal.kind == SignalKind.MALFORMED:
                logger.warning("Ignoring malformed message %s from %s: %s",
                               message.id, message.sender, signal.reason)
                self._mark(signal)
                continue
            fresh.append(signal)
        return fresh

    def take_signals(self, messages: list[Message], kind: SignalKind,
                     sender: str | None = None) -> list[Signal]:
        """New single-message signals of one kind. Each is returned once."""
        if not self._ready(messages):
            return []
        taken = [s for s in self._fresh(messages, sender) if s.kind == kind]
        for signal in taken:
            self._mark(signal)
        return taken

    def take_commit(self, messages: list[Message], sender: str) -> CommitGroup | None:
        """Claim a full commitment from `sender`, or nothing."""
        if not self._ready(messages):
            return None
        chunks = [s for s in self._fresh(messages, sender) if s.kind == SignalKind.COMMIT]
        needed = self.scheme.chunk_count
        if len(chunks) < needed:
            return None
        group = chunks[:needed]
        for signal in group:
            self._mark(signal)
        self._commit_claimed.add(sender)
        return CommitGroup(
            sender=sender,
            parts=tuple(s.value for s in group),
            message_ids=tuple(s.message_id for s in group),
        )

    def take_reveal(self, messages: list[Message], sender: str) -> RevealGroup | None:
        """
        Claim a full reveal (one move, all nonce parts) from `sender`.

        Only possible once that sender's commitment was claimed this round.
        """
        if sender not in self._commit_claimed:
            return None
        if not self._ready(messages):
            return None
        parts = [s for s in self._fresh(messages, sender) if s.kind == SignalKind.REVEAL]
        moves = [s for s in parts if s.reveal_part == RevealPart.MOVE]
        nonces = [s for s in parts if s.reveal_part == RevealPart.NONCE]
        needed = self.scheme.chunk_count
        if not moves or len(nonces) < needed:
            return None
        group = [moves[0], *nonces[:needed]]
        for signal in group:
            self._mark(signal)
        return RevealGroup(
            sender=sender,
            move=moves[0].value,
            nonce_parts=tuple(s.value for s in nonces[:needed]),
            message_ids=tuple(s.message_id for s in group),
        )
