"""
Transport - Message channel interface and local implementations.
"""

from .adapter import Message, TransportAdapter
from .memory import InMemoryNetwork, InMemoryTransport
from .send_queue import SendQueue
from .ledger import (
    LedgerReader,
    LedgerSnapshot,
    LedgerWinner,
    SettledRound,
    InMemoryLedger,
)

__all__ = [
    "Message",
    "TransportAdapter",
    "InMemoryNetwork",
    "InMemoryTransport",
    "SendQueue",
    "LedgerReader",
    "LedgerSnapshot",
    "LedgerWinner",
    "SettledRound",
    "InMemoryLedger",
]
