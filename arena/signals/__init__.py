"""
Signals - Classification of inbound channel messages.
"""

from .kinds import SignalKind, RevealPart, Stage, Signal, CommitGroup, RevealGroup
from .classifier import SignalClassifier, classify

__all__ = [
    "SignalKind",
    "RevealPart",
    "Stage",
    "Signal",
    "CommitGroup",
    "RevealGroup",
    "SignalClassifier",
    "classify",
]
