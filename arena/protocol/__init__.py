"""
Protocol - Commit-reveal engine and transport amount encoding.
"""

from .commitment import (
    CommitmentScheme,
    Commitment,
    Reveal,
    DEFAULT_SCHEME,
    SUPPORTED_HASHES,
    get_scheme,
    create_commitment,
    create_reveal,
    verify_reveal,
)
from . import wire

__all__ = [
    "CommitmentScheme",
    "Commitment",
    "Reveal",
    "DEFAULT_SCHEME",
    "SUPPORTED_HASHES",
    "get_scheme",
    "create_commitment",
    "create_reveal",
    "verify_reveal",
    "wire",
]
