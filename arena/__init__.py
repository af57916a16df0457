"""
Champion Arena - Trustless simultaneous-move battle engine.

A deterministic two-player battle core that exchanges moves over an
untrusted asynchronous message channel. The package provides:
- Commit-reveal move exchange
- Deterministic combat resolution
- A per-round phase machine driven by discrete events
- Signal classification with stale-message filtering
- Bot policies for local play
"""

__version__ = "0.1.0"
