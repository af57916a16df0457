"""Shared helpers."""

from __future__ import annotations
import logging


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for the CLI and server."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
