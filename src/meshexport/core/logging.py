"""Logging for meshexport.

The CLI calls ``setup_logging`` once per command, replacing any handlers a
previous command installed. Library code never configures logging: every
step and helper reports to a ``DiagnosticsSink`` handed in by the caller,
falling back to its module logger.
"""

from __future__ import annotations

import logging
import sys
from typing import Union

# Anything that accepts logger-style calls can act as a diagnostics sink.
DiagnosticsSink = Union[logging.Logger, logging.LoggerAdapter]


def setup_logging(level: str = "INFO") -> None:
    """Configure structured logging with consistent format."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
