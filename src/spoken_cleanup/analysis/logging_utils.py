"""Logging helpers with a custom TRACE level for per-window detail."""

import logging
from typing import Any

# Below DEBUG - per-window scan output
TRACE_LEVEL = 5

LOG_FORMAT_DETAILED = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(asctime)s - %(levelname)s - %(message)s"


def add_trace_level() -> None:
    """Register the TRACE level and a matching ``Logger.trace`` method."""
    logging.addLevelName(TRACE_LEVEL, "TRACE")

    def trace(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
        """Log a message with severity 'TRACE'."""
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, message, args, **kwargs)

    logging.Logger.trace = trace


def get_logger(name: str) -> logging.Logger:
    """Get a logger with trace support."""
    if not hasattr(logging.Logger, "trace"):
        add_trace_level()

    return logging.getLogger(name)


def configure_logging(verbose: bool = False, trace: bool = False) -> int:
    """
    Configure root logging for command-line use.

    Args:
        verbose: Enable DEBUG output
        trace: Enable TRACE output (overrides verbose)

    Returns:
        The level that was applied
    """
    add_trace_level()

    if trace:
        level = TRACE_LEVEL
        fmt = LOG_FORMAT_DETAILED
    elif verbose:
        level = logging.DEBUG
        fmt = LOG_FORMAT_DETAILED
    else:
        level = logging.INFO
        fmt = LOG_FORMAT_SIMPLE

    logging.basicConfig(level=level, format=fmt)
    return level
