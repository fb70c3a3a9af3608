"""Structured logging utilities with context management."""

import contextvars
import sys
from typing import Any

from loguru import logger


# Context variables for maintaining per-run/per-client context
run_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("run_context", default={})


class LoggingContext:
    """
    Context manager for structured logging with automatic context injection.

    Example:
        with LoggingContext(client="db01"):
            logger.info("Running query")  # Will include client=db01
    """

    def __init__(self, **context_data):
        """
        Initialize logging context.

        Args:
            **context_data: Key-value pairs to add to logging context
        """
        self.context_data = context_data
        self.token = None

    def __enter__(self):
        """Enter context and set context variables."""
        current = run_context.get().copy()
        current.update(self.context_data)

        self.token = run_context.set(current)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context and restore previous context."""
        if self.token:
            run_context.reset(self.token)


def _format_context(record) -> str:
    """Build the line format, listing whatever context the record carries."""
    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    )
    if record["extra"]:
        fmt += "<cyan>" + " ".join(f"{key}={{extra[{key}]}}" for key in record["extra"]) + "</cyan> | "
    return fmt + "<level>{message}</level>\n{exception}"


def configure_logging(level: str = "WARNING"):
    """
    Configure loguru to include context variables in all log messages.

    Logs go to stderr; stdout carries the check output and dry-run events.
    This should be called once at startup.
    """

    def context_filter(record):
        """Add context variables to log record."""
        for key, value in run_context.get().items():
            record["extra"][key] = value
        return True

    # Remove default handler
    logger.remove()

    logger.add(
        sink=sys.stderr,
        format=_format_context,
        filter=context_filter,
        level=level.upper(),
        colorize=None,
    )
