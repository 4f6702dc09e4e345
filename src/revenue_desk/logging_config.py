"""Logging setup for the revenue_desk logger hierarchy."""

from __future__ import annotations

import logging
import threading

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["LOGGER_NAME", "configure_logging", "reset_logging"]

LOGGER_NAME = "revenue_desk"

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    console: Console | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a rich handler to the package logger (idempotent)."""
    global _configured
    with _lock:
        if _configured:
            logging.getLogger(LOGGER_NAME).setLevel(level)
            return
        _configured = True

    root_logger = logging.getLogger(LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.propagate = False

    if handler is None:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
