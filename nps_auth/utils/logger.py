"""Project-wide logging helpers built on structured logging utilities."""

from __future__ import annotations

import logging
from typing import Any

from .logging_config import (
    StructuredLoggerAdapter,
    bind_context,
    clear_context,
    configure_logging,
    get_structured_logger,
)

__all__ = ["configure", "get_logger", "bind_context", "clear_context"]


def configure(
    *, level: int = logging.INFO, handlers: list[logging.Handler] | None = None
) -> None:
    """Configure structured logging for the application."""
    configure_logging(level=level, handlers=handlers)


def get_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """Return a structured logger adapter for the provided name."""
    return get_structured_logger(name, **context)
