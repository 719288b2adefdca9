"""JSON log records for the RADIUS client.

Records carry a fixed envelope (ts, level, logger, message, service, host),
an optional ``event`` name, the context bound with :func:`bind_context`, and
any keyword fields passed at the call site. Credential fields are masked
before rendering.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import traceback
from collections.abc import Iterable, MutableMapping
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

__all__ = [
    "configure_logging",
    "get_structured_logger",
    "bind_context",
    "clear_context",
    "StructuredJSONFormatter",
    "StructuredLoggerAdapter",
]

# LogRecord attributes that are not user fields
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "context", "asctime"}

_REDACTED_KEYS: frozenset[str] = frozenset(
    {"password", "secret", "shared_secret", "nt_response", "nt_hash"}
)

_context: ContextVar[dict[str, Any]] = ContextVar(
    "nps_auth_logging_context", default={}
)


@lru_cache(maxsize=1)
def _get_host() -> str:
    try:
        return os.getenv("HOSTNAME") or socket.gethostname()
    except OSError:
        return "unknown"


def _json_default(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return repr(value)


class StructuredJSONFormatter(logging.Formatter):
    """Render each record as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", None) or "nps_auth",
            "host": _get_host(),
        }
        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        context = getattr(record, "context", None) or _context.get()
        for key, value in dict(context).items():
            payload.setdefault(key, value)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            if payload.get(key) not in (None, ""):
                continue
            payload[key] = value

        for key in _REDACTED_KEYS.intersection(payload):
            payload[key] = "***"

        if record.exc_info:
            payload["error"] = {
                "type": getattr(record.exc_info[0], "__name__", ""),
                "message": str(record.exc_info[1]),
                "stack": "".join(traceback.format_exception(*record.exc_info)).strip(),
            }
        return json.dumps(payload, default=_json_default, ensure_ascii=True)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Move call-site keyword fields into ``extra`` and attach bound context."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = kwargs.setdefault("extra", {})
        for key in [k for k in kwargs if k not in {"exc_info", "stack_info", "stacklevel", "extra"}]:
            extra.setdefault(key, kwargs.pop(key))

        context_data = _context.get()
        if context_data or self.extra:
            extra.setdefault("context", {**dict(context_data), **dict(self.extra or {})})
        return msg, kwargs


def configure_logging(
    level: int = logging.INFO,
    handlers: Iterable[logging.Handler] | None = None,
) -> None:
    """Replace the root handlers with JSON-formatting ones."""
    formatter = StructuredJSONFormatter()
    root = logging.getLogger()
    root.handlers = []
    for handler in handlers or (logging.StreamHandler(),):
        if handler.level == logging.NOTSET:
            handler.setLevel(level)
        if handler.formatter is None:
            handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)


def get_structured_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """Adapter for ``name`` carrying static ``context``.

    No handlers are installed here; output appears once the host calls
    ``configure_logging``.
    """
    context = {k: v for k, v in context.items() if v is not None}
    return StructuredLoggerAdapter(logging.getLogger(name), context)


def bind_context(**kwargs: Any) -> Token:
    """Bind key/value pairs to the current task's log context."""
    current = dict(_context.get())
    current.update({k: v for k, v in kwargs.items() if v is not None})
    return _context.set(current)


def clear_context(token: Token | None = None) -> None:
    if token is not None:
        _context.reset(token)
    else:
        _context.set({})
