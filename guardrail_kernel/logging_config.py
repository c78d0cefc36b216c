"""
Structured JSON logging for the guardrail kernel.

Every record is one JSON object per line::

    {"ts": ..., "level": ..., "logger": ..., "message": "<snake_case_event>",
     "organization_id": ..., "table": ..., <extra fields>, <exc_* fields>}

Request-scoped fields (correlation, organization, actor, table, trace) are
held in contextvars by ``LogContext`` and merged into every record emitted
while they are bound.  Extra values may be guardrail DTOs (Violation,
FixRecord, Verdict), enums, Decimals or dates; the encoder renders them as
plain JSON.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = (
    "correlation_id",
    "organization_id",
    "actor_id",
    "table",
    "trace_id",
)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"guardrail_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """Request-scoped log fields, safe across threads and asyncio tasks."""

    FIELDS = _CONTEXT_FIELDS

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set context fields. None values are ignored; unknown names raise."""
        for name, value in fields.items():
            if name not in _CONTEXT_VARS:
                raise TypeError(f"Unknown log context field: {name}")
            if value is not None:
                _CONTEXT_VARS[name].set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Return all bound context fields."""
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: Any) -> "_LogContextManager":
        """Bind fields for the span of a ``with`` block, restoring them on exit."""
        unknown = set(fields) - set(_CONTEXT_VARS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        return _LogContextManager(fields)


class _LogContextManager:

    def __init__(self, fields: dict[str, Any]):
        self._fields = fields
        self._tokens: list[tuple[ContextVar[str | None], Any]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            if value is not None:
                var = _CONTEXT_VARS[name]
                self._tokens.append((var, var.set(str(value))))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        # reset in reverse so nested binds of the same field unwind correctly
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _GuardrailJSONEncoder(json.JSONEncoder):
    """Render guardrail values (DTOs, enums, Decimal, dates) as JSON; str() otherwise."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        to_dict = getattr(obj, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in entry:
                entry[key] = val

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            entry["exc_type"] = type(exc).__name__
            entry["exc_message"] = str(exc)
            # GuardrailError subclasses carry a code plus structured attributes
            code = getattr(exc, "code", None)
            if code is not None:
                entry["exc_code"] = code
            entry.update(
                (f"exc_{k}", v)
                for k, v in vars(exc).items()
                if not k.startswith("_") and k not in ("args", "code")
            )
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, cls=_GuardrailJSONEncoder)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "guardrail_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the guardrail_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the guardrail_kernel logger.

    Only the first call has an effect.  ``level`` accepts a level number or
    name (``"DEBUG"``).  Records stop at the guardrail_kernel logger so the
    host application's root handlers do not print them twice.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level.upper() if isinstance(level, str) else level)
    kernel_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(h)


def reset_logging() -> None:
    """Undo configure_logging(). Tests only."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
    kernel_logger.propagate = True
