"""
Structured JSON logging for the Kardex.

Every record under the ``kardex`` logger namespace is written as one JSON
object per line:

    {"ts": ..., "level": ..., "logger": ..., "message": ..., <context>, <extra>}

Context fields live in context variables: ``correlation_id`` ties together
every record of one CLI run, and ``report_id`` is bound by each report build
so that the records it emits, including those of the engines it calls,
carry it.
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
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from typing import Any, ClassVar

LOGGER_NAMESPACE = "kardex"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "report_id")


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    _vars: ClassVar[dict[str, ContextVar[str | None]]] = {
        name: ContextVar(f"kardex_log_{name}", default=None) for name in _CONTEXT_FIELDS
    }

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        report_id: str | None = None,
    ) -> None:
        """Update the given fields; ``None`` leaves a field untouched."""
        values = {
            "correlation_id": correlation_id,
            "report_id": report_id,
        }
        for name, value in values.items():
            if value is not None:
                cls._vars[name].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in cls._vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """Set fields for the duration of a ``with`` block.

        Unknown field names and ``None`` values are ignored.
        """
        return _BoundContext(cls._vars, fields)


class _BoundContext:
    def __init__(self, context_vars: dict[str, ContextVar[str | None]], fields: dict[str, str | None]):
        self._context_vars = context_vars
        self._fields = fields
        self._tokens: list[tuple[ContextVar[str | None], Token]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            var = self._context_vars.get(name)
            if var is not None and value is not None:
                self._tokens.append((var, var.set(value)))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    # Decimal, UUID, Path and anything else
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default, ensure_ascii=False)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        # KardexError subclasses expose a code and structured attributes
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for name, value in vars(exc).items():
            if not name.startswith("_") and name not in ("args", "code"):
                fields[f"exc_{name}"] = value
        return fields


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``kardex.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``kardex`` logger; later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(handler)


def reset_logging() -> None:
    """Undo ``configure_logging``. Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(LOGGER_NAMESPACE)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
