"""
kardex_engines.tracer -- KARDEX_ENGINE_TRACE for pure engine calls.

``@traced_engine`` logs one structured record per engine invocation:
engine name and version, a fingerprint of the arguments that determine the
result, and the wall time.  Engines stay free of I/O; the only side effect
is the log record.

The fingerprint is the first 16 hex chars of a SHA-256 over a canonical
rendering of the selected arguments.  Arguments are matched by parameter
name whether they were passed positionally or by keyword; a parameter
that was not passed renders as ``null``.

    @traced_engine("kardex_ledger", "1.0", fingerprint_fields=("opening_quantity",))
    def process_ledger(events, sales=(), *, opening_quantity, ...):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from kardex_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_TYPE = "KARDEX_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonical(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        # 1.0 and 1.00 describe the same quantity
        return str(value.normalize()) if value.is_finite() else str(value)
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _canonical(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonical(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Stable hash of ``arguments[field]`` for each field, in field order."""
    canonical = "|".join(f"{name}={_canonical(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Wrap a pure engine so each call emits KARDEX_ENGINE_TRACE.

    Args:
        engine_name: Engine identifier, e.g. ``"kardex_ledger"``.
        engine_version: Engine version, e.g. ``"1.0"``.
        fingerprint_fields: Parameter names hashed into ``input_fingerprint``.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            logger.info(
                TRACE_TYPE,
                extra={
                    "trace_type": TRACE_TYPE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round(elapsed_ms, 2),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
