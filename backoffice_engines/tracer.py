"""
backoffice_engines.tracer -- Engine invocation tracer emitting BACKOFFICE_ENGINE_TRACE.

Responsibility:
    Wrap pure engine entry points with a ``@traced_engine`` decorator that
    logs one structured trace record per call: engine_name, engine_version,
    input_fingerprint (SHA-256 prefix of selected arguments), outcome and
    duration_ms.

Architecture position:
    Engines -- infrastructure support for the calculation layer.
    Emits a log record only; never performs I/O of its own.  Logs under
    ``backoffice_kernel.engines.tracer`` so the kernel's structured
    formatter picks the record up once logging is configured.

Invariants enforced:
    - Fingerprints are deterministic: values are canonicalized, mapping
      keys sorted, and the digest is SHA-256 truncated to 16 hex chars.
    - Positional and keyword arguments fingerprint identically; both are
      bound against the wrapped function's signature first.
    - The decorator never mutates arguments and re-raises whatever the
      engine raises, after logging a failed trace.

Usage:
    from backoffice_engines.tracer import traced_engine

    @traced_engine("revenue_schedule", "1.0", fingerprint_fields=("contract",))
    def generate_schedule(self, contract, ...):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("backoffice_kernel.engines.tracer")

TRACE_TYPE = "BACKOFFICE_ENGINE_TRACE"


def _canonicalize(value: Any) -> str:
    """Produce a stable string representation of a value for fingerprinting.

    None, numbers, strings, Decimals, dates and enums map to their plain
    string form; mappings are key-sorted; sequences keep their order;
    dataclasses are expanded field by field.  Unknown types fall back to
    ``str(value)``.
    """
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (bool, int, Decimal, str, date)):
        return str(value)
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = (
            f"{f.name}:{_canonicalize(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return type(value).__name__ + "(" + ",".join(fields) + ")"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """Compute a deterministic SHA-256 fingerprint of selected arguments.

    Missing fields are recorded as "null".  Returns a 16-character hex
    digest prefix.
    """
    parts: list[str] = []
    for field in fingerprint_fields:
        parts.append(f"{field}={_canonicalize(arguments.get(field))}")
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits BACKOFFICE_ENGINE_TRACE for engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "consolidation").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names to include in the input
            fingerprint hash.

    Returns:
        Decorator function.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            t0 = time.monotonic()
            outcome = "success"
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                outcome = getattr(exc, "code", type(exc).__name__)
                raise
            finally:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                _logger.info(
                    TRACE_TYPE,
                    extra={
                        "trace_type": TRACE_TYPE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": fp,
                        "outcome": outcome,
                        "duration_ms": duration_ms,
                        "function": func.__qualname__,
                    },
                )

        return wrapper

    return decorator
