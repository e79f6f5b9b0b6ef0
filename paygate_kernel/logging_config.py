"""
Structured JSON logging for the payment gate kernel.

Every record under the ``paygate_kernel`` logger is written as one JSON line.
Fields bound through ``LogContext`` are attached to every record emitted
while the binding is active:

    actor_id     administrator performing a setter, grant or revoke
    account      participant whose settlement is being evaluated
    action       "fee" or "payout"
    period_code  live period ("YYYY-MM") a settlement is evaluated against

Kernel values are rendered by the encoder: Decimal amounts as strings,
enums by value, ``Period`` by its code and notifications by their payload.
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

CONTEXT_FIELDS: tuple[str, ...] = ("actor_id", "account", "action", "period_code")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound_fields: ContextVar[Mapping[str, str]] = ContextVar(
    "paygate_log_context", default=_EMPTY
)


def _merged(fields: dict[str, str | None]) -> Mapping[str, str]:
    unknown = sorted(set(fields) - set(CONTEXT_FIELDS))
    if unknown:
        raise ValueError(f"Unknown log context field(s): {', '.join(unknown)}")
    merged = dict(_bound_fields.get())
    merged.update({k: str(v) for k, v in fields.items() if v is not None})
    return MappingProxyType(merged)


class LogContext:
    """
    Per-thread (and per-task) log fields.

    Only the names in ``CONTEXT_FIELDS`` are accepted.  ``None`` values leave
    the current binding of that field untouched.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        _bound_fields.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_bound_fields.get())

    @staticmethod
    def clear() -> None:
        _bound_fields.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Bind fields for the duration of a ``with`` block."""
        token = _bound_fields.set(_merged(fields))
        try:
            yield
        finally:
            _bound_fields.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _encode(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    to_payload = getattr(obj, "to_payload", None)
    if callable(to_payload):
        return to_payload()
    code = getattr(obj, "code", None)
    if isinstance(code, str):
        return code
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_bound_fields.get())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_error_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_encode)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
        # PaygateError subclasses keep their context as public attributes
        for k, v in vars(exc).items():
            if not k.startswith("_"):
                fields[f"exc_{k}"] = v
    return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "paygate_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger under the paygate_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the paygate_kernel logger.

    ``level`` may be a number or a level name such as ``"DEBUG"`` (as it
    appears in the settings file).  Later calls are ignored until
    ``reset_logging()``.
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
    """Undo configure_logging.  Used by tests."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    for h in list(kernel_logger.handlers):
        kernel_logger.removeHandler(h)
    kernel_logger.setLevel(logging.WARNING)
