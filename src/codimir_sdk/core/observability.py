from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

RESERVED_LOG_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in RESERVED_LOG_KEYS}


def log_event(
    event: str,
    logger: logging.Logger | None = None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """
    Minimal structured logging helper.
    - Uses logger.log with extra dict so formatters can include keys.
    - Drops reserved LogRecord attributes to avoid collisions.
    """
    log = logger or logging.getLogger("codimir_sdk.observability")
    extra = {"event": event, **_clean_fields(fields)}
    log.log(level, event, extra=extra)


@dataclass(frozen=True)
class Diagnostic:
    name: str
    level: int = logging.INFO
    fields: Dict[str, Any] = field(default_factory=dict)


DiagnosticSink = Callable[[Diagnostic], None]


class LoggingSink:
    """Default sink: forwards diagnostics to log_event."""

    def __init__(self, logger: logging.Logger | None = None):
        self.log = logger or logging.getLogger("codimir_sdk.realtime")

    def __call__(self, diagnostic: Diagnostic) -> None:
        log_event(diagnostic.name, self.log, diagnostic.level, **diagnostic.fields)


def emit(sink: DiagnosticSink, name: str, level: int = logging.INFO, **fields: Any):
    sink(Diagnostic(name=name, level=level, fields=fields))


__all__ = [
    "Diagnostic",
    "DiagnosticSink",
    "LoggingSink",
    "emit",
    "log_event",
]
