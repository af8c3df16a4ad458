"""
Structured logging for maintenance-spine.

Every module logs through ``get_logger(__name__)`` with an event name
and keyword fields::

    logger.info("windows_computed", scheduler_id=..., count=2)

``configure_logging`` is called once by the CLI.  Records go through the
stdlib ``logging`` tree so pytest's ``caplog`` and any host application
handlers see them.  Datetime fields (window starts, checkpoints) are
rendered as ISO-8601 strings in both output modes.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_service_name = "maintenance-spine"


def _stamp_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", _service_name)
    return event_dict


def _isoformat_datetimes(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    for key, value in event_dict.items():
        if isinstance(value, datetime):
            event_dict[key] = value.isoformat()
    return event_dict


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return number


def _renderer(json_format: bool) -> Processor:
    if json_format:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "maintenance-spine",
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        json_format: JSON lines when True, console rendering when False.
            ``None`` picks JSON unless stderr is a terminal.
        service: Value of the ``service`` field on every record.
    """
    global _service_name
    _service_name = service
    threshold = _level_number(level)

    if json_format is None:
        json_format = not sys.stderr.isatty()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            _stamp_service,
            _isoformat_datetimes,
            _renderer(json_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=threshold)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every record logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Scope log fields to a block; values bound before entry are restored on exit.

    Example:
        with LogContext(resource="agent-1", scheduler_id=scheduler.id):
            logger.info("windows_merged", count=len(windows))
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, *exc_info: object) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
