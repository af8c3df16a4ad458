"""
Error types raised by maintenance-spine.

Every error derives from :class:`MaintenanceError` and carries a category,
a retryable flag and an :class:`ErrorContext` naming the resource and
schedule involved.  None of the built-in errors are retryable: bad schedule
text, a bad duration or a broken database row stay broken until a person
fixes them.

::

    MaintenanceError (INTERNAL)
    ├── ValidationError (VALIDATION)
    │   ├── ScheduleSyntaxError
    │   ├── DurationParseError
    │   └── InvalidWindowError
    ├── ConfigError (CONFIG)
    │   └── InvalidConfigError
    └── StorageError (STORAGE)

Wrap third-party exceptions with ``cause=`` so the original is chained::

    except sqlite3.Error as exc:
        raise StorageError(f"Database error: {exc}", cause=exc) from exc
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    STORAGE = "STORAGE"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Identifiers attached to an error for log lines and CLI output.

    Unknown keys passed to :meth:`MaintenanceError.with_context` are kept
    in ``metadata``.
    """

    resource: str | None = None
    scheduler_id: str | None = None
    field_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "metadata" and getattr(self, f.name) is not None
        }
        result.update(self.metadata)
        return result


class MaintenanceError(Exception):
    """Base class; subclasses override ``category`` and ``retryable``."""

    category: ErrorCategory = ErrorCategory.INTERNAL
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context if context is not None else ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MaintenanceError:
        """Fill context fields and return ``self``, for use in ``raise`` statements."""
        typed = {f.name for f in fields(ErrorContext)} - {"metadata"}
        for key, value in kwargs.items():
            if key in typed:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context = self.context.to_dict()
        if context:
            data["context"] = context
        if self.cause is not None:
            data["cause"] = str(self.cause)
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class ValidationError(MaintenanceError):
    """User-supplied input was rejected; ``field`` names which input."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, field: str | None = None, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        if field is not None:
            self.context.field_name = field

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        if self.value is not None:
            data["value"] = repr(self.value)
        return data


class ScheduleSyntaxError(ValidationError):
    """Schedule text cannot be compiled; ``line`` is the offending line if known."""

    def __init__(
        self,
        message: str,
        *,
        schedule_text: str | None = None,
        line: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, field="schedule_text", value=schedule_text, **kwargs)
        self.schedule_text = schedule_text
        self.line = line

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.line is not None:
            data["line"] = self.line
        return data


class DurationParseError(ValidationError):
    def __init__(self, duration: str, message: str | None = None, **kwargs: Any):
        self.duration = duration
        super().__init__(message or f"Invalid duration: {duration!r}", field="duration", value=duration, **kwargs)


class InvalidWindowError(ValidationError):
    """Maintenance window ends before it starts."""


class ConfigError(MaintenanceError):
    category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    def __init__(self, key: str, value: Any, message: str | None = None, **kwargs: Any):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}", **kwargs)


class StorageError(MaintenanceError):
    """SQLite read or write failed."""

    category = ErrorCategory.STORAGE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MaintenanceError",
    "ValidationError",
    "ScheduleSyntaxError",
    "DurationParseError",
    "InvalidWindowError",
    "ConfigError",
    "InvalidConfigError",
    "StorageError",
]
