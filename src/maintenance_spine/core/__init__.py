"""maintenance-spine core -- errors, settings, logging and time helpers.

Architecture::

    errors.py        Structured error hierarchy (MaintenanceError, ScheduleSyntaxError)
    settings.py      pydantic-settings configuration + SchedulingPolicy
    logging.py       structlog configuration (configure_logging, get_logger)
    timestamps.py    UTC, minute truncation and epoch-millis helpers (stdlib-only)
    principal.py     Acting principal used to attribute new schedules
"""

from .errors import (
    ConfigError,
    DurationParseError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    InvalidWindowError,
    MaintenanceError,
    ScheduleSyntaxError,
    StorageError,
    ValidationError,
)
from .principal import SYSTEM_PRINCIPAL, acting_as, current_principal
from .settings import (
    MaintenanceSettings,
    SchedulingPolicy,
    clear_settings_cache,
    default_policy,
    get_settings,
)

__all__ = [
    "ConfigError",
    "DurationParseError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "InvalidWindowError",
    "MaintenanceError",
    "ScheduleSyntaxError",
    "StorageError",
    "ValidationError",
    "SYSTEM_PRINCIPAL",
    "acting_as",
    "current_principal",
    "MaintenanceSettings",
    "SchedulingPolicy",
    "clear_settings_cache",
    "default_policy",
    "get_settings",
]
