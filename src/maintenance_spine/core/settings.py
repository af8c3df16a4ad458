"""
Centralized settings for maintenance-spine.

Manifesto:
    The scan interval and the lead time are process-wide policy, read once
    at startup.  They are modelled as a validated settings object plus an
    immutable :class:`SchedulingPolicy` that is handed to every scheduler,
    never as mutable module globals.

All fields can be set via ``MAINTENANCE_*`` environment variables (e.g.
``MAINTENANCE_LEAD_TIME_DAYS=14``) or a ``.env`` file.

Examples:
    >>> from maintenance_spine.core.settings import SchedulingPolicy, get_settings
    >>> policy = SchedulingPolicy.from_settings(get_settings())
    >>> policy.check_interval
    datetime.timedelta(seconds=900)

Tags:
    maintenance-spine, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidConfigError


class MaintenanceSettings(BaseSettings):
    """maintenance-spine configuration.

    Fields
    ──────
    check_interval_minutes   : Simulated time each compute call advances the checkpoint by
    lead_time_days           : How far ahead generated windows must lie
    timezone                 : Zone cron lines are evaluated in unless they set TZ=
    database_path            : SQLite file used by the planner and the CLI
    planner_interval_seconds : Cadence of the planner's timing backend
    log_level / log_format   : Structlog configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="MAINTENANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Scheduling policy ────────────────────────────────────────
    check_interval_minutes: int = Field(default=15, ge=1)
    lead_time_days: int = Field(default=7, ge=0)
    timezone: str = Field(default="UTC", description="IANA zone for cron evaluation")

    # ── Planner ──────────────────────────────────────────────────
    planner_interval_seconds: float = Field(default=300.0, gt=0)
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".maintenance-spine" / "maintenance.db",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value

    @field_validator("log_format")
    @classmethod
    def _known_log_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value


@dataclass(frozen=True)
class SchedulingPolicy:
    """Immutable scan/lead-time policy shared by all recurring schedulers."""

    check_interval_minutes: int = 15
    lead_time_days: int = 7
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if self.check_interval_minutes < 1:
            raise InvalidConfigError("check_interval_minutes", self.check_interval_minutes)
        if self.lead_time_days < 0:
            raise InvalidConfigError("lead_time_days", self.lead_time_days)

    @property
    def check_interval(self) -> timedelta:
        return timedelta(minutes=self.check_interval_minutes)

    @property
    def lead_time(self) -> timedelta:
        return timedelta(days=self.lead_time_days)

    @classmethod
    def from_settings(cls, settings: MaintenanceSettings) -> SchedulingPolicy:
        return cls(
            check_interval_minutes=settings.check_interval_minutes,
            lead_time_days=settings.lead_time_days,
            timezone=settings.timezone,
        )


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, MaintenanceSettings] = {}
_policy_cache: dict[str, SchedulingPolicy] = {}


def get_settings(*, _force_reload: bool = False) -> MaintenanceSettings:
    """Load, validate, and cache a :class:`MaintenanceSettings` instance.

    Raises:
        InvalidConfigError: If an environment value fails validation.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    try:
        settings = MaintenanceSettings()
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise InvalidConfigError(key, first.get("input"), first["msg"], cause=exc) from exc

    _settings_cache["default"] = settings
    return settings


def default_policy() -> SchedulingPolicy:
    """Return the process-wide policy, built once from settings."""
    if "default" not in _policy_cache:
        _policy_cache["default"] = SchedulingPolicy.from_settings(get_settings())
    return _policy_cache["default"]


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
    _policy_cache.clear()
