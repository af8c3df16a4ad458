"""Schedule matcher - compiled cron recurrence, evaluated per minute.

Manifesto:
    The recurring scheduler only ever asks one question: "does this minute
    match the schedule?".  The matcher answers it for a multi-line,
    crontab-style schedule and is always rebuilt from its source text, so
    the compiled form never needs to be persisted.

This module wraps croniter with the crontab conventions people expect in a
maintenance schedule field.

Tags:
    maintenance-spine, scheduling, cron, croniter, matcher, validation

Doc-Types:
    api-reference


┌──────────────────────────────────────────────────────────────────────────────┐
│  SCHEDULE TEXT                                                                │
│                                                                               │
│   # nightly upkeep                 ← comment, ignored                         │
│   TZ=Europe/Berlin                 ← zone for the lines that follow           │
│   0 2 * * 1-5                      ← weekdays 02:00 Berlin time               │
│   H 4 * * 6,0                      ← weekends, hashed minute within 04:xx     │
│   @weekly                          ← alias, expands to "H H * * H"            │
│                                                                               │
│  A minute matches when ANY line fires at that minute.                        │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import CroniterBadDateError, CroniterError, croniter

from maintenance_spine.core.errors import ScheduleSyntaxError
from maintenance_spine.core.timestamps import ONE_MINUTE, ensure_utc, truncate_to_minute, utc_now

DEFAULT_HASH_ID = "maintenance-spine"

_ALIASES = {
    "@yearly": "H H H H *",
    "@annually": "H H H H *",
    "@monthly": "H H H * *",
    "@weekly": "H H * * H",
    "@daily": "H H * * *",
    "@midnight": "H H(0-2) * * *",
    "@hourly": "H * * * *",
}


@dataclass(frozen=True)
class CronTab:
    """One compiled schedule line."""

    line: str
    expression: str
    zone: ZoneInfo

    @property
    def fields(self) -> list[str]:
        return self.expression.split()


class ScheduleMatcher:
    """Compiled form of a schedule text.

    Args:
        text: Schedule text (one cron expression per line).
        hash_id: Seed for ``H`` fields; the owning scheduler's id keeps the
            spread minute stable across restarts.
        timezone: Zone for lines that are not preceded by ``TZ=``.

    Raises:
        ScheduleSyntaxError: On an invalid line or an unknown zone.

    Example:
        >>> matcher = ScheduleMatcher("0 2 * * *")
        >>> matcher.matches(datetime(2026, 3, 1, 2, 0, tzinfo=UTC))
        True
    """

    def __init__(
        self,
        text: str,
        *,
        hash_id: str | None = None,
        timezone: str = "UTC",
    ) -> None:
        self.text = text or ""
        self.hash_id = hash_id or DEFAULT_HASH_ID
        self.timezone = timezone
        self.tabs: list[CronTab] = self._compile()

    def _compile(self) -> list[CronTab]:
        zone = _load_zone(self.timezone, self.text, f"TZ={self.timezone}")
        tabs = []
        for raw in self.text.splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line.upper().startswith("TZ="):
                zone = _load_zone(line[3:].strip(), self.text, line)
                continue

            expression = _ALIASES.get(line.lower(), line)
            if line.startswith("@") and expression == line:
                raise ScheduleSyntaxError(
                    f"Unknown alias {line!r}", schedule_text=self.text, line=line
                )
            if len(expression.split()) != 5:
                raise ScheduleSyntaxError(
                    f"Expected 5 fields (minute hour day month weekday) in {line!r}",
                    schedule_text=self.text,
                    line=line,
                )
            try:
                croniter(expression, datetime.now(zone), hash_id=self.hash_id)
            except (CroniterError, ValueError, KeyError) as exc:
                raise ScheduleSyntaxError(
                    f"Invalid schedule line {line!r}: {exc}",
                    schedule_text=self.text,
                    line=line,
                    cause=exc,
                ) from exc
            tabs.append(CronTab(line=line, expression=expression, zone=zone))
        return tabs

    def matches(self, when: datetime) -> bool:
        """Return True if any line fires at the minute containing *when*."""
        minute = truncate_to_minute(when)
        return any(self._tab_fires_at(tab, minute) for tab in self.tabs)

    def _tab_fires_at(self, tab: CronTab, minute: datetime) -> bool:
        local = minute.astimezone(tab.zone)
        it = croniter(
            tab.expression,
            local - ONE_MINUTE,
            hash_id=self.hash_id,
            max_years_between_matches=1,
        )
        try:
            fired = it.get_next(datetime)
        except CroniterBadDateError:
            return False
        return ensure_utc(fired) == minute

    def next_match(self, after: datetime) -> datetime | None:
        """Earliest firing minute strictly after *after* (UTC), or None."""
        start = ensure_utc(after)
        candidates = []
        for tab in self.tabs:
            it = croniter(tab.expression, start.astimezone(tab.zone), hash_id=self.hash_id)
            try:
                candidates.append(ensure_utc(it.get_next(datetime)))
            except CroniterBadDateError:
                continue
        return min(candidates) if candidates else None

    def check_sanity(self, now: datetime | None = None) -> str | None:
        """Advisory message for a valid but suspicious schedule, else None."""
        if not self.tabs:
            return "Schedule has no entries and will never match"

        now = now or utc_now()
        for tab in self.tabs:
            fields = tab.fields
            if fields[0] == "*":
                rest = " ".join(fields[1:])
                return (
                    f'Do you really mean "every minute" when you say "{tab.line}"? '
                    f'Perhaps you meant "H {rest}"'
                )
            it = croniter(tab.expression, ensure_utc(now).astimezone(tab.zone), hash_id=self.hash_id)
            try:
                it.get_next(datetime)
            except CroniterBadDateError:
                return f'Schedule "{tab.line}" never matches'
        return None

    def __repr__(self) -> str:
        return f"ScheduleMatcher({self.text!r}, timezone={self.timezone!r})"


def _load_zone(name: str, text: str, line: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ScheduleSyntaxError(
            f"Unknown time zone {name!r}", schedule_text=text, line=line, cause=exc
        ) from exc


# ---------------------------------------------------------------------------
# Standalone validation
# ---------------------------------------------------------------------------


class CheckKind(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ScheduleCheck:
    """Outcome of :func:`check_schedule`."""

    kind: CheckKind
    message: str | None = None

    @property
    def ok(self) -> bool:
        """True unless the schedule is a syntax error."""
        return self.kind is not CheckKind.ERROR

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind.value, "message": self.message}


def check_schedule(text: str | None, *, timezone: str = "UTC") -> ScheduleCheck:
    """Validate schedule text without constructing a scheduler.

    Returns ``OK``, a non-fatal ``WARNING`` with the sanity message, or an
    ``ERROR`` carrying the syntax error message.
    """
    try:
        matcher = ScheduleMatcher(text or "", timezone=timezone)
    except ScheduleSyntaxError as exc:
        return ScheduleCheck(CheckKind.ERROR, exc.message)

    warning = matcher.check_sanity()
    if warning is not None:
        return ScheduleCheck(CheckKind.WARNING, warning)
    return ScheduleCheck(CheckKind.OK)


__all__ = [
    "CheckKind",
    "CronTab",
    "ScheduleCheck",
    "ScheduleMatcher",
    "check_schedule",
]
