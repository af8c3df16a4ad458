"""Recurring maintenance windows - cron schedule to concrete future windows.

Manifesto:
    A recurring schedule is cheap to store ("0 2 * * *") but consumers need
    concrete windows, early enough to plan around them.  The scheduler is
    polled on a short cadence and each poll materializes the next slice of
    windows one lead time ahead, moving a persisted checkpoint forward so
    no minute is ever examined twice.

Tags:
    maintenance-spine, scheduling, recurring, checkpoint, lookahead, cron

Doc-Types:
    api-reference, architecture-diagram


┌──────────────────────────────────────────────────────────────────────────────┐
│  compute_future_windows(now)                                                  │
│                                                                               │
│   checkpoint          scan_end = checkpoint + interval                        │
│       │◄── scan ──►│  (end stretched to now + interval when late)             │
│       ▼            ▼                                                          │
│  ─────┼────────────┼──────────────────────────┼────────────┼──────► time     │
│                                  + lead time  ▼            ▼                  │
│                                          look_start   look_end (inclusive)   │
│                                               │◄─ tested ─►│                  │
│                                                                               │
│   1. gate      now <= checkpoint  → nothing to do                            │
│   2. scan      settle [checkpoint, scan_end), next checkpoint = scan_end     │
│   3. shift     same band, lead time ahead, never before now                  │
│   4. match     every minute of the shifted band against the matcher          │
│   5. commit    checkpoint = scan_end                                         │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any
from uuid import uuid4

from maintenance_spine.core.errors import DurationParseError
from maintenance_spine.core.logging import get_logger
from maintenance_spine.core.principal import current_principal
from maintenance_spine.core.settings import SchedulingPolicy, default_policy
from maintenance_spine.core.timestamps import (
    ONE_MINUTE,
    from_epoch_millis,
    to_epoch_millis,
    truncate_to_minute,
    utc_now,
)

from .duration import parse_duration
from .matcher import ScheduleMatcher
from .models import MaintenanceWindow

logger = get_logger(__name__)


class RecurringWindowScheduler:
    """Generates maintenance windows from a cron-like recurrence.

    Args:
        schedule_text: Cron-like recurrence (see :class:`ScheduleMatcher`).
        reason: Reason copied into every window.
        take_online: Copied into every window.
        keep_up_when_active: Copied into every window.
        max_wait_minutes: Copied into every window.
        duration: Window length, e.g. ``"2h"`` or ``"120"``.
        userid: Owner; defaults to the acting principal or ``"System"``.
        id: Identifier; a random UUID when blank.
        checkpoint: Epoch millis through which scanning is settled.
        policy: Scan interval and lead time; the process-wide policy by default.

    Raises:
        ScheduleSyntaxError: If the schedule text cannot be compiled.
        DurationParseError: If the duration is not a non-negative minute count.

    Example:
        >>> scheduler = RecurringWindowScheduler("0 2 * * *", reason="patching", duration="2h")
        >>> windows = scheduler.compute_future_windows()
    """

    def __init__(
        self,
        schedule_text: str,
        reason: str = "",
        take_online: bool = False,
        keep_up_when_active: bool = False,
        max_wait_minutes: str = "",
        duration: str | int = "",
        userid: str | None = None,
        id: str | None = None,
        checkpoint: int = 0,
        *,
        policy: SchedulingPolicy | None = None,
    ) -> None:
        self._schedule_text = schedule_text or ""
        self._reason = reason
        self._take_online = take_online
        self._keep_up_when_active = keep_up_when_active
        self._max_wait_minutes = max_wait_minutes
        self._duration_minutes = duration if isinstance(duration, int) else parse_duration(duration)
        if self._duration_minutes < 0:
            raise DurationParseError(str(duration))
        self._userid = userid if userid and userid.strip() else current_principal()
        self._id = id if id and id.strip() else str(uuid4())
        self._checkpoint = checkpoint
        self._policy = policy or default_policy()
        self._lock = threading.Lock()
        self._matcher = self._compile_matcher()

    def _compile_matcher(self) -> ScheduleMatcher:
        return ScheduleMatcher(
            self._schedule_text,
            hash_id=self._id,
            timezone=self._policy.timezone,
        )

    # === Accessors ===

    @property
    def schedule_text(self) -> str:
        return self._schedule_text

    @property
    def matcher(self) -> ScheduleMatcher:
        return self._matcher

    @property
    def reason(self) -> str:
        return self._reason

    @property
    def take_online(self) -> bool:
        return self._take_online

    @property
    def keep_up_when_active(self) -> bool:
        return self._keep_up_when_active

    @property
    def max_wait_minutes(self) -> str:
        return self._max_wait_minutes

    @property
    def duration_minutes(self) -> int:
        return self._duration_minutes

    @property
    def userid(self) -> str:
        return self._userid

    @property
    def id(self) -> str:
        return self._id

    @property
    def policy(self) -> SchedulingPolicy:
        return self._policy

    @property
    def checkpoint(self) -> int:
        """Epoch millis through which scan-interval bookkeeping is settled."""
        return self._checkpoint

    @property
    def checkpoint_at(self) -> datetime:
        return from_epoch_millis(self._checkpoint)

    # === Core ===

    def compute_future_windows(self, now: datetime | None = None) -> list[MaintenanceWindow]:
        """Return the newly due maintenance windows and advance the checkpoint.

        Windows come back sorted by start time.  Calling again before the
        checkpoint has been reached returns an empty list and changes
        nothing, so callers may poll more often than the scan interval.

        Args:
            now: Current time; the wall clock when omitted.  Naive values
                are taken as UTC.
        """
        with self._lock:
            now = truncate_to_minute(now or utc_now())
            logger.debug("checking_future_windows", scheduler_id=self._id)

            if to_epoch_millis(now) <= self._checkpoint:
                return []

            interval = self._policy.check_interval
            lead_time = self._policy.lead_time

            scan_start = truncate_to_minute(from_epoch_millis(self._checkpoint))
            scan_end = scan_start + interval
            if scan_end < now:
                # Late call: stretch the band up to real time.
                scan_end = now + interval
            if scan_start + lead_time < now:
                # The lookahead start has already passed; anchor the band at now.
                scan_start = now
            next_checkpoint = scan_end

            look_start = max(scan_start + lead_time, now)
            look_end = scan_end + lead_time - ONE_MINUTE

            logger.debug(
                "scanning_lookahead_window",
                scheduler_id=self._id,
                look_start=look_start.isoformat(),
                look_end=look_end.isoformat(),
            )

            found: set[MaintenanceWindow] = set()
            minute = look_start
            while minute <= look_end:
                if self._matcher.matches(minute):
                    logger.debug("schedule_matched", scheduler_id=self._id, at=minute.isoformat())
                    found.add(self._window_at(minute))
                minute += ONE_MINUTE

            self._checkpoint = to_epoch_millis(next_checkpoint)
            logger.debug(
                "checkpoint_advanced",
                scheduler_id=self._id,
                checkpoint=next_checkpoint.isoformat(),
                windows=len(found),
            )
            return sorted(found)

    def _window_at(self, start: datetime) -> MaintenanceWindow:
        return MaintenanceWindow(
            start_time=start,
            end_time=start + self._duration_minutes * ONE_MINUTE,
            reason=self._reason,
            take_online=self._take_online,
            keep_up_when_active=self._keep_up_when_active,
            max_wait_minutes=self._max_wait_minutes,
            userid=self._userid,
        )

    # === Persistence ===

    def to_dict(self) -> dict[str, Any]:
        """Persisted layout.  The matcher is derived and never included."""
        return {
            "id": self._id,
            "schedule_text": self._schedule_text,
            "reason": self._reason,
            "take_online": self._take_online,
            "keep_up_when_active": self._keep_up_when_active,
            "max_wait_minutes": self._max_wait_minutes,
            "userid": self._userid,
            "duration_minutes": self._duration_minutes,
            "checkpoint": self._checkpoint,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        policy: SchedulingPolicy | None = None,
    ) -> RecurringWindowScheduler:
        """Rehydrate from :meth:`to_dict` output, recompiling the matcher.

        Raises:
            ScheduleSyntaxError: If the stored schedule text no longer compiles.
        """
        duration = data.get("duration_minutes")
        if duration is None:
            duration = data.get("duration", "")
        return cls(
            schedule_text=data["schedule_text"],
            reason=data.get("reason", ""),
            take_online=bool(data.get("take_online", False)),
            keep_up_when_active=bool(data.get("keep_up_when_active", False)),
            max_wait_minutes=data.get("max_wait_minutes", ""),
            duration=duration,
            userid=data.get("userid"),
            id=data.get("id"),
            checkpoint=int(data.get("checkpoint", 0)),
            policy=policy,
        )

    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        del state["_matcher"]
        del state["_lock"]
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._lock = threading.Lock()
        self._matcher = self._compile_matcher()

    # === Equality ===

    def _business_key(self) -> tuple:
        return (
            self._schedule_text,
            self._reason,
            self._take_online,
            self._keep_up_when_active,
            self._max_wait_minutes,
        )

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, RecurringWindowScheduler):
            return NotImplemented
        return self._business_key() == other._business_key()

    def __hash__(self) -> int:
        # Includes the duration although __eq__ does not; see DESIGN.md.
        return hash((self._duration_minutes, *self._business_key()))

    def __repr__(self) -> str:
        return (
            f"RecurringWindowScheduler(id={self._id!r}, schedule={self._schedule_text!r}, "
            f"duration_minutes={self._duration_minutes}, checkpoint={self._checkpoint})"
        )
