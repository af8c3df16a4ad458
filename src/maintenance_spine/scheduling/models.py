"""Maintenance window value object.

Manifesto:
    A maintenance window is what the recurring scheduler produces and what
    consumers persist and act upon.  It is immutable and totally ordered
    by start time so emitted windows can be merged into sorted,
    duplicate-free collections.

Tags:
    maintenance-spine, models, dataclasses, maintenance-window, value-object

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from maintenance_spine.core.errors import InvalidWindowError
from maintenance_spine.core.timestamps import ensure_utc, from_iso8601, utc_now


@dataclass(frozen=True, order=True)
class MaintenanceWindow:
    """A concrete (start, end) maintenance interval plus its policy metadata.

    Ordering compares ``start_time`` first, then the remaining fields in
    declaration order.  ``window_id`` takes no part in equality, ordering or
    hashing, so two windows with the same content collapse in a set.

    Attributes:
        start_time: When maintenance begins (aware UTC).
        end_time: When maintenance ends; never before ``start_time``.
        reason: Human readable reason shown to users.
        take_online: Bring the resource back online when the window ends.
        keep_up_when_active: Wait for running work before going offline.
        max_wait_minutes: How long to wait for running work, as entered.
        userid: Who owns the window.
        window_id: Unique id; generated when blank.
    """

    start_time: datetime
    end_time: datetime
    reason: str = ""
    take_online: bool = False
    keep_up_when_active: bool = False
    max_wait_minutes: str = ""
    userid: str = ""
    window_id: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_time", ensure_utc(self.start_time))
        object.__setattr__(self, "end_time", ensure_utc(self.end_time))
        if self.end_time < self.start_time:
            raise InvalidWindowError(
                f"Maintenance window ends before it starts: {self.start_time} > {self.end_time}",
                field="end_time",
                value=self.end_time,
            )
        if not self.window_id or not self.window_id.strip():
            object.__setattr__(self, "window_id", str(uuid4()))

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def is_active(self, now: datetime | None = None) -> bool:
        """True while *now* lies inside ``[start_time, end_time)``."""
        now = ensure_utc(now or utc_now())
        return self.start_time <= now < self.end_time

    def is_over(self, now: datetime | None = None) -> bool:
        now = ensure_utc(now or utc_now())
        return now >= self.end_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "window_id": self.window_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "reason": self.reason,
            "take_online": self.take_online,
            "keep_up_when_active": self.keep_up_when_active,
            "max_wait_minutes": self.max_wait_minutes,
            "userid": self.userid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MaintenanceWindow:
        return cls(
            start_time=from_iso8601(data["start_time"]),
            end_time=from_iso8601(data["end_time"]),
            reason=data.get("reason", ""),
            take_online=bool(data.get("take_online", False)),
            keep_up_when_active=bool(data.get("keep_up_when_active", False)),
            max_wait_minutes=data.get("max_wait_minutes", ""),
            userid=data.get("userid", ""),
            window_id=data.get("window_id", ""),
        )
