"""Recurring window repository - persistence for schedules and emitted windows.

Manifesto:
    Recurring schedules and the windows they produce are pure data.  The
    scheduler never re-derives past emissions, so whatever it hands out
    must be stored by the consumer; this repository is that store.  Only
    the schedule source text is persisted, the compiled matcher is rebuilt
    on every load.

Tags:
    maintenance-spine, scheduling, repository, sqlite, persistence

Doc-Types:
    api-reference, architecture-diagram


┌──────────────────────────────────────────────────────────────────────────────┐
│  RECURRING WINDOW REPOSITORY                                                  │
│                                                                               │
│   Recurring schedules (maintenance_recurring_windows):                        │
│   ├── save(resource, scheduler)                                               │
│   ├── get(id) → StoredSchedule | None                                         │
│   ├── list_for_resource(resource) → list[StoredSchedule]                      │
│   ├── load_all() → LoadResult (bad rows reported, never fatal)                │
│   ├── update_checkpoint(id, checkpoint)   forward-only                        │
│   └── delete(id) → bool                                                       │
│                                                                               │
│   Emitted windows (maintenance_windows):                                      │
│   ├── add_windows(resource, windows) → inserted count (duplicates ignored)    │
│   ├── list_windows(resource) → list[MaintenanceWindow]                        │
│   └── purge_expired(now) → deleted count                                      │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from maintenance_spine.core.errors import ScheduleSyntaxError, StorageError
from maintenance_spine.core.logging import get_logger
from maintenance_spine.core.settings import SchedulingPolicy
from maintenance_spine.core.timestamps import ensure_utc, utc_now

from .models import MaintenanceWindow
from .recurring import RecurringWindowScheduler

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS maintenance_recurring_windows (
    id TEXT PRIMARY KEY,
    resource TEXT NOT NULL,
    schedule_text TEXT NOT NULL,
    reason TEXT NOT NULL DEFAULT '',
    take_online INTEGER NOT NULL DEFAULT 0,
    keep_up_when_active INTEGER NOT NULL DEFAULT 0,
    max_wait_minutes TEXT NOT NULL DEFAULT '',
    userid TEXT NOT NULL,
    duration_minutes INTEGER NOT NULL DEFAULT 0,
    checkpoint INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS maintenance_windows (
    window_id TEXT PRIMARY KEY,
    resource TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    reason TEXT NOT NULL DEFAULT '',
    take_online INTEGER NOT NULL DEFAULT 0,
    keep_up_when_active INTEGER NOT NULL DEFAULT 0,
    max_wait_minutes TEXT NOT NULL DEFAULT '',
    userid TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    UNIQUE (resource, start_time, end_time, reason, take_online,
            keep_up_when_active, max_wait_minutes, userid)
);

CREATE INDEX IF NOT EXISTS idx_maintenance_windows_resource
    ON maintenance_windows (resource, start_time);
"""

_RECURRING_COLUMNS = (
    "id",
    "resource",
    "schedule_text",
    "reason",
    "take_online",
    "keep_up_when_active",
    "max_wait_minutes",
    "userid",
    "duration_minutes",
    "checkpoint",
)

_WINDOW_COLUMNS = (
    "window_id",
    "start_time",
    "end_time",
    "reason",
    "take_online",
    "keep_up_when_active",
    "max_wait_minutes",
    "userid",
)


@dataclass
class StoredSchedule:
    """A recurring scheduler together with the resource it belongs to."""

    resource: str
    scheduler: RecurringWindowScheduler


@dataclass
class LoadFailure:
    """A stored schedule that could not be rehydrated."""

    id: str
    resource: str
    error: ScheduleSyntaxError


@dataclass
class LoadResult:
    """Outcome of :meth:`RecurringWindowRepository.load_all`."""

    loaded: list[StoredSchedule] = field(default_factory=list)
    failures: list[LoadFailure] = field(default_factory=list)


def connect(path: str) -> sqlite3.Connection:
    """Open a connection usable from the planner's backend thread."""
    if path == ":memory:":
        return sqlite3.connect(path, check_same_thread=False)
    db_path = Path(path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(db_path), check_same_thread=False)


class RecurringWindowRepository:
    """SQLite-backed store for recurring schedules and emitted windows.

    Example:
        >>> repo = RecurringWindowRepository(sqlite3.connect(":memory:"))
        >>> repo.ensure_schema()
        >>> repo.save("agent-1", RecurringWindowScheduler("0 2 * * *", duration="2h"))
    """

    def __init__(self, conn: sqlite3.Connection, policy: SchedulingPolicy | None = None) -> None:
        """Initialize repository.

        Args:
            conn: Database connection
            policy: Policy handed to rehydrated schedulers (process default if None)
        """
        self.conn = conn
        self.policy = policy

    def ensure_schema(self) -> None:
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(f"Database error: {exc}", cause=exc) from exc

    # === Recurring schedules ===

    def save(self, resource: str, scheduler: RecurringWindowScheduler) -> None:
        """Insert or replace a recurring schedule."""
        data = scheduler.to_dict()
        now = utc_now().isoformat()
        self._execute(
            """
            INSERT INTO maintenance_recurring_windows (
                id, resource, schedule_text, reason, take_online, keep_up_when_active,
                max_wait_minutes, userid, duration_minutes, checkpoint, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                resource = excluded.resource,
                schedule_text = excluded.schedule_text,
                reason = excluded.reason,
                take_online = excluded.take_online,
                keep_up_when_active = excluded.keep_up_when_active,
                max_wait_minutes = excluded.max_wait_minutes,
                userid = excluded.userid,
                duration_minutes = excluded.duration_minutes,
                checkpoint = MAX(checkpoint, excluded.checkpoint),
                updated_at = excluded.updated_at
            """,
            (
                data["id"],
                resource,
                data["schedule_text"],
                data["reason"],
                int(data["take_online"]),
                int(data["keep_up_when_active"]),
                data["max_wait_minutes"],
                data["userid"],
                data["duration_minutes"],
                data["checkpoint"],
                now,
                now,
            ),
        )
        self.conn.commit()
        logger.info("recurring_window_saved", resource=resource, scheduler_id=data["id"])

    def get(self, scheduler_id: str) -> StoredSchedule | None:
        """Get a recurring schedule by id.

        Raises:
            ScheduleSyntaxError: If the stored schedule text no longer compiles.
        """
        row = self._execute(
            f"SELECT {', '.join(_RECURRING_COLUMNS)} FROM maintenance_recurring_windows WHERE id = ?",
            (scheduler_id,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_stored(row)

    def list_for_resource(self, resource: str) -> list[StoredSchedule]:
        """List the recurring schedules of one resource."""
        rows = self._execute(
            f"SELECT {', '.join(_RECURRING_COLUMNS)} FROM maintenance_recurring_windows "
            "WHERE resource = ? ORDER BY created_at, id",
            (resource,),
        ).fetchall()
        return [self._row_to_stored(row) for row in rows]

    def load_all(self) -> LoadResult:
        """Rehydrate every stored schedule.

        A row whose schedule text fails to compile is reported in
        ``failures`` and skipped; the remaining rows still load.
        """
        rows = self._execute(
            f"SELECT {', '.join(_RECURRING_COLUMNS)} FROM maintenance_recurring_windows "
            "ORDER BY resource, created_at, id"
        ).fetchall()

        result = LoadResult()
        for row in rows:
            try:
                result.loaded.append(self._row_to_stored(row))
            except ScheduleSyntaxError as exc:
                exc.with_context(resource=row[1], scheduler_id=row[0])
                logger.error(
                    "recurring_window_load_failed",
                    resource=row[1],
                    scheduler_id=row[0],
                    error=exc.message,
                )
                result.failures.append(LoadFailure(id=row[0], resource=row[1], error=exc))
        return result

    def update_checkpoint(self, scheduler_id: str, checkpoint: int) -> bool:
        """Move a stored checkpoint forward.  Returns False if nothing changed."""
        cursor = self._execute(
            """
            UPDATE maintenance_recurring_windows
            SET checkpoint = ?, updated_at = ?
            WHERE id = ? AND checkpoint < ?
            """,
            (checkpoint, utc_now().isoformat(), scheduler_id, checkpoint),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def delete(self, scheduler_id: str) -> bool:
        cursor = self._execute(
            "DELETE FROM maintenance_recurring_windows WHERE id = ?",
            (scheduler_id,),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    # === Emitted windows ===

    def add_windows(
        self,
        resource: str,
        windows: Iterable[MaintenanceWindow],
    ) -> int:
        """Store emitted windows.  Exact duplicates are ignored.

        Returns:
            Number of windows actually inserted
        """
        now = utc_now().isoformat()
        inserted = 0
        for window in windows:
            cursor = self._execute(
                """
                INSERT OR IGNORE INTO maintenance_windows (
                    window_id, resource, start_time, end_time, reason, take_online,
                    keep_up_when_active, max_wait_minutes, userid, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    window.window_id,
                    resource,
                    window.start_time.isoformat(),
                    window.end_time.isoformat(),
                    window.reason,
                    int(window.take_online),
                    int(window.keep_up_when_active),
                    window.max_wait_minutes,
                    window.userid,
                    now,
                ),
            )
            inserted += cursor.rowcount
        self.conn.commit()
        return inserted

    def list_windows(self, resource: str) -> list[MaintenanceWindow]:
        """List stored windows of a resource, ordered by start time."""
        rows = self._execute(
            f"SELECT {', '.join(_WINDOW_COLUMNS)} FROM maintenance_windows "
            "WHERE resource = ? ORDER BY start_time, end_time",
            (resource,),
        ).fetchall()
        return sorted(self._row_to_window(row) for row in rows)

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete windows that are over.  Returns the number removed."""
        cutoff = ensure_utc(now or utc_now()).replace(microsecond=0).isoformat()
        cursor = self._execute(
            "DELETE FROM maintenance_windows WHERE end_time <= ?",
            (cutoff,),
        )
        self.conn.commit()
        if cursor.rowcount:
            logger.info("expired_windows_purged", count=cursor.rowcount)
        return cursor.rowcount

    # === Private Helpers ===

    def _row_to_stored(self, row: tuple) -> StoredSchedule:
        data: dict[str, Any] = dict(zip(_RECURRING_COLUMNS, row, strict=True))
        resource = data.pop("resource")
        scheduler = RecurringWindowScheduler.from_dict(data, policy=self.policy)
        return StoredSchedule(resource=resource, scheduler=scheduler)

    def _row_to_window(self, row: tuple) -> MaintenanceWindow:
        data = dict(zip(_WINDOW_COLUMNS, row, strict=True))
        return MaintenanceWindow.from_dict(data)
