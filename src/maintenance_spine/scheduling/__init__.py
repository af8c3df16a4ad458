"""Recurring maintenance window scheduling.

Manifesto:
    A maintenance schedule like "every night at 02:00" is only useful to
    consumers once it becomes concrete windows they can see coming.  This
    package compiles the schedule, materializes windows one lead time ahead
    on every poll, and keeps a checkpoint so no minute is examined twice.

┌──────────────────────────────────────────────────────────────────────────────┐
│  Quick Start:                                                                 │
│                                                                               │
│   from maintenance_spine.scheduling import (                                  │
│       MaintenancePlanner, RecurringWindowRepository,                          │
│       RecurringWindowScheduler, connect,                                      │
│   )                                                                           │
│                                                                               │
│   repo = RecurringWindowRepository(connect("maintenance.db"))                 │
│   repo.ensure_schema()                                                        │
│   repo.save("agent-1", RecurringWindowScheduler(                              │
│       "0 2 * * *", reason="OS patching", duration="2h",                       │
│   ))                                                                          │
│                                                                               │
│   planner = MaintenancePlanner(repo)                                          │
│   planner.start()                                                             │
│                                                                               │
│  Modules:                                                                     │
│   matcher.py         ScheduleMatcher + check_schedule (croniter)              │
│   duration.py        "1h30m" → minutes                                        │
│   models.py          MaintenanceWindow value object                           │
│   recurring.py       RecurringWindowScheduler (checkpoint + lookahead)        │
│   repository.py      SQLite persistence                                       │
│   service.py         MaintenancePlanner                                       │
│   thread_backend.py  Default timing backend                                   │
└──────────────────────────────────────────────────────────────────────────────┘

Tags:
    maintenance-spine, scheduling, cron, croniter, maintenance-window

Doc-Types:
    package-overview, module-index
"""

from __future__ import annotations

from .duration import parse_duration
from .matcher import CheckKind, CronTab, ScheduleCheck, ScheduleMatcher, check_schedule
from .models import MaintenanceWindow
from .protocol import BackendHealth, SchedulerBackend
from .recurring import RecurringWindowScheduler
from .repository import (
    LoadFailure,
    LoadResult,
    RecurringWindowRepository,
    StoredSchedule,
    connect,
)
from .service import MaintenancePlanner, PlannerHealth, PlannerStats
from .thread_backend import ThreadSchedulerBackend

__all__ = [
    # Matcher
    "CheckKind",
    "CronTab",
    "ScheduleCheck",
    "ScheduleMatcher",
    "check_schedule",
    # Values
    "parse_duration",
    "MaintenanceWindow",
    # Core
    "RecurringWindowScheduler",
    # Persistence
    "LoadFailure",
    "LoadResult",
    "RecurringWindowRepository",
    "StoredSchedule",
    "connect",
    # Planner
    "BackendHealth",
    "SchedulerBackend",
    "ThreadSchedulerBackend",
    "MaintenancePlanner",
    "PlannerHealth",
    "PlannerStats",
]
