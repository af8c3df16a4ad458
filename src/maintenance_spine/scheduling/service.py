"""Maintenance planner - the periodic caller of the recurring schedulers.

Manifesto:
    Recurring schedulers only answer "what is newly due as of now?".
    Something has to ask on a cadence, keep the emitted windows, and
    remember each checkpoint.  The planner is that caller, driven by a
    pluggable timing backend (beat-as-poller).

Tags:
    maintenance-spine, scheduling, planner, beat-as-poller, service

Doc-Types:
    api-reference, architecture-diagram


┌──────────────────────────────────────────────────────────────────────────────┐
│  MaintenancePlanner                                                           │
│                                                                               │
│   Backend (timing) ──tick()──► run_once(now)                                  │
│                                   │                                           │
│                                   ├── for each (resource, scheduler):         │
│                                   │     windows = compute_future_windows(now) │
│                                   │     repository.add_windows(...)           │
│                                   │     repository.update_checkpoint(...)     │
│                                   └── repository.purge_expired(now)           │
│                                                                               │
│   Schedulers are loaded once by reload() and kept in memory so each          │
│   instance's lock guards its own checkpoint.                                  │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from maintenance_spine.core.errors import StorageError
from maintenance_spine.core.logging import LogContext, get_logger
from maintenance_spine.core.timestamps import utc_now

from .models import MaintenanceWindow
from .protocol import BackendHealth, SchedulerBackend
from .recurring import RecurringWindowScheduler
from .repository import LoadFailure, RecurringWindowRepository, StoredSchedule
from .thread_backend import ThreadSchedulerBackend

logger = get_logger(__name__)


@dataclass
class PlannerStats:
    """Statistics for the planner."""

    tick_count: int = 0
    windows_emitted: int = 0
    windows_stored: int = 0
    windows_purged: int = 0
    load_failures: int = 0
    last_tick: datetime | None = None
    last_error: str | None = None


@dataclass
class PlannerHealth:
    """Health status for the planner."""

    healthy: bool
    backend: BackendHealth | dict
    schedules_loaded: int = 0
    stats: PlannerStats = field(default_factory=PlannerStats)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "healthy": self.healthy,
            "backend": self.backend.to_dict() if isinstance(self.backend, BackendHealth) else self.backend,
            "schedules_loaded": self.schedules_loaded,
            "last_tick": self.stats.last_tick.isoformat() if self.stats.last_tick else None,
            "stats": {
                "tick_count": self.stats.tick_count,
                "windows_emitted": self.stats.windows_emitted,
                "windows_stored": self.stats.windows_stored,
                "windows_purged": self.stats.windows_purged,
                "load_failures": self.stats.load_failures,
            },
        }


class MaintenancePlanner:
    """Polls every recurring scheduler and stores the windows they emit.

    Example:
        >>> repo = RecurringWindowRepository(connect("maintenance.db"))
        >>> planner = MaintenancePlanner(repo)
        >>> planner.reload()
        >>> planner.run_once()
        {'agent-1': [MaintenanceWindow(...)]}
    """

    def __init__(
        self,
        repository: RecurringWindowRepository,
        backend: SchedulerBackend | None = None,
        interval_seconds: float = 300.0,
    ) -> None:
        """Initialize planner.

        Args:
            repository: Store for schedules, checkpoints and windows
            backend: Timing backend (ThreadSchedulerBackend if None)
            interval_seconds: Tick interval
        """
        self.repository = repository
        self.backend = backend or ThreadSchedulerBackend()
        self.interval = interval_seconds

        self._schedules: list[StoredSchedule] = []
        self._failures: list[LoadFailure] = []
        self._stats = PlannerStats()
        self._running = False
        self._run_lock = threading.Lock()

    # === Lifecycle ===

    def start(self) -> None:
        """Load schedules and begin the backend tick loop."""
        if self._running:
            logger.warning("planner_already_running")
            return

        self.reload()
        logger.info("planner_starting", backend=self.backend.name, interval_seconds=self.interval)
        self.backend.start(self._tick, self.interval)
        self._running = True

    def stop(self) -> None:
        if not self._running:
            return

        self.backend.stop()
        self._running = False
        logger.info("planner_stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def reload(self) -> list[LoadFailure]:
        """Rehydrate all stored schedules.

        Schedules that fail to compile are skipped and returned; the others
        are loaded normally.
        """
        result = self.repository.load_all()
        with self._run_lock:
            self._schedules = result.loaded
            self._failures = result.failures
        self._stats.load_failures = len(result.failures)
        logger.info(
            "planner_reloaded",
            schedules=len(result.loaded),
            failures=len(result.failures),
        )
        return result.failures

    @property
    def schedules(self) -> list[StoredSchedule]:
        return list(self._schedules)

    @property
    def failures(self) -> list[LoadFailure]:
        return list(self._failures)

    # === Tick Processing ===

    async def _tick(self) -> None:
        """Single planner tick, called by the backend."""
        try:
            self.run_once()
        except Exception as e:
            self._stats.last_error = str(e)
            logger.exception("planner_tick_failed", error=str(e))

    def run_once(self, now: datetime | None = None) -> dict[str, list[MaintenanceWindow]]:
        """Compute, store and purge windows for every loaded schedule.

        Returns:
            Newly emitted windows per resource (resources without new
            windows are omitted)
        """
        now = now or utc_now()
        emitted: dict[str, list[MaintenanceWindow]] = {}

        with self._run_lock:
            self._stats.tick_count += 1
            self._stats.last_tick = now

            for index, stored in enumerate(self._schedules):
                scheduler = stored.scheduler
                with LogContext(resource=stored.resource, scheduler_id=scheduler.id):
                    settled = scheduler.to_dict()
                    windows = scheduler.compute_future_windows(now)
                    try:
                        stored_count = self.repository.add_windows(stored.resource, windows) if windows else 0
                        self.repository.update_checkpoint(scheduler.id, scheduler.checkpoint)
                    except StorageError as e:
                        # Rescan the same band next pass; windows are only kept once stored.
                        self._schedules[index] = StoredSchedule(
                            stored.resource,
                            RecurringWindowScheduler.from_dict(settled, policy=scheduler.policy),
                        )
                        self._stats.last_error = e.message
                        logger.error("windows_not_stored", error=e.message, count=len(windows))
                        continue
                    if not windows:
                        continue

                    self._stats.windows_emitted += len(windows)
                    self._stats.windows_stored += stored_count
                    emitted.setdefault(stored.resource, []).extend(windows)
                    logger.info("windows_emitted", count=len(windows), stored=stored_count)

            self._stats.windows_purged += self.repository.purge_expired(now)

        for windows in emitted.values():
            windows.sort()
        return emitted

    # === Health ===

    def health(self) -> PlannerHealth:
        backend_health = (
            self.backend.get_health()
            if hasattr(self.backend, "get_health")
            else self.backend.health()
        )
        return PlannerHealth(
            healthy=self._running and self.backend_is_healthy(backend_health),
            backend=backend_health,
            schedules_loaded=len(self._schedules),
            stats=self._stats,
        )

    @staticmethod
    def backend_is_healthy(backend_health: BackendHealth | dict) -> bool:
        if isinstance(backend_health, BackendHealth):
            return backend_health.healthy
        return bool(backend_health.get("healthy"))

    def get_stats(self) -> PlannerStats:
        return self._stats
