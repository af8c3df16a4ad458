"""Timing backends for the maintenance planner.

The planner decides what to compute; a backend only decides when.  Any
object with a ``name``, ``start(tick, interval_seconds)``, ``stop()`` and
``health()`` can drive a :class:`~maintenance_spine.scheduling.service.MaintenancePlanner`,
for example a cron job or an external beat that calls the tick callback.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

TickCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class SchedulerBackend(Protocol):
    """What the planner needs from a timing backend."""

    name: str

    def start(self, tick_callback: TickCallback, interval_seconds: float = 300.0) -> None: ...

    def stop(self) -> None: ...

    def health(self) -> dict[str, Any]:
        """``healthy`` and ``backend`` at minimum."""
        ...


@dataclass
class BackendHealth:
    healthy: bool
    backend: str
    tick_count: int = 0
    failed_ticks: int = 0
    last_tick: datetime | None = None
    last_error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "healthy": self.healthy,
            "backend": self.backend,
            "tick_count": self.tick_count,
            "failed_ticks": self.failed_ticks,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "last_error": self.last_error,
        }
        data.update(self.extra)
        return data
