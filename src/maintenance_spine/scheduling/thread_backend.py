"""Default timing backend: one daemon thread with its own event loop.

::

    start(tick, interval)
        └── thread "maintenance-planner"
                loop = new_event_loop()
                [tick once]                  ← run_immediately
                until stop_event.wait(interval):
                    loop.run_until_complete(tick())
                loop.close()

    stop()  → stop_event.set(), join(join_timeout)

A failing tick is logged and counted; the loop keeps going.
"""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime
from typing import Any

from maintenance_spine.core.logging import get_logger
from maintenance_spine.core.timestamps import utc_now

from .protocol import BackendHealth, TickCallback

logger = get_logger(__name__)


class ThreadSchedulerBackend:
    """Ticks the planner from a background thread.

    Args:
        run_immediately: Tick once as soon as the thread starts instead of
            waiting a full interval first.
        join_timeout: Seconds ``stop()`` waits for a running tick.

    Example:
        >>> backend = ThreadSchedulerBackend()
        >>> backend.start(planner._tick, interval_seconds=300.0)
        >>> backend.stop()
    """

    name = "thread"

    def __init__(self, *, run_immediately: bool = True, join_timeout: float = 5.0) -> None:
        self.run_immediately = run_immediately
        self.join_timeout = join_timeout
        self._interval = 0.0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._stats_lock = threading.Lock()
        self._tick_count = 0
        self._failed_ticks = 0
        self._last_tick: datetime | None = None
        self._last_error: str | None = None

    def start(self, tick_callback: TickCallback, interval_seconds: float = 300.0) -> None:
        if self.is_running:
            logger.warning("backend_already_started", backend=self.name)
            return

        self._interval = interval_seconds
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(tick_callback, interval_seconds),
            name="maintenance-planner",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return

        self._stop_event.set()
        thread.join(timeout=self.join_timeout)
        if thread.is_alive():
            logger.warning("backend_thread_still_alive", backend=self.name, timeout=self.join_timeout)
        self._thread = None

    # === Loop ===

    def _run(self, tick_callback: TickCallback, interval_seconds: float) -> None:
        loop = asyncio.new_event_loop()
        logger.info("backend_started", backend=self.name, interval_seconds=interval_seconds)
        try:
            if self.run_immediately and not self._stop_event.is_set():
                self._tick(loop, tick_callback)
            while not self._stop_event.wait(interval_seconds):
                self._tick(loop, tick_callback)
        finally:
            loop.close()
            logger.info("backend_stopped", backend=self.name, ticks=self._tick_count)

    def _tick(self, loop: asyncio.AbstractEventLoop, tick_callback: TickCallback) -> None:
        with self._stats_lock:
            self._tick_count += 1
            self._last_tick = utc_now()
        try:
            loop.run_until_complete(tick_callback())
        except Exception as exc:
            with self._stats_lock:
                self._failed_ticks += 1
                self._last_error = str(exc)
            logger.exception("tick_failed", backend=self.name, error=str(exc))

    # === Health ===

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def failed_ticks(self) -> int:
        return self._failed_ticks

    @property
    def last_tick(self) -> datetime | None:
        return self._last_tick

    def get_health(self) -> BackendHealth:
        with self._stats_lock:
            return BackendHealth(
                healthy=self.is_running,
                backend=self.name,
                tick_count=self._tick_count,
                failed_ticks=self._failed_ticks,
                last_tick=self._last_tick,
                last_error=self._last_error,
                extra={"interval_seconds": self._interval},
            )

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()
