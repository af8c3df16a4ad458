"""
Shared pytest fixtures for maintenance-spine tests.

This module provides:
- Settings cache isolation (every test starts from a clean environment)
- A short, deterministic scheduling policy
- An in-memory repository with the schema applied
- Fixed reference instants for scenario tests
"""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Generator
from datetime import UTC, datetime

import pytest

from maintenance_spine.core.settings import SchedulingPolicy, clear_settings_cache
from maintenance_spine.scheduling import RecurringWindowRepository

# 2026-03-02 is a Monday.
DAY0 = datetime(2026, 3, 2, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and any MAINTENANCE_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("MAINTENANCE_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def day0() -> datetime:
    return DAY0


@pytest.fixture
def policy() -> SchedulingPolicy:
    """The production defaults: 15 minute scan interval, 7 day lead time."""
    return SchedulingPolicy(check_interval_minutes=15, lead_time_days=7)


@pytest.fixture
def db_conn() -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    yield conn
    conn.close()


@pytest.fixture
def repository(db_conn: sqlite3.Connection, policy: SchedulingPolicy) -> RecurringWindowRepository:
    """Create a RecurringWindowRepository with the schema applied."""
    repo = RecurringWindowRepository(db_conn, policy=policy)
    repo.ensure_schema()
    return repo
