"""Pytest fixtures for scheduling tests."""

import pytest

from maintenance_spine.scheduling import MaintenancePlanner, ThreadSchedulerBackend


@pytest.fixture
def backend():
    return ThreadSchedulerBackend()


@pytest.fixture
def planner(repository, backend):
    """Create a MaintenancePlanner with a short tick interval."""
    service = MaintenancePlanner(repository, backend=backend, interval_seconds=0.05)
    yield service
    service.stop()
