"""Tests for RecurringWindowRepository."""

from datetime import timedelta

import pytest

from maintenance_spine.core.errors import StorageError
from maintenance_spine.core.timestamps import to_epoch_millis
from maintenance_spine.scheduling import (
    MaintenanceWindow,
    RecurringWindowRepository,
    RecurringWindowScheduler,
    connect,
)


def _scheduler(policy, schedule="0 2 * * *", **kwargs) -> RecurringWindowScheduler:
    return RecurringWindowScheduler(schedule, policy=policy, **kwargs)


def _window(start, minutes=60, **kwargs) -> MaintenanceWindow:
    return MaintenanceWindow(start_time=start, end_time=start + timedelta(minutes=minutes), **kwargs)


class TestRecurringSchedules:
    """Test CRUD for recurring schedules."""

    def test_save_and_get(self, repository, policy):
        scheduler = _scheduler(policy, reason="patch", duration="2h", take_online=True, userid="alice")
        repository.save("agent-1", scheduler)

        stored = repository.get(scheduler.id)

        assert stored is not None
        assert stored.resource == "agent-1"
        assert stored.scheduler == scheduler
        assert stored.scheduler.id == scheduler.id
        assert stored.scheduler.duration_minutes == 120
        assert stored.scheduler.take_online is True
        assert stored.scheduler.userid == "alice"

    def test_rehydrated_matcher_is_fresh(self, repository, policy):
        scheduler = _scheduler(policy)
        repository.save("agent-1", scheduler)

        stored = repository.get(scheduler.id)
        assert stored.scheduler.matcher is not scheduler.matcher
        assert stored.scheduler.policy == policy

    def test_get_nonexistent(self, repository):
        assert repository.get("missing") is None

    def test_save_updates_existing(self, repository, policy):
        scheduler = _scheduler(policy, id="s1", reason="before")
        repository.save("agent-1", scheduler)
        repository.save("agent-1", _scheduler(policy, id="s1", reason="after"))

        assert repository.get("s1").scheduler.reason == "after"
        assert len(repository.list_for_resource("agent-1")) == 1

    def test_save_never_moves_checkpoint_back(self, repository, policy):
        repository.save("agent-1", _scheduler(policy, id="s1", checkpoint=5000))
        repository.save("agent-1", _scheduler(policy, id="s1", checkpoint=1000))

        assert repository.get("s1").scheduler.checkpoint == 5000

    def test_list_for_resource(self, repository, policy):
        repository.save("agent-1", _scheduler(policy, reason="a"))
        repository.save("agent-1", _scheduler(policy, reason="b"))
        repository.save("agent-2", _scheduler(policy, reason="c"))

        reasons = sorted(s.scheduler.reason for s in repository.list_for_resource("agent-1"))
        assert reasons == ["a", "b"]
        assert repository.list_for_resource("agent-3") == []

    def test_load_all_reports_bad_rows(self, repository, policy, db_conn):
        """A row that no longer compiles is skipped, the rest still load."""
        good = _scheduler(policy)
        repository.save("agent-1", good)
        repository.save("agent-2", _scheduler(policy, id="broken"))
        db_conn.execute(
            "UPDATE maintenance_recurring_windows SET schedule_text = ? WHERE id = ?",
            ("0 99 * * *", "broken"),
        )

        result = repository.load_all()

        assert [s.scheduler.id for s in result.loaded] == [good.id]
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.id == "broken"
        assert failure.resource == "agent-2"
        assert failure.error.line == "0 99 * * *"
        assert failure.error.context.resource == "agent-2"

    def test_update_checkpoint_forward_only(self, repository, policy):
        repository.save("agent-1", _scheduler(policy, id="s1", checkpoint=1000))

        assert repository.update_checkpoint("s1", 2000) is True
        assert repository.update_checkpoint("s1", 1500) is False
        assert repository.update_checkpoint("s1", 2000) is False
        assert repository.get("s1").scheduler.checkpoint == 2000

    def test_delete(self, repository, policy):
        repository.save("agent-1", _scheduler(policy, id="s1"))

        assert repository.delete("s1") is True
        assert repository.delete("s1") is False
        assert repository.get("s1") is None


class TestWindows:
    """Test storage of emitted windows."""

    def test_add_and_list(self, repository, day0):
        later = _window(day0 + timedelta(days=8), reason="b")
        earlier = _window(day0 + timedelta(days=7), reason="a")

        assert repository.add_windows("agent-1", [later, earlier]) == 2

        assert repository.list_windows("agent-1") == [earlier, later]
        assert repository.list_windows("agent-2") == []

    def test_round_trip_keeps_fields(self, repository, day0):
        window = _window(day0, reason="patch", take_online=True, keep_up_when_active=True,
                         max_wait_minutes="15", userid="alice")
        repository.add_windows("agent-1", [window])

        (stored,) = repository.list_windows("agent-1")
        assert stored == window
        assert stored.window_id == window.window_id

    def test_duplicates_ignored(self, repository, day0):
        """Same content under a new id is not stored twice."""
        repository.add_windows("agent-1", [_window(day0)])

        assert repository.add_windows("agent-1", [_window(day0)]) == 0
        assert len(repository.list_windows("agent-1")) == 1

    def test_same_window_different_resources(self, repository, day0):
        repository.add_windows("agent-1", [_window(day0)])
        assert repository.add_windows("agent-2", [_window(day0)]) == 1

    def test_purge_expired(self, repository, day0):
        over = _window(day0, minutes=60)
        running = _window(day0 + timedelta(minutes=30), minutes=60)
        repository.add_windows("agent-1", [over, running])

        assert repository.purge_expired(day0 + timedelta(minutes=60)) == 1
        assert repository.list_windows("agent-1") == [running]


class TestStorage:
    def test_missing_schema_is_storage_error(self, db_conn, policy):
        repo = RecurringWindowRepository(db_conn, policy=policy)
        with pytest.raises(StorageError) as exc_info:
            repo.get("anything")
        assert exc_info.value.cause is not None

    def test_ensure_schema_is_idempotent(self, repository):
        repository.ensure_schema()

    def test_connect_creates_parent_directory(self, tmp_path, policy, day0):
        path = tmp_path / "nested" / "maintenance.db"
        conn = connect(str(path))
        try:
            repo = RecurringWindowRepository(conn, policy=policy)
            repo.ensure_schema()
            repo.save("agent-1", _scheduler(policy, id="s1", checkpoint=to_epoch_millis(day0)))
        finally:
            conn.close()

        assert path.exists()
        reopened = connect(str(path))
        try:
            stored = RecurringWindowRepository(reopened, policy=policy).get("s1")
            assert stored.scheduler.checkpoint == to_epoch_millis(day0)
        finally:
            reopened.close()
