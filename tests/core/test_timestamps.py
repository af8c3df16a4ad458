"""Tests for maintenance_spine.core.timestamps."""

from datetime import UTC, datetime, timedelta, timezone

from maintenance_spine.core.timestamps import (
    EPOCH,
    ensure_utc,
    from_epoch_millis,
    from_iso8601,
    to_epoch_millis,
    truncate_to_minute,
    utc_now,
)


class TestUtcHelpers:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_naive_is_taken_as_utc(self):
        naive = datetime(2026, 1, 1, 2, 0)
        assert ensure_utc(naive) == datetime(2026, 1, 1, 2, 0, tzinfo=UTC)

    def test_aware_is_converted(self):
        plus_two = datetime(2026, 1, 1, 4, 0, tzinfo=timezone(timedelta(hours=2)))
        result = ensure_utc(plus_two)
        assert result.hour == 2
        assert result.utcoffset() == timedelta(0)

    def test_truncate_to_minute(self):
        dt = datetime(2026, 1, 1, 2, 3, 59, 999_999, tzinfo=UTC)
        assert truncate_to_minute(dt) == datetime(2026, 1, 1, 2, 3, tzinfo=UTC)


class TestEpochMillis:
    def test_epoch_is_zero(self):
        assert to_epoch_millis(EPOCH) == 0
        assert from_epoch_millis(0) == EPOCH

    def test_round_trip(self):
        dt = datetime(2026, 3, 2, 2, 15, tzinfo=UTC)
        assert from_epoch_millis(to_epoch_millis(dt)) == dt

    def test_known_value(self):
        assert to_epoch_millis(datetime(1970, 1, 1, 0, 15, tzinfo=UTC)) == 900_000


class TestIso8601:
    def test_none_passthrough(self):
        assert from_iso8601(None) is None

    def test_parse_offset_to_utc(self):
        parsed = from_iso8601("2026-01-01T04:00:00+02:00")
        assert parsed == datetime(2026, 1, 1, 2, 0, tzinfo=UTC)
