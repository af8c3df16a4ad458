"""
Minute-granular UTC time helpers (stdlib only).

Scheduling arithmetic works on aware UTC datetimes truncated to the
minute.  Checkpoints are persisted as integer epoch milliseconds.
"""

from datetime import UTC, datetime, timedelta

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
ONE_MINUTE = timedelta(minutes=1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Return *dt* as an aware UTC datetime. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def truncate_to_minute(dt: datetime) -> datetime:
    return ensure_utc(dt).replace(second=0, microsecond=0)


def to_epoch_millis(dt: datetime) -> int:
    return (ensure_utc(dt) - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def from_iso8601(s: str | None) -> datetime | None:
    """Parse a stored ISO 8601 string; offsets are converted to UTC."""
    if s is None:
        return None
    return ensure_utc(datetime.fromisoformat(s))
