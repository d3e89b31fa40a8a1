"""Time utilities."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso(value: datetime | None) -> str | None:
    """Serialize datetime to ISO string in UTC."""
    value = as_utc(value)
    return value.isoformat() if value else None


def elapsed_seconds(start: datetime | None, end: datetime) -> int:
    """Whole seconds between two instants, 0 when start is unknown."""
    start = as_utc(start)
    if start is None:
        return 0
    return max(0, int((as_utc(end) - start).total_seconds()))


def round2(value: float) -> float:
    return round(value * 100) / 100
