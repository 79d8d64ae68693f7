"""Time helpers shared by models, schemas, and services."""

from __future__ import annotations

from datetime import UTC, date, datetime


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp for persisted ``created_at`` columns."""
    return datetime.now(UTC)


def to_date_only(value: date | datetime | str) -> date:
    """Reduce *value* to a calendar date, discarding any time-of-day part.

    Strings are parsed as ISO 8601 dates or datetimes (``2024-12-31`` and
    ``2024-12-31T23:59:00+09:00`` both yield ``date(2024, 12, 31)``).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        return datetime.fromisoformat(text).date()
    raise TypeError(f"Expected date, datetime, or ISO string, got {type(value).__name__}")
