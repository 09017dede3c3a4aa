"""Time helpers for order age displays."""

from __future__ import annotations

from datetime import datetime, timezone


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime.

    SQLite drops tzinfo on the way back, and orders are always stored in UTC,
    so naive values are treated as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_minutes(created_at: datetime, now: datetime | None = None) -> int:
    """Return whole minutes since created_at, never negative."""
    current = ensure_utc(now or datetime.now(timezone.utc))
    seconds = (current - ensure_utc(created_at)).total_seconds()
    return max(int(seconds // 60), 0)


def format_relative_time(created_at: datetime, now: datetime | None = None) -> str:
    """Render a short 'time ago' label for an order timestamp."""
    minutes = elapsed_minutes(created_at, now)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} h ago"
    return f"{hours // 24} d ago"
