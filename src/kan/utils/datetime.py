"""Utilities for datetime handling."""

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def now_millis() -> int:
    """Current time as Unix milliseconds, the unit card files store."""
    return int(now_utc().timestamp() * 1000)
