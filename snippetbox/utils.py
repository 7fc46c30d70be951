"""Utility functions for common operations across the application."""

from datetime import datetime, timezone


def normalize_email(email: str) -> str:
    """Convert email to lowercase and strip whitespace."""
    return email.strip().lower()


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def human_date(value: datetime | None) -> str:
    """Format a timestamp as '02 Jan 2024 at 15:04' in UTC.

    Naive values are assumed to already be UTC (SQLite hands them back that way).
    """
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%d %b %Y at %H:%M")
