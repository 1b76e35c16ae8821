"""Timestamp parsing and formatting helpers.

Persisted instants are ISO-8601 strings in UTC. Older payloads may use
a trailing ``Z`` or omit the offset; both are read as UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def parse_instant(value: object) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a parseable instant.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Format an instant as an ISO-8601 UTC string."""
    return parse_instant(value).isoformat()


def parse_day(value: object) -> date:
    """Parse an ISO calendar date, accepting full instants as well.

    Raises:
        ValueError: If the value is not a parseable date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])
