"""UTC date/time helpers.

Timestamps are stored as **naive** UTC datetimes (no tzinfo) so the same
``DateTime`` columns behave identically on SQLite and PostgreSQL.
"""

from datetime import UTC, date, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def utctoday() -> date:
    """Return the current UTC calendar date."""
    return datetime.now(UTC).date()
