"""Time utilities for cmdpal.

All persisted timestamps are RFC 3339 strings in UTC. The fixed-width,
zero-padded format means they sort lexicographically in time order, which
the SQL queries rely on for ``ORDER BY timestamp``.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime.

    Returns:
        datetime: Current UTC time with tzinfo=UTC
    """
    return datetime.now(UTC)


def format_timestamp(moment: datetime | None = None) -> str:
    """Render a datetime as the RFC 3339 string stored in the database.

    Naive datetimes are assumed to already be UTC.

    Args:
        moment: The instant to render. Defaults to now.

    Returns:
        ISO 8601 string with a ``+00:00`` offset.
    """
    if moment is None:
        moment = utc_now()
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="microseconds")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp, returning None when it cannot be read.

    Mining treats unreadable timestamps as soft errors, so this never raises.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
