"""Wall-clock helpers."""

from datetime import UTC, datetime


def iso_now() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix.

    Example: 2024-05-01T12:30:45.123Z
    """
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
