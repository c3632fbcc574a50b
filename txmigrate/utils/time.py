"""
UTC timestamp utilities for txmigrate.

All timestamps are UTC with explicit timezone markers.

Examples:
    >>> from txmigrate.utils.time import utc_now, utc_timestamp
    >>> utc_now().tzinfo
    datetime.timezone.utc
    >>> utc_timestamp()
    '2025-11-02T08:30:45Z'
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return current time in UTC with timezone info.

    Note:
        NEVER use datetime.utcnow() (deprecated, returns naive datetime).
    """
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """
    Return ISO 8601 timestamp string with 'Z' suffix.

    Format: YYYY-MM-DDTHH:MM:SSZ

    Example:
        >>> utc_timestamp()
        '2025-11-02T08:30:45Z'
    """
    return utc_now().strftime("%Y-%m-%dT%H:%M:%SZ")
