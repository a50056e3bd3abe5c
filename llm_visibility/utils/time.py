"""
UTC timestamp utilities for the visibility engine.

All timestamps are UTC with an explicit 'Z' suffix. Task start/finish times,
provider response times and run ids all come from here so they stay
consistent (and can be frozen in tests with freezegun).

Examples:
    >>> from llm_visibility.utils.time import utc_timestamp, run_id_from_timestamp
    >>> utc_timestamp()
    '2026-03-02T08:30:45Z'
    >>> run_id_from_timestamp()
    '2026-03-02T08-30-45Z'
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return current time in UTC with timezone info.

    Note:
        Never use datetime.now() without a timezone or datetime.utcnow().
    """
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """
    Return ISO 8601 timestamp string with 'Z' suffix.

    Format: YYYY-MM-DDTHH:MM:SSZ

    Returns:
        str: ISO 8601 formatted timestamp in UTC
    """
    return utc_now().strftime("%Y-%m-%dT%H:%M:%SZ")


def run_id_from_timestamp(dt: datetime | None = None) -> str:
    """
    Generate a run id slug from a UTC timestamp.

    Format: YYYY-MM-DDTHH-MM-SSZ (hyphens instead of colons, so the id is
    safe in file names and URLs and still sorts chronologically).

    Args:
        dt: Optional datetime to convert. If None, uses utc_now().
            Must be timezone-aware if provided.

    Returns:
        str: Timestamp slug

    Raises:
        ValueError: If dt is naive (missing timezone)

    Examples:
        >>> from datetime import datetime, timezone
        >>> run_id_from_timestamp(datetime(2026, 3, 2, 8, 30, 45, tzinfo=timezone.utc))
        '2026-03-02T08-30-45Z'
    """
    if dt is None:
        dt = utc_now()

    if dt.tzinfo is None:
        raise ValueError(
            "Datetime must be timezone-aware (use timezone.utc). "
            "Got naive datetime. Use utc_now() or ensure dt has tzinfo set."
        )

    return dt.strftime("%Y-%m-%dT%H-%M-%SZ")
