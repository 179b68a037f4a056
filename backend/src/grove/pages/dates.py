"""Date helpers for header fields and collection date ranges."""

from datetime import UTC, date, datetime
from typing import Any

from dateutil import parser as date_parser


def to_timestamp(value: Any) -> int | None:
    """Convert a header value or free-form date text to a UNIX timestamp.

    Naive dates are interpreted as UTC so timestamps do not depend on the
    host timezone.

    Args:
        value: int/float timestamp, date/datetime, or date text.

    Returns:
        Timestamp in whole seconds, or None if the value cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return _from_datetime(value)
    if isinstance(value, date):
        return _from_datetime(datetime(value.year, value.month, value.day))

    normalized = str(value).strip()
    if not normalized:
        return None
    if normalized.lstrip("-").isdigit():
        return int(normalized)

    try:
        parsed = date_parser.isoparse(normalized)
    except (ValueError, OverflowError, TypeError):
        parsed = None
    if parsed is None:
        try:
            parsed = date_parser.parse(normalized)
        except (ValueError, OverflowError, TypeError):
            return None

    return _from_datetime(parsed)


def _from_datetime(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp())
