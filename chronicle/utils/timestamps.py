"""
Timestamp helpers.

All persisted timestamps are integer milliseconds since the Unix epoch and
calendar dates are UTC dates formatted as YYYY-MM-DD.
"""

import math
import re
import time
from datetime import datetime, timedelta, timezone

from chronicle.utils.exceptions import ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_INTEGER_PATTERN = re.compile(r"-?[0-9]+")


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def normalize_timestamp(value: int | float | str) -> int:
    """
    Normalize an event timestamp to epoch milliseconds.

    Accepts integer/float milliseconds, all-digit strings (milliseconds) and
    ISO 8601 date or date-time strings. Strings without an offset are read as UTC.

    Raises:
        ValidationError: If the value is not a finite, representable instant
    """
    if isinstance(value, bool):
        raise ValidationError("Invalid timestamp", {"timestamp": value})

    if isinstance(value, int):
        millis = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError("Invalid timestamp", {"timestamp": value})
        millis = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if _INTEGER_PATTERN.fullmatch(text):
            millis = int(text)
        else:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError as e:
                raise ValidationError("Invalid timestamp", {"timestamp": value}) from e
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            millis = (parsed - EPOCH) // timedelta(milliseconds=1)
    else:
        raise ValidationError("Invalid timestamp", {"timestamp": value})

    # Reject instants that cannot be mapped to a calendar date
    date_for_timestamp(millis)
    return millis


def date_for_timestamp(millis: int) -> str:
    """
    UTC calendar date (YYYY-MM-DD) of an epoch-millisecond timestamp.

    Raises:
        ValidationError: If the timestamp is outside the representable range
    """
    try:
        return (EPOCH + timedelta(milliseconds=millis)).date().isoformat()
    except OverflowError as e:
        raise ValidationError("Timestamp out of range", {"timestamp": millis}) from e


def validate_date(value: str, field: str = "date") -> str:
    """
    Ensure a date string is exactly YYYY-MM-DD.

    Raises:
        ValidationError: If the value doesn't match the format
    """
    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        raise ValidationError(
            f"{field} must be in YYYY-MM-DD format", {"field": field, "value": value}
        )
    return value
