"""
Timestamp normalization for values read from the data store.

Vehicle rows and document exports carry dates in several shapes: native
date/datetime objects, ISO-8601 strings, epoch seconds, and Firestore
Timestamp maps ({"seconds": ..., "nanoseconds": ...}). Everything is
converted here so the rest of the service only deals with `date` for expiry
values and timezone-aware UTC `datetime` for ledger timestamps.
"""

from datetime import date, datetime, timezone
from typing import Optional

from app.utils.errors import MalformedRecordError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are stored as UTC; attach the zone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_timestamp_map(value: dict) -> Optional[datetime]:
    seconds = value.get("seconds", value.get("_seconds"))
    nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
    if seconds is None:
        return None
    return datetime.fromtimestamp(int(seconds) + int(nanos) / 1e9, tz=timezone.utc)


def to_utc_datetime(value, record_id=None, field: str = "timestamp") -> Optional[datetime]:
    """
    Convert a stored timestamp to an aware UTC datetime.
    Returns None for None / empty string. Raises MalformedRecordError otherwise.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise MalformedRecordError(record_id, field, f"has unsupported type bool ({value!r})")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedRecordError(record_id, field, f"is not a valid epoch value ({e})")
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            raise MalformedRecordError(record_id, field, f"is not an ISO-8601 timestamp ({value!r})")
    if isinstance(value, dict):
        try:
            parsed = _from_timestamp_map(value)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise MalformedRecordError(record_id, field, f"has an invalid timestamp map ({e})")
        if parsed is not None:
            return parsed
        raise MalformedRecordError(record_id, field, f"is a map without 'seconds' ({value!r})")
    raise MalformedRecordError(record_id, field, f"has unsupported type {type(value).__name__}")


def to_date(value, record_id=None, field: str = "date") -> date:
    """Convert a stored expiry value to a calendar date. The value is required."""
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise MalformedRecordError(record_id, field, f"is not an ISO date ({value!r})")
    parsed = to_utc_datetime(value, record_id, field)
    if parsed is None:
        raise MalformedRecordError(record_id, field, "is missing")
    return parsed.date()
