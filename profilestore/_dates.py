"""Engine-native date encoding.

Timestamps are persisted as ``YYYY-MM-DD HH:MM:SS`` in UTC with no
fractional seconds and no zone suffix, which is also what SQLite's
``CURRENT_TIMESTAMP`` produces. Date-only values are persisted as
``YYYY-MM-DD``. Decoding returns timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC with whole-second precision.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=0)


def encode_timestamp(value: datetime) -> str:
    return to_utc(value).strftime(TIMESTAMP_FORMAT)


def encode_date(value: date) -> str:
    if isinstance(value, datetime):
        value = to_utc(value).date()
    return value.isoformat()


def decode_timestamp(text: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime.

    Accepts the full timestamp form as well as date-only text, which older
    images wrote for some timestamp columns.
    """
    if not text:
        return None
    return to_utc(datetime.fromisoformat(text))


def decode_date(text: str | None) -> date | None:
    if not text:
        return None
    return date.fromisoformat(text[:10])
