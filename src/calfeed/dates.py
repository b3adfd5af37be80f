from __future__ import annotations

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Optional

from dateutil.parser import isoparse

DATE_LENGTH = 10

_DATETIME_SHAPE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")
_DATE_SHAPE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def has_valid_shape(value: str) -> bool:
    """True for `YYYY-MM-DDTHH:MM...` or a bare `YYYY-MM-DD`."""
    return bool(_DATETIME_SHAPE.match(value) or _DATE_SHAPE.match(value))


def is_bare_date(value: str) -> bool:
    return len(value) == DATE_LENGTH


def parse_instant(value: str, tz: tzinfo) -> Optional[datetime]:
    """Parse ISO text into an aware datetime, or None if it is not a valid instant.

    Text without an offset (including a bare date) is read in `tz`.
    """
    try:
        dt = isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt


def to_iso_text(value: date) -> str:
    """Render a date or datetime the way it is stored on a CanonicalEvent."""
    if not isinstance(value, datetime):
        return value.isoformat()
    if value.tzinfo is None:
        return value.isoformat()
    utc = value.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat() + "Z"
