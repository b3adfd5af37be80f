from __future__ import annotations

import hashlib
import json
import logging
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from icalendar import Calendar, Event as ICalEvent

from .dates import is_bare_date, parse_instant
from .models import CanonicalEvent

logger = logging.getLogger(__name__)

DEFAULT_PRODID = "-//calfeed//calfeed 1.0//EN"
UID_DOMAIN = "calfeed"

DateParts = Tuple[int, ...]


class CalendarExportError(ValueError):
    pass


# Structured-data feed

def events_to_json(events: Sequence[CanonicalEvent]) -> str:
    return json.dumps([e.to_dict() for e in events], indent=2, ensure_ascii=False)


def write_events_json(path: Path, events: Sequence[CanonicalEvent]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(events_to_json(events), encoding="utf-8")


# Calendar-interchange feed

def is_all_day(e: CanonicalEvent) -> bool:
    # An explicit allDay wins; otherwise a bare date with no end is all-day.
    if e.all_day is not None:
        return e.all_day
    return is_bare_date(e.start) and not e.end


def date_parts(value: str, all_day: bool, tz: tzinfo) -> DateParts:
    """Decompose date text into local (y, m, d) or (y, m, d, H, M). Seconds are dropped."""
    dt = parse_instant(value, tz)
    if dt is None:
        raise CalendarExportError(f"Unparseable date '{value}'")
    try:
        local = dt.astimezone(tz)
    except OverflowError as e:
        raise CalendarExportError(f"Date '{value}' is out of range: {e}") from e
    if all_day:
        return (local.year, local.month, local.day)
    return (local.year, local.month, local.day, local.hour, local.minute)


def _parts_to_value(parts: DateParts, tz: tzinfo) -> date:
    try:
        if len(parts) == 3:
            return date(*parts)
        return datetime(*parts, tzinfo=tz).astimezone(timezone.utc)
    except (TypeError, ValueError, OverflowError) as e:
        raise CalendarExportError(f"Invalid date parts {parts}: {e}") from e


def event_uid(e: CanonicalEvent) -> str:
    composite = "|".join(e.identity)
    return f"{hashlib.sha256(composite.encode('utf-8')).hexdigest()}@{UID_DOMAIN}"


def to_calendar_item(e: CanonicalEvent, tz: tzinfo) -> Dict[str, Any]:
    all_day = is_all_day(e)
    item: Dict[str, Any] = {
        "title": e.title,
        "description": e.description,
        "location": e.location,
        "url": e.url,
        "start": date_parts(e.start, all_day, tz),
    }
    if not all_day and e.end:
        item["end"] = date_parts(e.end, False, tz)
    return item


def _build_vevent(e: CanonicalEvent, item: Dict[str, Any], tz: tzinfo, stamp: datetime) -> ICalEvent:
    vevent = ICalEvent()
    vevent.add("uid", event_uid(e))
    vevent.add("dtstamp", stamp)
    vevent.add("summary", item["title"])
    vevent.add("dtstart", _parts_to_value(item["start"], tz))
    if "end" in item:
        vevent.add("dtend", _parts_to_value(item["end"], tz))
    for key in ("description", "location", "url"):
        if item[key]:
            vevent.add(key, item[key])
    return vevent


def events_to_ics(
    events: Sequence[CanonicalEvent],
    tz: tzinfo = timezone.utc,
    prodid: str = DEFAULT_PRODID,
    stamp: Optional[datetime] = None,
) -> bytes:
    """Encode events as an iCalendar document.

    Raises CalendarExportError if any event's dates cannot be encoded; the
    calendar is all-or-nothing.
    """
    stamp = (stamp or datetime.now(timezone.utc)).astimezone(timezone.utc).replace(microsecond=0)

    cal = Calendar()
    cal.add("prodid", prodid)
    cal.add("version", "2.0")
    for e in events:
        item = to_calendar_item(e, tz)
        cal.add_component(_build_vevent(e, item, tz, stamp))

    logger.debug("Encoded %d events as iCalendar", len(events))
    return cal.to_ical()


def write_calendar_ics(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
