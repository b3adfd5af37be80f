from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .dates import has_valid_shape, to_iso_text
from .models import RECORD, VEVENT, CanonicalEvent, EventFields, RawRecord
from .reporting import Reporter

logger = logging.getLogger(__name__)

# First present (non-empty) key wins.
TITLE_KEYS = ("title", "summary", "name")
START_KEYS = ("start", "dtstart")
END_KEYS = ("end", "dtend")
ALL_DAY_KEYS = ("allDay", "all_day")

UNTITLED = "Untitled"

_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0"}


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, date):
        try:
            text = to_iso_text(value)
        except OverflowError:
            # Keep the source offset when it cannot be shifted to UTC.
            text = value.isoformat()
    else:
        text = str(value).strip()
    return text or None


def _to_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return bool(value)


def _first_text(raw: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        text = _to_text(raw.get(key))
        if text is not None:
            return text
    return None


def _first_bool(raw: Mapping[str, Any], keys: Sequence[str]) -> Optional[bool]:
    for key in keys:
        if key in raw:
            return _to_bool(raw[key])
    return None


def resolve_fields(raw: Mapping[str, Any]) -> EventFields:
    """Apply the fallback field-name policy to a loosely-shaped record."""
    return EventFields(
        title=_first_text(raw, TITLE_KEYS),
        start=_first_text(raw, START_KEYS),
        end=_first_text(raw, END_KEYS),
        description=_to_text(raw.get("description")),
        location=_to_text(raw.get("location")),
        url=_to_text(raw.get("url")),
        all_day=_first_bool(raw, ALL_DAY_KEYS),
    )


def _ics_value(prop: Any) -> Any:
    if isinstance(prop, list):
        prop = prop[0] if prop else None
    return getattr(prop, "dt", prop)


def _ics_instant_text(value: Any) -> Optional[str]:
    # Anything that is not a real date/datetime is treated as absent.
    if isinstance(value, date):
        try:
            return to_iso_text(value)
        except OverflowError:
            return None
    return None


def vevent_to_record(component: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert VEVENT property values into a plain record with ISO date text."""
    start = _ics_value(component.get("dtstart"))
    end = _ics_value(component.get("dtend"))
    duration = _ics_value(component.get("duration"))

    if end is None and isinstance(start, date) and isinstance(duration, timedelta):
        try:
            end = start + duration
        except OverflowError:
            end = None

    record: Dict[str, Any] = {
        "summary": _to_text(component.get("summary")) or UNTITLED,
        "dtstart": _ics_instant_text(start),
        "dtend": _ics_instant_text(end),
        "description": component.get("description"),
        "location": component.get("location"),
        "url": component.get("url"),
    }
    if isinstance(start, date) and not isinstance(start, datetime):
        record["allDay"] = True
    return record


def _describe(raw: Any) -> str:
    try:
        return json.dumps(raw, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(raw)


def normalize(raw: Any, origin: str, reporter: Reporter, kind: str = RECORD) -> Optional[CanonicalEvent]:
    """Turn one raw record into a CanonicalEvent, or None if it has no title/start.

    Date text that does not look like `YYYY-MM-DD` or `YYYY-MM-DDTHH:MM...`
    is only warned about; the value is kept as given.
    """
    if not isinstance(raw, Mapping):
        reporter.warning(f"Skipping non-object record: {_describe(raw)}", origin=origin)
        return None

    if kind == VEVENT:
        raw = vevent_to_record(raw)

    fields = resolve_fields(raw)
    if fields.title is None or fields.start is None:
        missing = "title" if fields.title is None else "start"
        reporter.warning(f"Skipping record without {missing}: {_describe(raw)}", origin=origin)
        return None

    event = CanonicalEvent(
        title=fields.title,
        start=fields.start,
        end=fields.end,
        description=fields.description or "",
        location=fields.location or "",
        url=fields.url or "",
        all_day=fields.all_day,
    )

    for name, value in (("start", event.start), ("end", event.end)):
        if value is not None and not has_valid_shape(value):
            reporter.warning(f"Event '{event.title}' has non-ISO {name} '{value}'", origin=origin)

    return event


def normalize_records(records: Iterable[RawRecord], reporter: Reporter) -> List[CanonicalEvent]:
    events: List[CanonicalEvent] = []
    total = 0
    for record in records:
        total += 1
        event = normalize(record.data, record.origin, reporter, kind=record.kind)
        if event is not None:
            events.append(event)

    logger.debug("Normalized %d valid events out of %d records", len(events), total)
    return events
