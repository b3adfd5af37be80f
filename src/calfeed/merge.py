from __future__ import annotations

import math
from datetime import timezone, tzinfo
from typing import List, Sequence

from .dates import parse_instant
from .models import CanonicalEvent


def dedupe_events(events: Sequence[CanonicalEvent]) -> List[CanonicalEvent]:
    """Keep the first event seen for each (title, start, end) identity."""
    deduped: List[CanonicalEvent] = []
    seen = set()
    for e in events:
        key = e.identity
        if key in seen:
            continue
        seen.add(key)
        deduped.append(e)
    return deduped


def event_sort_key(e: CanonicalEvent, tz: tzinfo = timezone.utc) -> float:
    start = parse_instant(e.start, tz)
    # Unparseable starts sink to the end.
    return start.timestamp() if start is not None else math.inf


def sort_events(events: Sequence[CanonicalEvent], tz: tzinfo = timezone.utc) -> List[CanonicalEvent]:
    return sorted(events, key=lambda e: event_sort_key(e, tz))


def merge_events(events: Sequence[CanonicalEvent], tz: tzinfo = timezone.utc) -> List[CanonicalEvent]:
    return sort_events(dedupe_events(events), tz)
