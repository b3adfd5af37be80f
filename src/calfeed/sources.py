from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List

import yaml
from icalendar import Calendar

from .models import RECORD, VEVENT, RawRecord
from .reporting import Reporter

Parser = Callable[[bytes], List[Any]]

# VEVENT properties carried into the raw record, keyed by lowercase name.
_VEVENT_PROPERTIES = ("SUMMARY", "DTSTART", "DTEND", "DURATION", "DESCRIPTION", "LOCATION", "URL")


class SourceParseError(ValueError):
    pass


@dataclass(frozen=True)
class SourceFormat:
    parse: Parser
    kind: str = RECORD


def _as_items(parsed: Any) -> List[Any]:
    if parsed is None:
        return []
    if isinstance(parsed, list):
        return parsed
    return [parsed]


def parse_json(data: bytes) -> List[Any]:
    return _as_items(json.loads(data.decode("utf-8-sig")))


def parse_yaml(data: bytes) -> List[Any]:
    return _as_items(yaml.safe_load(data))


def parse_ics(data: bytes) -> List[Any]:
    if not data.strip():
        return []
    try:
        calendars = Calendar.from_ical(data, multiple=True)
    except ValueError as e:
        raise SourceParseError(f"invalid calendar data: {e}") from e

    items: List[Any] = []
    for cal in calendars:
        for component in cal.walk("VEVENT"):
            items.append(
                {name.lower(): component.get(name) for name in _VEVENT_PROPERTIES if name in component}
            )
    return items


PARSERS: Dict[str, SourceFormat] = {
    ".json": SourceFormat(parse_json),
    ".yml": SourceFormat(parse_yaml),
    ".yaml": SourceFormat(parse_yaml),
    ".ics": SourceFormat(parse_ics, kind=VEVENT),
}


def _source_files(source_dir: Path) -> List[Path]:
    return [
        p for p in sorted(source_dir.iterdir())
        if not p.name.startswith(".") and p.is_file()
    ]


def load_records(source_dir: Path, reporter: Reporter) -> List[RawRecord]:
    """Read every recognized file in `source_dir` into raw records.

    A file that fails to read or parse is reported and skipped; its records
    never reach the accumulator, so earlier files are unaffected.
    """
    if not source_dir.exists():
        source_dir.mkdir(parents=True, exist_ok=True)
        reporter.notice(f"Source directory {source_dir} did not exist; created it empty")
        return []

    records: List[RawRecord] = []
    for path in _source_files(source_dir):
        fmt = PARSERS.get(path.suffix.lower())
        if fmt is None:
            reporter.notice(f"Skipping unrecognized file type '{path.suffix or '(none)'}'", origin=path.name)
            continue

        try:
            items = fmt.parse(path.read_bytes())
        except Exception as e:
            reporter.error(f"Failed to parse: {e}", origin=path.name)
            continue

        records.extend(RawRecord(origin=path.name, data=item, kind=fmt.kind) for item in items)

    return records
