from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

RECORD = "record"   # JSON / YAML object
VEVENT = "vevent"   # calendar-interchange component


@dataclass(frozen=True)
class RawRecord:
    origin: str                 # source filename
    data: Any                   # loosely-typed key/value bag
    kind: str = RECORD


@dataclass(frozen=True)
class EventFields:
    """Candidate event values after field-name resolution, before validation."""
    title: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    all_day: Optional[bool] = None


@dataclass(frozen=True)
class CanonicalEvent:
    title: str
    start: str                  # ISO date-time or bare date text
    end: Optional[str] = None
    description: str = ""
    location: str = ""
    url: str = ""
    all_day: Optional[bool] = None

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.title, self.start, self.end or "")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"title": self.title, "start": self.start}
        if self.end:
            out["end"] = self.end
        if self.description:
            out["description"] = self.description
        if self.location:
            out["location"] = self.location
        if self.url:
            out["url"] = self.url
        if self.all_day is not None:
            out["allDay"] = self.all_day
        return out
