from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

NOTICE = "notice"
WARNING = "warning"
ERROR = "error"

_LOG_LEVELS = {
    NOTICE: logging.INFO,
    WARNING: logging.WARNING,
    ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Diagnostic:
    level: str
    message: str
    origin: Optional[str] = None


class Reporter:
    """Collects build diagnostics and forwards them to a logger.

    One instance is handed through the loader, normalizer and build so that
    callers (and tests) can inspect what was skipped or warned about without
    capturing process output.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("calfeed")
        self.diagnostics: List[Diagnostic] = []

    def notice(self, message: str, origin: str | None = None) -> None:
        self._emit(NOTICE, message, origin)

    def warning(self, message: str, origin: str | None = None) -> None:
        self._emit(WARNING, message, origin)

    def error(self, message: str, origin: str | None = None) -> None:
        self._emit(ERROR, message, origin)

    def messages(self, level: str | None = None) -> List[str]:
        return [d.message for d in self.diagnostics if level is None or d.level == level]

    def count(self, level: str) -> int:
        return sum(1 for d in self.diagnostics if d.level == level)

    def _emit(self, level: str, message: str, origin: str | None) -> None:
        self.diagnostics.append(Diagnostic(level=level, message=message, origin=origin))
        text = f"{origin}: {message}" if origin else message
        self.logger.log(_LOG_LEVELS[level], text)


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
