from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import os

import yaml

from .exporters import DEFAULT_PRODID

CONFIG_PATH_DEFAULT = "calfeed.yaml"

# Environment variable -> BuildConfig field
ENV_OVERRIDES = {
    "CALFEED_SOURCE_DIR": "source_dir",
    "CALFEED_OUTPUT_DIR": "output_dir",
    "CALFEED_TIMEZONE": "timezone",
    "CALFEED_LOG_LEVEL": "log_level",
    "CALFEED_LOG_FORMAT": "log_format",
}

@dataclass
class BuildConfig:
    source_dir: Path = Path("tasks")
    output_dir: Path = Path("public")
    events_filename: str = "events.json"
    calendar_filename: str = "calendar.ics"
    timezone: str = "UTC"
    prodid: str = DEFAULT_PRODID
    log_level: str = "INFO"
    log_format: str = "text"

    @property
    def events_path(self) -> Path:
        return self.output_dir / self.events_filename

    @property
    def calendar_path(self) -> Path:
        return self.output_dir / self.calendar_filename

def _read_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data

def load_config(path: Optional[str] = CONFIG_PATH_DEFAULT, environ: Optional[Mapping[str, str]] = None) -> BuildConfig:
    data = _read_yaml(path)
    env = os.environ if environ is None else environ
    for var, field_name in ENV_OVERRIDES.items():
        value = env.get(var, "").strip()
        if value:
            data[field_name] = value

    defaults = BuildConfig()
    return BuildConfig(
        source_dir=Path(data.get("source_dir", defaults.source_dir)),
        output_dir=Path(data.get("output_dir", defaults.output_dir)),
        events_filename=str(data.get("events_filename", defaults.events_filename)),
        calendar_filename=str(data.get("calendar_filename", defaults.calendar_filename)),
        timezone=str(data.get("timezone", defaults.timezone)),
        prodid=str(data.get("prodid", defaults.prodid)),
        log_level=str(data.get("log_level", defaults.log_level)).upper(),
        log_format=str(data.get("log_format", defaults.log_format)).lower(),
    )
