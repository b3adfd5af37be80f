from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv

from .config import CONFIG_PATH_DEFAULT, BuildConfig, load_config
from .exporters import CalendarExportError, events_to_ics, write_calendar_ics, write_events_json
from .merge import merge_events
from .models import CanonicalEvent
from .normalize import normalize_records
from .reporting import Reporter, setup_logging
from .sources import load_records

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    raw_count: int
    valid_count: int
    events: List[CanonicalEvent]
    events_path: Path
    calendar_path: Optional[Path] = None    # None when the calendar was skipped
    calendar_error: str = ""


def run_build(
    cfg: BuildConfig,
    reporter: Reporter | None = None,
    stamp: datetime | None = None,
) -> BuildResult:
    """Load, normalize, merge and export every source in `cfg.source_dir`.

    The JSON feed is always written; an error writing it propagates. The
    calendar file is best-effort and is skipped if any event fails to encode.
    """
    reporter = reporter or Reporter()
    tz = ZoneInfo(cfg.timezone)

    records = load_records(cfg.source_dir, reporter)
    valid = normalize_records(records, reporter)
    events = merge_events(valid, tz)

    write_events_json(cfg.events_path, events)

    result = BuildResult(
        raw_count=len(records),
        valid_count=len(valid),
        events=events,
        events_path=cfg.events_path,
    )

    try:
        content = events_to_ics(events, tz=tz, prodid=cfg.prodid, stamp=stamp)
    except CalendarExportError as e:
        reporter.error(f"Skipping {cfg.calendar_filename}: {e}")
        result.calendar_error = str(e)
    else:
        write_calendar_ics(cfg.calendar_path, content)
        result.calendar_path = cfg.calendar_path

    written = f"{result.events_path}" + (f" and {result.calendar_path}" if result.calendar_path else "")
    reporter.notice(
        f"Loaded {result.raw_count} record(s), {result.valid_count} valid; "
        f"wrote {len(events)} event(s) to {written}"
    )
    return result


def main(argv: list[str] | None = None) -> int:
    import argparse

    ap = argparse.ArgumentParser(description="Merge event sources into events.json and calendar.ics")
    ap.add_argument("--config", default=CONFIG_PATH_DEFAULT)
    ap.add_argument("--source-dir")
    ap.add_argument("--output-dir")
    ap.add_argument("--timezone")
    args = ap.parse_args(argv)

    load_dotenv()
    try:
        cfg = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logging.basicConfig()
        logger.error("Could not load config %s: %s", args.config, e)
        return 1
    if args.source_dir:
        cfg = replace(cfg, source_dir=Path(args.source_dir))
    if args.output_dir:
        cfg = replace(cfg, output_dir=Path(args.output_dir))
    if args.timezone:
        cfg = replace(cfg, timezone=args.timezone)

    setup_logging(cfg.log_level, cfg.log_format)

    try:
        run_build(cfg)
    except (OSError, TypeError, ValueError, ZoneInfoNotFoundError) as e:
        logger.error("Build failed: %s", e, exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
