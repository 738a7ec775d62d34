"""Command-line entry for clinicbot_lite.

Reads a JSON array of task records and prints the expansion, the items for
one day, or summary counts as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

from dateutil import parser as date_parser

from . import _init_logging
from .core.clock import Clock, FixedClock, SystemClock
from .core.config_manager import EngineConfig
from .core.http_client import close_all_clients
from .domain.date_bucket import for_date
from .domain.expansion import expand
from .domain.task_models import RecurringInstance, Task, TaskOrInstance, parse_tasks
from .domain.task_stats import calculate_task_stats
from .domain.task_status import due_text, recurrence_label, status_display
from .exceptions import SchedulingEngineError
from .lite_logging import configure_lite_logging
from .working_calendar.service import (
    HttpWorkingCalendarService,
    StaticWorkingCalendarService,
    WorkingCalendarService,
    WorkingCalendarSettings,
)
from .working_calendar.working_day_filter import expand_working_day, for_working_day

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID_INPUT = 2


def _parse_day(value: str) -> datetime.date:
    try:
        return date_parser.isoparse(value).date()
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}: {e}") from e


def _parse_instant(value: str) -> datetime.datetime:
    try:
        return date_parser.isoparse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid timestamp {value!r}: {e}") from e


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for clinicbot_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="clinicbot_lite",
        description="ClinicBot Lite - recurring clinic task expansion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m clinicbot_lite expand tasks.json --start 2024-03-01 --end 2024-03-31
  python -m clinicbot_lite day tasks.json --date 2024-03-05 --clinic-id c1
  python -m clinicbot_lite stats tasks.json --date 2024-03-05
        """,
    )
    parser.add_argument(
        "--now",
        type=_parse_instant,
        metavar="TIMESTAMP",
        help="Current time used for overdue classification (default: system clock)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (default: WARNING, or from CLINICBOT_LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Debug logging for engine modules; httpx and asyncio stay at WARNING",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    expand_parser = subparsers.add_parser("expand", help="Expand tasks over a date range")
    expand_parser.add_argument("tasks_file", type=Path)
    expand_parser.add_argument("--start", type=_parse_day, required=True, metavar="DATE")
    expand_parser.add_argument("--end", type=_parse_day, required=True, metavar="DATE")

    day_parser = subparsers.add_parser("day", help="List the items for one calendar day")
    day_parser.add_argument("tasks_file", type=Path)
    day_parser.add_argument("--date", type=_parse_day, required=True, metavar="DATE")

    for sub in (expand_parser, day_parser):
        sub.add_argument(
            "--clinic-id",
            metavar="ID",
            help="Drop occurrences on this clinic's non-working days",
        )
        sub.add_argument(
            "--calendar-file",
            type=Path,
            metavar="FILE",
            help="JSON working-calendar settings to use instead of the backend",
        )

    stats_parser = subparsers.add_parser("stats", help="Summary counts for one day")
    stats_parser.add_argument("tasks_file", type=Path)
    stats_parser.add_argument("--date", type=_parse_day, metavar="DATE")

    return parser


def _load_tasks(path: Path) -> list[Task]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SchedulingEngineError(f"Cannot read tasks file {path}: {e}") from e
    if not isinstance(raw, list):
        raise SchedulingEngineError(f"Tasks file {path} must contain a JSON array")
    return parse_tasks(raw)


def _build_service(args: argparse.Namespace, config: EngineConfig) -> WorkingCalendarService:
    calendar_file: Optional[Path] = getattr(args, "calendar_file", None)
    if calendar_file is not None:
        try:
            settings = WorkingCalendarSettings.model_validate_json(
                calendar_file.read_text(encoding="utf-8")
            )
        except (OSError, ValueError) as e:
            raise SchedulingEngineError(f"Cannot read calendar file {calendar_file}: {e}") from e
        return StaticWorkingCalendarService({args.clinic_id: settings})
    return HttpWorkingCalendarService.from_config(config)


def _serialize(item: TaskOrInstance) -> dict[str, Any]:
    data = item.model_dump(mode="json")
    data["kind"] = "instance" if isinstance(item, RecurringInstance) else "task"
    data["status_label"] = status_display(item.status)
    data["recurrence_label"] = recurrence_label(item.recurrence)
    data["due_text"] = due_text(item)
    return data


async def _run_working_day(
    args: argparse.Namespace,
    tasks: list[Task],
    clock: Clock,
    config: EngineConfig,
) -> list[TaskOrInstance]:
    service = _build_service(args, config)
    try:
        if args.command == "expand":
            return await expand_working_day(
                tasks, args.start, args.end, args.clinic_id, service, now=clock, config=config
            )
        return await for_working_day(
            tasks, args.date, args.clinic_id, service, now=clock, config=config
        )
    finally:
        await close_all_clients()


def run_cli(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, run the requested command and print JSON to stdout.

    Returns:
        Process exit code
    """
    parser = _create_parser()
    args = parser.parse_args(argv)

    _init_logging(args.log_level or os.environ.get("CLINICBOT_LOG_LEVEL") or "WARNING")
    if args.debug:
        configure_lite_logging(debug_mode=True)

    clock: Clock = FixedClock(args.now) if args.now is not None else SystemClock()

    try:
        config = EngineConfig.from_env()
        tasks = _load_tasks(args.tasks_file)

        if args.command == "stats":
            day = args.date or clock.now().date()
            stats = calculate_task_stats(for_date(tasks, day, now=clock), now=clock, today=day)
            output: Any = stats.to_dict()
        elif getattr(args, "clinic_id", None):
            items = asyncio.run(_run_working_day(args, tasks, clock, config))
            output = [_serialize(item) for item in items]
        elif args.command == "expand":
            items = expand(tasks, args.start, args.end, now=clock, config=config)
            output = [_serialize(item) for item in items]
        else:
            items = for_date(tasks, args.date, now=clock, config=config)
            output = [_serialize(item) for item in items]

    except SchedulingEngineError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    print(json.dumps(output, indent=2))
    return EXIT_OK


def main() -> NoReturn:
    """Run the clinicbot_lite CLI."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
