"""
main.py: command-line entry point.

Print an hourly staffing plan for a forecast CSV file:

    python main.py schedule --input testdata/data.csv --format text --capacity 40

Start the HTTP API (see app.py for the FastAPI application):

    python main.py serve --port 8000
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from datetime import date

import uvicorn

from backend.repository.demand_repository import (
    DemandParseError,
    DemandRepository,
    resolve_zone_code,
)
from backend.services.formatting_service import OUTPUT_FORMATS, format_schedule
from backend.services.scheduling_service import SchedulingService, ScheduleValidationError
from backend.utils.config import Settings, get_settings
from backend.utils.logger import configure_logging


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-scheduler",
        description="Compute hourly agent staffing requirements from forecast call windows",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    schedule = commands.add_parser("schedule", help="Print the staffing plan for a CSV file")
    schedule.add_argument(
        "--input", "-i", required=True, dest="input_path", help="Path to input CSV file"
    )
    schedule.add_argument(
        "--format",
        "-f",
        choices=OUTPUT_FORMATS,
        default=settings.default_output_format,
        help="Output format (default: %(default)s)",
    )
    schedule.add_argument(
        "--utilization",
        "-u",
        type=float,
        default=settings.default_utilization,
        help="Agent utilization factor in (0, 1] (default: %(default)s)",
    )
    schedule.add_argument(
        "--capacity",
        "-c",
        type=int,
        default=settings.default_capacity_per_hour,
        help="Maximum agents per hour, 0 = unlimited (default: %(default)s)",
    )
    schedule.add_argument(
        "--date",
        type=_iso_date,
        default=None,
        dest="schedule_date",
        help="Calendar date the clock times fall on (default: today)",
    )
    schedule.add_argument(
        "--time-zone",
        default=settings.default_time_zone,
        help="Zone for rows before any StartTime<ZONE> header (default: %(default)s)",
    )

    serve = commands.add_parser("serve", help="Run the scheduling HTTP API")
    serve.add_argument("--host", default=settings.server_host)
    serve.add_argument("--port", type=int, default=settings.server_port)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def run_schedule(args: argparse.Namespace, settings: Settings) -> int:
    if not 0.0 < args.utilization <= 1.0:
        return _fail("utilization must be between 0 (exclusive) and 1 (inclusive)")
    if args.capacity < 0:
        return _fail("capacity must be >= 0 (0 = unlimited)")
    zone = resolve_zone_code(args.time_zone)
    if zone is None:
        return _fail(f"unknown time zone: {args.time_zone}")

    settings = replace(settings, default_time_zone=zone.key)
    repository = DemandRepository(settings)
    try:
        records = repository.load_records(args.input_path, schedule_date=args.schedule_date)
    except OSError as exc:
        return _fail(f"opening file: {exc}")
    except DemandParseError as exc:
        return _fail(f"parsing file: {exc}")

    service = SchedulingService(settings=settings)
    try:
        schedule = service.build_schedule(
            records,
            utilization=args.utilization,
            capacity_per_hour=args.capacity,
        )
    except ScheduleValidationError as exc:
        return _fail(str(exc))

    sys.stdout.write(format_schedule(schedule, args.format))
    return 0


def run_serve(args: argparse.Namespace, settings: Settings) -> int:
    uvicorn.run(
        "app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)
    configure_logging(args.log_level)
    if args.command == "serve":
        return run_serve(args, settings)
    return run_schedule(args, settings)


if __name__ == "__main__":
    sys.exit(main())
