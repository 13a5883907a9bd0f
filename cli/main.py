"""minutecron CLI -- the `minutecron` command.

Usage:
    minutecron check "<expr>"                 Explain a cron expression
    minutecron check "<expr>" --at "<time>"   Test it against "YYYY-MM-DD HH:MM"
    minutecron jobs                           List configured jobs
    minutecron start                          Run the scheduler
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from core.config import HOME_ENV_VAR, load_config
from scheduler.cron import CronExpression
from scheduler.fields import CronParseError, FieldType

TIME_FORMAT = "%Y-%m-%d %H:%M"


def _format_values(values: list[int], bounds: tuple[int, int]) -> str:
    if not values:
        return "(never)"
    if len(values) > 1 and values == list(range(values[0], values[-1] + 1)):
        if (values[0], values[-1]) == bounds:
            return f"every value ({values[0]}-{values[-1]})"
        return f"{values[0]}-{values[-1]}"
    return ", ".join(str(v) for v in values)


def _config_paths(args: argparse.Namespace) -> tuple[str | None, str | None]:
    return args.config, args.env


def cmd_check(args: argparse.Namespace) -> int:
    """Parse an expression, print its expansion and optionally test a time."""
    try:
        expr = CronExpression.parse(args.expression)
    except CronParseError as e:
        print(f"  Invalid expression: {e}")
        return 1

    print(f"  Expression: {expr}")
    for field in expr.fields:
        low, high = field.field_type.bounds
        if field.field_type is FieldType.WEEKDAY:
            high = 6
        label = field.field_type.label.capitalize()
        print(f"  {label:<15} {field.raw:<12} {_format_values(field.values(), (low, high))}")

    if not expr.day.is_wildcard and not expr.weekday.is_wildcard:
        print("  Day and weekday are both restricted: either one may match.")

    if args.at is None:
        return 0

    try:
        when = datetime.strptime(args.at, TIME_FORMAT)
    except ValueError:
        print(f"  Invalid time {args.at!r}, expected YYYY-MM-DD HH:MM")
        return 1

    if expr.match(when):
        print(f"  Matches {when.strftime(TIME_FORMAT)}")
        return 0
    print(f"  Does not match {when.strftime(TIME_FORMAT)}")
    return 1


def cmd_jobs(args: argparse.Namespace) -> int:
    """List jobs from the config file."""
    config_path, env_path = _config_paths(args)
    try:
        config = load_config(config_path=config_path, env_path=env_path)
    except ValidationError as e:
        print(f"  Invalid configuration: {e}")
        return 1

    if not config.jobs:
        print("  No jobs configured.")
        return 0

    for job in config.jobs:
        state = "enabled" if job.enabled else "disabled"
        print(f"  {job.id:<20} {job.schedule:<20} [{state}] {job.command}")
        if job.description:
            print(f"  {'':<20} {job.description}")
    return 0


def cmd_start(args: argparse.Namespace) -> int:
    """Run the scheduler in the foreground."""
    from main import run, setup_logging
    setup_logging("INFO")

    config_path, env_path = _config_paths(args)
    try:
        asyncio.run(run(config_path=config_path, env_path=env_path))
    except ValidationError as e:
        print(f"  Invalid configuration: {e}")
        return 1
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="minutecron",
        description="minutecron -- run commands on cron schedules",
    )
    parser.add_argument("--home", type=str, default=None, help="minutecron home directory")
    parser.add_argument("--config", "-c", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--env", type=str, default=None, help="Path to .env file")

    sub = parser.add_subparsers(dest="command")

    # check
    check_parser = sub.add_parser("check", help="Explain or test a cron expression")
    check_parser.add_argument("expression", type=str, help='Cron expression, e.g. "*/5 * * * *"')
    check_parser.add_argument(
        "--at",
        type=str,
        default=None,
        help="Time to test, formatted YYYY-MM-DD HH:MM",
    )

    # jobs
    sub.add_parser("jobs", help="List configured jobs")

    # start
    sub.add_parser("start", help="Run the scheduler")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.home:
        os.environ[HOME_ENV_VAR] = str(Path(args.home).expanduser())

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "check": cmd_check,
        "jobs": cmd_jobs,
        "start": cmd_start,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
