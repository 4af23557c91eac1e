from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path
from typing import Sequence

import yaml

from . import __version__
from .app import HourTracker, build_tracker
from .config import (
    STORAGE_BACKENDS,
    default_app_config,
    load_config,
    resolve_config_path,
    save_config,
)
from .errors import ConfigError, TransportError, ValidationError
from .log import configure_logging
from .models import DAYS, draft_from_dict, record_to_payload
from .notify import ConsoleNotifier
from .storage import open_storage


def open_tracker(args: argparse.Namespace) -> HourTracker:
    config = load_config(resolve_config_path(args.config), args.profile)
    return build_tracker(open_storage(config), ConsoleNotifier())


def init_command(args: argparse.Namespace) -> int:
    config_path = resolve_config_path(args.config)
    storage_path = Path(args.storage).expanduser().resolve() if args.storage else None
    app_config = default_app_config(storage_path, args.backend)
    save_config(config_path, app_config)
    config = app_config.profiles[app_config.default_profile]
    open_storage(config).init()
    print(f"Initialized config at {config_path}")
    print(f"Storage ({config.storage_backend}): {config.storage_path}")
    return 0


def load_payload(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping with weekStart and hours.")
    return data


def submit_command(args: argparse.Namespace) -> int:
    tracker = open_tracker(args)
    form = tracker.new_form()
    if args.file:
        try:
            form.draft = draft_from_dict(load_payload(Path(args.file).expanduser()))
        except (OSError, ValueError, yaml.YAMLError) as exc:
            print(f"Cannot read {args.file}: {exc}", file=sys.stderr)
            return 2
    else:
        if not form.select_date(args.date):
            return 2
        for day in DAYS:
            value = getattr(args, day)
            if value is not None:
                form.set_hours(day, value)
    record = form.submit()
    if record is None:
        return 2
    print(f"Week starting {record.week_start.isoformat()}: {record.total_hours} hours")
    return 0


def list_command(args: argparse.Namespace) -> int:
    tracker = open_tracker(args)
    display = tracker.new_display()
    print(display.render())
    display.deactivate()
    return 1 if display.error else 0


def export_command(args: argparse.Namespace) -> int:
    tracker = open_tracker(args)
    records = tracker.cache.fetch_all()
    payload = [record_to_payload(record) for record in records]

    output = sys.stdout
    if args.output:
        try:
            output = Path(args.output).expanduser().open("w", newline="", encoding="utf-8")
        except OSError as exc:
            print(f"Cannot write {args.output}: {exc}", file=sys.stderr)
            return 2

    try:
        if args.format == "json":
            json.dump(payload, output, indent=2)
            output.write("\n")
        else:
            writer = csv.writer(output)
            writer.writerow(["id", "weekStart", *DAYS])
            for record in records:
                writer.writerow(
                    [
                        record.record_id,
                        record.week_start.isoformat(),
                        *(f"{record.hours[day]:.2f}" for day in DAYS),
                    ]
                )
    finally:
        if output is not sys.stdout:
            output.close()

    if args.output:
        print(f"Exported {len(records)} weeks to {args.output}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hour-tracker",
        description="Record hours worked per day, one week at a time.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: $HOUR_TRACKER_CONFIG or ~/.hour_tracker/config.yaml)",
    )
    parser.add_argument("--profile", help="Config profile (default: default_profile)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create config + storage")
    init_parser.add_argument("--storage", help="SQLite file or Markdown directory")
    init_parser.add_argument(
        "--backend",
        default="sqlite",
        choices=list(STORAGE_BACKENDS),
        help="Storage backend (default: sqlite)",
    )
    init_parser.set_defaults(func=init_command)

    submit_parser = subparsers.add_parser("submit", help="Record one week of hours")
    source = submit_parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--date",
        help="Saturday before the week (YYYY-MM-DD); the week starts the next day",
    )
    source.add_argument(
        "--file",
        help="JSON or YAML payload: {weekStart: YYYY-MM-DD, hours: {sunday: 8, ...}}",
    )
    for day in DAYS:
        submit_parser.add_argument(f"--{day}", metavar="HOURS", help=f"{day.title()} hours")
    submit_parser.set_defaults(func=submit_command)

    list_parser = subparsers.add_parser("list", help="Show recorded weeks")
    list_parser.set_defaults(func=list_command)

    export_parser = subparsers.add_parser("export", help="Export recorded weeks")
    export_parser.add_argument("--format", choices=["csv", "json"], default="csv")
    export_parser.add_argument("--output", help="Write to file instead of stdout")
    export_parser.set_defaults(func=export_command)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except (ConfigError, TransportError, ValidationError) as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
