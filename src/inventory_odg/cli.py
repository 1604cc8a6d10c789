"""Command line entrypoint of the Inventory ODG extension."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from inventory_odg import __version__
from inventory_odg.api.client import APIError
from inventory_odg.app import build_app_context
from inventory_odg.config import CONFIG_PATHS_ENV, config_paths_from_env, load_settings
from inventory_odg.errors import ReconcileError, UnknownTaskError, is_retryable_status
from inventory_odg.logging_utils import configure_logging, get_logger
from inventory_odg.tasks.registry import task_names

EXIT_OK = 0
EXIT_RETRYABLE = 1
EXIT_PERMANENT = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="inventory-odg",
        description="inventory extension for open delivery gear",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        action="append",
        default=None,
        help=f"Path to extension config file, may be repeated (env: {CONFIG_PATHS_ENV})",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    task = commands.add_parser("task", help="task operations")
    task_commands = task.add_subparsers(dest="task_command", required=True)

    task_commands.add_parser("list", help="list registered tasks")

    run = task_commands.add_parser("run", help="run a task once")
    run.add_argument("name", help="Name of the task to run")
    run.add_argument(
        "--payload",
        required=True,
        help="Path to a YAML or JSON payload file, or '-' to read it from stdin",
    )
    run.add_argument(
        "--show-metrics",
        action="store_true",
        default=False,
        help="Print the gauges collected during the run",
    )
    return parser.parse_args(argv)


def _read_payload(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _list_tasks() -> int:
    for name in task_names():
        print(name)
    return EXIT_OK


def _run_task(args: argparse.Namespace) -> int:
    config_paths = args.config or config_paths_from_env()
    if not config_paths:
        print(f"no config file specified (use --config or {CONFIG_PATHS_ENV})", file=sys.stderr)
        return EXIT_PERMANENT

    try:
        settings = load_settings(config_paths)
    except (RuntimeError, FileNotFoundError) as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_PERMANENT

    configure_logging(settings.logging, debug=settings.debug)
    logger = get_logger(__name__)

    try:
        raw_payload = _read_payload(args.payload)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("cannot read payload %s: %s", args.payload, exc)
        return EXIT_PERMANENT

    try:
        context = build_app_context(settings)
    except APIError as exc:
        retryable = is_retryable_status(exc.status_code)
        logger.error("authentication failed (retryable=%s): %s", retryable, exc)
        return EXIT_RETRYABLE if retryable else EXIT_PERMANENT
    except ValueError as exc:
        logger.error("cannot set up clients: %s", exc)
        return EXIT_PERMANENT

    with context:
        try:
            report = context.registry.handle(args.name, raw_payload)
        except UnknownTaskError as exc:
            logger.error("%s", exc)
            return EXIT_PERMANENT
        except ReconcileError as exc:
            logger.error("task %s failed (retryable=%s): %s", args.name, exc.retryable, exc)
            return EXIT_RETRYABLE if exc.retryable else EXIT_PERMANENT

        print(json.dumps(report.to_dict(), indent=2, sort_keys=True))
        if args.show_metrics:
            print(context.metrics.render(), end="")
    return EXIT_OK


def run_cli(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "task" and args.task_command == "list":
        return _list_tasks()
    return _run_task(args)


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
