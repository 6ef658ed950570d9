"""Command-line interface for Worklist Agent.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta

import structlog

from worklist_agent import __version__
from worklist_agent.agent import WorklistAgent
from worklist_agent.config import Settings, get_settings
from worklist_agent.engine import ActionParams, filter_worklist
from worklist_agent.exceptions import ConfigurationError, DispatchError, WorklistUnavailableError
from worklist_agent.models import Task, TaskAction, TaskPriority, TaskSource
from worklist_agent.snooze import SnoozeDuration, SnoozeStore
from worklist_agent.utils import now_utc, parse_iso8601

logger = structlog.get_logger()

_SOURCE_CHOICES = [s.value for s in TaskSource]
_PRIORITY_CHOICES = [p.value for p in TaskPriority]


def _duration_arg(value: str) -> SnoozeDuration:
    try:
        return SnoozeDuration.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            "expected one of: 1h, 3h, tomorrow, next-week"
        ) from exc


def _datetime_arg(value: str) -> datetime:
    parsed = parse_iso8601(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value!r}")
    return parsed


def _add_task_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("source", choices=_SOURCE_CHOICES, help="Task source")
    parser.add_argument("task_id", help="Source-native task id")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="worklist", description="Worklist Agent")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="Show the unified worklist")
    list_parser.add_argument(
        "--source",
        action="append",
        choices=_SOURCE_CHOICES,
        default=None,
        help="Only show tasks from this source (repeatable)",
    )
    list_parser.add_argument(
        "--priority",
        action="append",
        choices=_PRIORITY_CHOICES,
        default=None,
        help="Only show tasks with this priority (repeatable)",
    )

    archive_parser = subparsers.add_parser("archive", help="Archive a mail task")
    _add_task_arguments(archive_parser)

    complete_parser = subparsers.add_parser("complete", help="Close a work item")
    _add_task_arguments(complete_parser)

    snooze_parser = subparsers.add_parser("snooze", help="Hide a task until a wake time")
    _add_task_arguments(snooze_parser)
    when = snooze_parser.add_mutually_exclusive_group(required=True)
    when.add_argument(
        "--for",
        dest="duration",
        type=_duration_arg,
        help="Preset: 1h, 3h, tomorrow, next-week",
    )
    when.add_argument(
        "--until",
        type=_datetime_arg,
        help="Absolute wake time (ISO-8601; naive values are UTC)",
    )

    unsnooze_parser = subparsers.add_parser("unsnooze", help="Show a snoozed task again")
    _add_task_arguments(unsnooze_parser)

    snoozes_parser = subparsers.add_parser("snoozes", help="Inspect and maintain snoozes")
    snoozes_sub = snoozes_parser.add_subparsers(dest="snoozes_command", required=True)
    snoozes_sub.add_parser("list", help="List active snoozes")
    cleanup_parser = snoozes_sub.add_parser("cleanup", help="Delete expired snoozes")
    cleanup_parser.add_argument(
        "--older-than-days",
        type=int,
        default=None,
        help="Only delete snoozes that woke this many days ago (default: settings)",
    )

    return parser


def _make_agent(settings: Settings) -> WorklistAgent:
    return WorklistAgent(settings)


def _format_task(task: Task) -> str:
    return "\t".join(
        [
            task.priority.value.upper(),
            task.timestamp.isoformat(timespec="minutes"),
            task.source.value,
            task.id,
            task.actor_name,
            task.title,
        ]
    )


async def _cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    async with _make_agent(settings) as agent:
        result = await agent.refresh()

    sources = [TaskSource(s) for s in args.source or []]
    priorities = [TaskPriority(p) for p in args.priority or []]
    for task in filter_worklist(result.tasks, sources, priorities):
        print(_format_task(task))

    for failure in result.failures:
        print(
            f"warning: {failure.source.value} unavailable ({failure.kind}): {failure.message}",
            file=sys.stderr,
        )
    for source, skipped in result.skipped.items():
        if skipped:
            print(f"warning: skipped {skipped} unreadable {source.value} item(s)", file=sys.stderr)

    return 0


async def _cmd_action(args: argparse.Namespace, settings: Settings) -> int:
    action = TaskAction(args.command)
    params = None
    if action is TaskAction.SNOOZE:
        params = ActionParams(duration=args.duration, wake_at=args.until)

    async with _make_agent(settings) as agent:
        outcome = await agent.perform_action(action, args.source, args.task_id, params)

    if outcome.wake_at is not None:
        print(f"{action.value}d {outcome.source.value}/{outcome.task_id} until {outcome.wake_at.isoformat()}")
    else:
        print(f"{action.value}d {outcome.source.value}/{outcome.task_id}")
    return 0


def _cmd_snoozes(args: argparse.Namespace, settings: Settings) -> int:
    store = SnoozeStore(settings.snooze_db_path)
    store.initialize()

    if args.snoozes_command == "list":
        for record in store.list_active():
            print(f"{record.wake_at.isoformat()}\t{record.source.value}\t{record.task_id}")
        return 0

    days = args.older_than_days
    if days is None:
        days = settings.snooze_cleanup_after_days
    deleted = store.cleanup_expired(before=now_utc() - timedelta(days=days))
    print(f"Removed {deleted} expired snooze(s)")
    return 0


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    # Looked up per logger so a replaced sys.stderr is honoured.
    return structlog.PrintLogger(sys.stderr)


def _configure_logging(settings: Settings) -> None:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # Keep stdout for command output.
        logger_factory=_stderr_logger,
    )


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Worklist Agent CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, 1 for action or worklist failures,
        2 for usage and configuration errors).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()
    _configure_logging(settings)

    logger.info("worklist_agent_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    try:
        if parsed.command == "list":
            return asyncio.run(_cmd_list(parsed, settings))
        if parsed.command in ("archive", "complete", "snooze", "unsnooze"):
            return asyncio.run(_cmd_action(parsed, settings))
        if parsed.command == "snoozes":
            return _cmd_snoozes(parsed, settings)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except (DispatchError, WorklistUnavailableError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
