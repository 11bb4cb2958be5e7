#!/usr/bin/env python3
"""deploykit command line front end.

Lists the task sequences of a store, runs a task sequence against a
(possibly restored) state, or runs a single task.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from deploykit.core.errors import BaseError, default_manager
from deploykit.core.settings import DeploykitSettings, load_settings
from deploykit.state import State
from deploykit.tasks import builtin  # noqa: F401  registers the built-in tasks
from deploykit.tasks import task_registry
from deploykit.workflow import (
    SequenceResult,
    TaskDescription,
    TaskOutcomeStatus,
    TaskSequenceFactory,
    TaskSequenceStore,
)

logger = logging.getLogger(__name__)

_OUTCOME_STYLES = {
    TaskOutcomeStatus.SUCCEEDED: "green",
    TaskOutcomeStatus.FAILED: "red",
    TaskOutcomeStatus.SKIPPED: "dim",
    TaskOutcomeStatus.NOT_ATTEMPTED: "yellow",
}


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Configure logging based on verbosity."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def parse_parameter(text: str) -> tuple[str, Any]:
    """Split ``name=value``; the value is read as JSON when possible."""
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Parameter '{text}' is not of the form name=value")
    try:
        return name.strip(), json.loads(value)
    except json.JSONDecodeError:
        return name.strip(), value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploykit",
        description="Task-sequence engine for unattended operating system deployment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the task sequences in a deployment share
  deploykit list --store ./sequences

  # Run a task sequence by ID, continuing a checkpointed run
  deploykit run 6f1c0d2e --store ./sequences --state ./deploykit-state.json --resume

  # Run a single task
  deploykit task create-directory -p path=C:/Deploy -p clean=true
""",
    )
    parser.add_argument("--config", type=Path, help="Configuration file (YAML or JSON)")
    parser.add_argument("--log-file", type=Path, help="Also write the log to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List the task sequences in a store")
    list_parser.add_argument("--store", type=Path, help="Directory holding task sequence files")

    run_parser = subparsers.add_parser("run", help="Run a task sequence")
    run_parser.add_argument("sequence", help="ID of a sequence in the store, or path of a sequence file")
    run_parser.add_argument("--store", type=Path, help="Directory holding task sequence files")
    run_parser.add_argument("--state", type=Path, help="State checkpoint to restore and update")
    run_parser.add_argument("--resume", action="store_true", help="Continue at the progress recorded in the state")
    run_parser.add_argument(
        "--no-checkpoint", dest="checkpoint", action="store_false", help="Do not save the state after the run"
    )

    task_parser = subparsers.add_parser("task", help="Run a single task")
    task_parser.add_argument("task", help="Task identifier or class name")
    task_parser.add_argument(
        "-p",
        "--parameter",
        dest="parameters",
        action="append",
        type=parse_parameter,
        default=[],
        metavar="NAME=VALUE",
        help="Task parameter (repeatable)",
    )
    task_parser.add_argument("--state", type=Path, help="State checkpoint to restore and update")

    return parser


async def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(
            args.config,
            log_file=args.log_file,
            state_file=getattr(args, "state", None),
            store={"path": getattr(args, "store", None)},
        )
    except BaseError as e:
        configure_logging("WARNING")
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.debug:
        configure_logging("DEBUG", settings.log_file)
    elif args.verbose:
        configure_logging("INFO", settings.log_file)
    else:
        configure_logging(settings.log_level, settings.log_file)

    console = Console()
    try:
        if args.command == "list":
            return await list_sequences(settings, console)
        if args.command == "run":
            return await run_sequence(args, settings, console)
        if args.command == "task":
            return await run_task(args, settings)
    except BaseError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Unexpected failure: {e}", exc_info=True)
        return 1
    return 0


async def list_sequences(settings: DeploykitSettings, console: Console) -> int:
    """Print the task sequences of the configured store."""
    store = TaskSequenceStore(settings.store)
    sequences = await store.get_task_sequences()

    table = Table(title=f"Task sequences in {store.root}")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Phase")
    table.add_column("Tasks")
    for sequence in sequences:
        name = escape(sequence.name or "")
        if sequence.description:
            name = f"{name}\n[dim]{escape(sequence.description)}[/dim]"
        table.add_row(escape(sequence.id), name, sequence.phase.label, "\n".join(t.task for t in sequence.tasks))

    console.print(table)
    return 0


async def load_state(path: Path) -> State:
    """Restore the checkpoint at ``path`` or start a fresh state recorded there."""
    if path.is_file():
        return await State.restore(path)
    state = State()
    state.state_file = str(path)
    return state


async def run_sequence(args: argparse.Namespace, settings: DeploykitSettings, console: Console) -> int:
    """Execute a task sequence and checkpoint the state."""
    store = TaskSequenceStore(settings.store) if settings.store.path is not None else None
    factory = TaskSequenceFactory(store=store)
    sequence = await factory.load_task_sequence(args.sequence)
    if sequence is None:
        logger.error(f"Task sequence '{args.sequence}' was not found")
        return 1

    state = await load_state(settings.state_file)
    if args.resume and (state.task_sequence != args.sequence or state.phase != sequence.phase):
        logger.warning("The state belongs to another task sequence or phase, starting from the beginning")
        state.progress = 0
    elif not args.resume:
        state.progress = 0
    state.phase = sequence.phase
    state.task_sequence = args.sequence

    result = await sequence.execute(state, resume=args.resume)

    if args.checkpoint:
        await state.save()
    print_result(result, console)
    return 0 if result.succeeded else 1


def print_result(result: SequenceResult, console: Console) -> None:
    table = Table(title=f"Task sequence {result.status.value}")
    table.add_column("#", justify="right")
    table.add_column("Task", style="bold")
    table.add_column("Critical")
    table.add_column("Outcome")
    table.add_column("Error")
    for outcome in result.outcomes:
        style = _OUTCOME_STYLES[outcome.status]
        table.add_row(
            str(outcome.index),
            escape(outcome.name),
            "yes" if outcome.critical else "no",
            f"[{style}]{outcome.status.value}[/{style}]",
            escape(outcome.error or ""),
        )
    console.print(table)


async def run_task(args: argparse.Namespace, settings: DeploykitSettings) -> int:
    """Execute a single task with parameters from the command line."""
    registration = task_registry.resolve(args.task)
    task = TaskDescription(task=registration.task_id, parameters=dict(args.parameters)).to_task()

    state = await load_state(settings.state_file) if args.state else State()
    logger.info(f'Running task "{task.name}"')
    async with default_manager.error_boundary(component="deploykit_cli", operation="task", task_name=task.name):
        await task.execute(state)
    logger.info(f'Task "{task.name}" completed')

    if args.state:
        await state.save()
    return 0


def run() -> None:
    """Console script entry point."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    run()
