"""Run command for forkpath CLI."""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

from forkpath.config import ConfigLoadError, SinkSchema, TaskSchema, load_yaml_config
from forkpath.core.errors import ForkpathError
from forkpath.observability import (
    ConsoleSink,
    FileSink,
    MemorySink,
    NullSink,
    Sink,
    TraceLevel,
)
from forkpath.process.orchestrator import Orchestrator


def cmd_run(
    config_path: str,
    task_name: Optional[str] = None,
    dry_run: bool = False,
) -> int:
    """Run tasks from configuration.

    Args:
        config_path: Path to the YAML configuration file.
        task_name: Specific task to run (None for all).
        dry_run: If True, validate and show what would run without executing.

    Returns:
        Exit code (0 if every worker succeeded, 1 otherwise).
    """
    path = Path(config_path)

    if not path.exists():
        print(f"Error: Configuration file not found: {path}", file=sys.stderr)
        return 1

    try:
        config = load_yaml_config(path)
    except ConfigLoadError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if task_name:
        if task_name not in config.tasks:
            print(
                f"Error: Task '{task_name}' not found. "
                f"Available: {list(config.tasks.keys())}",
                file=sys.stderr,
            )
            return 1
        tasks_to_run = {task_name: config.tasks[task_name]}
    else:
        tasks_to_run = config.tasks

    if dry_run:
        return _dry_run(tasks_to_run)
    else:
        return _execute(tasks_to_run)


def _dry_run(tasks: Dict[str, TaskSchema]) -> int:
    """Show what would be executed without running."""
    print("Dry run - showing execution plan:")
    print("=" * 50)

    for name, task in tasks.items():
        print(f"\nTask: {name}")
        print("-" * 40)
        print(f"  Function: {task.function}")
        print(f"  Mode: {'debug (inline)' if task.debug else task.mode}")
        print(f"  Message buffer: {task.message_buffer} bytes")
        print(f"  Runs: {len(task.runs)}")
        for i, run_args in enumerate(task.runs, 1):
            print(f"    {i}. {run_args}")
        print(f"  Observability: {task.observability.level}")

    print("\n" + "=" * 50)
    print("Dry run complete. No workers were launched.")
    return 0


def print_messages(orchestrator: Orchestrator, stream: Optional[TextIO] = None) -> None:
    """Print collected messages, one JSON document per line."""
    stream = stream or sys.stdout
    for message in orchestrator.get_messages():
        stream.write(json.dumps(message, default=str) + "\n")
    stream.flush()


def execute_runs(
    orchestrator: Orchestrator,
    runs: Sequence[Sequence[Any]],
    stream: Optional[TextIO] = None,
) -> bool:
    """Launch one run per argument list and print the messages.

    Sync and debug orchestrators print and clear messages after every run.
    Async orchestrators launch everything, then wait and print in launch
    order.

    Returns:
        True if every run succeeded.
    """
    if orchestrator.debug or not orchestrator.async_mode:
        succeeded = True
        for run_args in runs:
            if not orchestrator.run(*run_args):
                succeeded = False
            print_messages(orchestrator, stream)
            orchestrator.clear_messages()
        return succeeded

    for run_args in runs:
        orchestrator.run(*run_args)
    succeeded = orchestrator.wait_all()
    print_messages(orchestrator, stream)
    return succeeded


def print_exit_stats(task_name: str, sink: MemorySink) -> None:
    """Summarize the exit records held by a memory sink on stderr."""
    stats = sink.get_exit_stats()
    if not stats:
        return
    print(
        f"Task '{task_name}': {stats['count']} exits, {stats['failed']} failed, "
        f"{stats['signaled']} signaled, max wait {stats['max_wait_ms']:.0f}ms",
        file=sys.stderr,
    )


def build_sink(config: SinkSchema) -> Sink:
    """Create the sink described by one observability sink entry."""
    if config.type == "file":
        return FileSink(config.path, **config.options)
    if config.type == "console":
        return ConsoleSink(**config.options)
    if config.type == "memory":
        return MemorySink(**config.options)
    return NullSink()


def _execute(tasks: Dict[str, TaskSchema]) -> int:
    """Execute the tasks.

    Returns:
        Exit code (0 if every worker succeeded, 1 otherwise).
    """
    from forkpath.observability import ObservabilityHub
    from forkpath.plugin import resolve_task

    # Resolve all work functions first
    work_fns = {}
    errors: List[str] = []
    for name, task in tasks.items():
        try:
            work_fns[name] = resolve_task(task.function)
        except (ImportError, AttributeError, KeyError, ValueError) as e:
            errors.append(f"Task '{name}': cannot load '{task.function}': {e}")

    if errors:
        print("Task errors:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        return 1

    all_succeeded = True
    for name, task in tasks.items():
        print(f"Running task: {name}", file=sys.stderr)

        hub = ObservabilityHub.get_instance()
        sinks = [build_sink(s) for s in task.observability.sinks]
        hub.configure(
            level=TraceLevel.from_string(task.observability.level),
            sinks=sinks,
        )

        try:
            orchestrator = task.build_orchestrator(work_fns[name])
            if not execute_runs(orchestrator, task.runs):
                print(f"Task '{name}': one or more workers failed", file=sys.stderr)
                all_succeeded = False
        except ForkpathError as e:
            print(f"Error running task '{name}': {e}", file=sys.stderr)
            return 1
        finally:
            for sink in sinks:
                if isinstance(sink, MemorySink):
                    print_exit_stats(name, sink)
            hub.shutdown()

    return 0 if all_succeeded else 1
