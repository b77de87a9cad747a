"""Exec command: launch a work function straight from the command line.

Usage:
    forkpath exec mypkg.jobs:resize photo.jpg
    forkpath exec mypkg.jobs:shard 8 -n 8 --with-index
    forkpath exec mypkg.jobs:resize photo.jpg --debug
"""

import json
import sys
from typing import Any, List

from forkpath.cli.commands.run import execute_runs
from forkpath.core.errors import ForkpathError
from forkpath.process.orchestrator import Orchestrator


def parse_arg(raw: str) -> Any:
    """Interpret a command-line argument as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def cmd_exec(
    function: str,
    args: List[str],
    count: int = 1,
    with_index: bool = False,
    sync: bool = False,
    debug: bool = False,
    buffer: int = 1024,
) -> int:
    """Launch ``count`` workers running one function.

    Returns:
        Exit code (0 if every worker succeeded, 1 otherwise).
    """
    from forkpath.plugin import resolve_task

    if count < 1:
        print(f"Error: --count must be at least 1, got {count}", file=sys.stderr)
        return 1

    try:
        work_fn = resolve_task(function)
    except (ImportError, AttributeError, KeyError, ValueError) as e:
        print(f"Error: cannot load '{function}': {e}", file=sys.stderr)
        return 1

    parsed = [parse_arg(a) for a in args]
    runs = [parsed + [i] if with_index else list(parsed) for i in range(count)]

    try:
        orchestrator = Orchestrator(work_fn, async_mode=not sync)
        orchestrator.set_debug(debug)
        orchestrator.set_message_buffer(buffer)
        succeeded = execute_runs(orchestrator, runs)
    except ForkpathError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0 if succeeded else 1
