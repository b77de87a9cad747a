"""Validate command for forkpath CLI."""

import sys
from pathlib import Path

from forkpath.config import load_yaml_config, ConfigLoadError
from forkpath.core.errors import ConfigurationError
from forkpath.process.orchestrator import check_work_function


def cmd_validate(config_path: str, check_tasks: bool = False) -> int:
    """Validate a configuration file.

    Args:
        config_path: Path to the YAML configuration file.
        check_tasks: Whether to load every work function and check its contract.

    Returns:
        Exit code (0 for success, 1 for validation errors).
    """
    path = Path(config_path)

    if not path.exists():
        print(f"Error: Configuration file not found: {path}", file=sys.stderr)
        return 1

    print(f"Validating: {path}")

    try:
        config = load_yaml_config(path)
    except ConfigLoadError as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1

    print(f"  Version: {config.version}")
    print(f"  Tasks: {len(config.tasks)}")

    for task_name, task in config.tasks.items():
        mode = "debug" if task.debug else task.mode
        print(f"\n  Task '{task_name}':")
        print(f"    Function: {task.function} ({mode})")
        print(f"    Runs: {len(task.runs)}, buffer: {task.message_buffer} bytes")
        print(f"    Observability: {task.observability.level}")

    if check_tasks:
        from forkpath.plugin import resolve_task

        print("\nChecking work functions...")
        errors = []
        for task_name, task in config.tasks.items():
            try:
                check_work_function(resolve_task(task.function))
            except (ImportError, AttributeError, KeyError, ValueError) as e:
                errors.append(f"Task '{task_name}': cannot load '{task.function}': {e}")
            except ConfigurationError as e:
                errors.append(f"Task '{task_name}': {e}")

        if errors:
            print("\nTask errors:", file=sys.stderr)
            for err in errors:
                print(f"  - {err}", file=sys.stderr)
            return 1
        print("  All work functions available")

    print("\nConfiguration is valid.")
    return 0
