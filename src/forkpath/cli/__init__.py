"""CLI entry point for forkpath.

Provides command-line interface for:
- Running tasks from YAML config
- Launching a single work function ad hoc
- Validating configuration files
- Listing available tasks
- Displaying version information

Usage:
    forkpath run -c tasks.yaml
    forkpath run -c tasks.yaml --dry-run
    forkpath exec mypkg.jobs:resize photo.jpg -n 4
    forkpath validate -c tasks.yaml
    forkpath tasks list
    forkpath version
"""

import argparse
import logging
import sys
from typing import List, Optional


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="forkpath",
        description="Run work functions in forked processes",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run tasks from configuration",
    )
    run_parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to YAML configuration file",
    )
    run_parser.add_argument(
        "--task",
        help="Specific task to run (default: all)",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and show what would run without executing",
    )

    # exec command
    exec_parser = subparsers.add_parser(
        "exec",
        help="Launch a work function directly",
    )
    exec_parser.add_argument(
        "function",
        help="Work function as 'package.module:callable' or a task name",
    )
    exec_parser.add_argument(
        "args",
        nargs="*",
        help="Arguments for the work function (JSON values or plain strings)",
    )
    exec_parser.add_argument(
        "-n", "--count",
        type=int,
        default=1,
        help="Number of workers to launch (default: 1)",
    )
    exec_parser.add_argument(
        "--with-index",
        action="store_true",
        help="Append the worker index as the last argument",
    )
    exec_parser.add_argument(
        "--sync",
        action="store_true",
        help="Wait for each worker before launching the next",
    )
    exec_parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Run inline without forking",
    )
    exec_parser.add_argument(
        "-b", "--buffer",
        type=int,
        default=1024,
        help="Message buffer (frame size) in bytes (default: 1024)",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a configuration file",
    )
    validate_parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to YAML configuration file",
    )
    validate_parser.add_argument(
        "--check-tasks",
        action="store_true",
        help="Also verify that referenced work functions can be loaded",
    )

    # tasks command
    tasks_parser = subparsers.add_parser(
        "tasks",
        help="Inspect available tasks",
    )
    tasks_subparsers = tasks_parser.add_subparsers(
        dest="tasks_command",
        help="Task commands",
    )
    tasks_subparsers.add_parser(
        "list",
        help="List registered and published tasks",
    )

    # version command
    subparsers.add_parser(
        "version",
        help="Show version information",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # Handle --version flag at top level
    if args.version:
        from forkpath.cli.commands.version import cmd_version
        return cmd_version()

    if args.command is None:
        parser.print_help()
        return 0

    # Dispatch to command handlers
    if args.command == "run":
        from forkpath.cli.commands.run import cmd_run
        return cmd_run(
            config_path=args.config,
            task_name=args.task,
            dry_run=args.dry_run,
        )

    elif args.command == "exec":
        from forkpath.cli.commands.exec import cmd_exec
        return cmd_exec(
            function=args.function,
            args=args.args,
            count=args.count,
            with_index=args.with_index,
            sync=args.sync,
            debug=args.debug,
            buffer=args.buffer,
        )

    elif args.command == "validate":
        from forkpath.cli.commands.validate import cmd_validate
        return cmd_validate(
            config_path=args.config,
            check_tasks=args.check_tasks,
        )

    elif args.command == "tasks":
        if args.tasks_command == "list":
            from forkpath.cli.commands.tasks import cmd_tasks_list
            return cmd_tasks_list()
        else:
            parser.parse_args(["tasks", "--help"])
            return 0

    elif args.command == "version":
        from forkpath.cli.commands.version import cmd_version
        return cmd_version()

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
