"""Task discovery and loading.

Resolves work functions from import paths, the in-process registry and
the `forkpath.tasks` entry point group.
"""

from forkpath.plugin.discovery import (
    discover_tasks,
    load_task,
    import_callable,
    resolve_task,
    TASKS_GROUP,
)

__all__ = [
    "discover_tasks",
    "load_task",
    "import_callable",
    "resolve_task",
    "TASKS_GROUP",
]
