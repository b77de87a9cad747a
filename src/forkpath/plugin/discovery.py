"""Task discovery for forkpath.

Work functions can be published by other distributions under the
`forkpath.tasks` entry point group in their pyproject.toml:

```toml
[project.entry-points."forkpath.tasks"]
thumbnail = "media.jobs:make_thumbnail"
```

Example:
    >>> from forkpath.plugin import discover_tasks, resolve_task
    >>>
    >>> for name in discover_tasks():
    ...     print(f"Found task: {name}")
    >>>
    >>> work_fn = resolve_task("thumbnail")
    >>> work_fn = resolve_task("media.jobs:make_thumbnail")
"""

import importlib
from importlib.metadata import entry_points
from typing import Any, Callable, Dict

# Entry point group name
TASKS_GROUP = "forkpath.tasks"


def _get_entry_points(group: str) -> Dict[str, Any]:
    """Get entry points for a group, keyed by name."""
    return {ep.name: ep for ep in entry_points(group=group)}


def discover_tasks() -> Dict[str, Any]:
    """Discover all work functions published as entry points.

    Returns:
        Dict mapping task names to their entry points.
    """
    return _get_entry_points(TASKS_GROUP)


def load_task(name: str) -> Callable[..., bool]:
    """Load a published work function by name.

    Raises:
        KeyError: If no task with the given name is published.
        ImportError: If the task cannot be loaded.
    """
    tasks = discover_tasks()
    if name not in tasks:
        raise KeyError(
            f"No task registered with name '{name}'. "
            f"Available: {list(tasks.keys())}"
        )
    return tasks[name].load()


def import_callable(path: str) -> Callable[..., bool]:
    """Import a callable from a "package.module:attribute" path.

    Dotted attributes after the colon are followed, so
    "pkg.mod:Jobs.resize" works for static methods.

    Raises:
        ValueError: If the path is malformed.
        ImportError: If the module cannot be imported.
        AttributeError: If the attribute does not exist.
    """
    module_name, _, attr_path = path.partition(":")
    if not module_name or not attr_path:
        raise ValueError(
            f"Invalid function path '{path}'. Expected 'package.module:callable'"
        )

    obj: Any = importlib.import_module(module_name)
    for attr in attr_path.split("."):
        obj = getattr(obj, attr)
    return obj


def resolve_task(ref: str) -> Callable[..., bool]:
    """Resolve a task reference to a work function.

    Lookup order:
    1. "module:attr" import path
    2. Tasks registered in-process with forkpath.task()
    3. Tasks published under the forkpath.tasks entry point group

    Raises:
        KeyError: If a bare name is neither registered nor published.
    """
    if ":" in ref:
        return import_callable(ref)

    from forkpath.api import get_task
    registered = get_task(ref)
    if registered is not None:
        return registered

    return load_task(ref)
