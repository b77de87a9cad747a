"""Tasks command for forkpath CLI."""

from forkpath.api import get_task, list_tasks
from forkpath.plugin import discover_tasks, TASKS_GROUP


def cmd_tasks_list() -> int:
    """List registered and published tasks.

    Returns:
        Exit code (0 for success).
    """
    print("Available Tasks:")
    print("-" * 40)

    published = discover_tasks()
    names = list_tasks()
    if names:
        for name in names:
            if name in published:
                source = published[name].value
            else:
                fn = get_task(name)
                source = f"{fn.__module__}:{fn.__qualname__} (registered)"
            print(f"  {name:<20} {source}")
    else:
        print("  (none found)")

    print()
    print("To publish tasks, add entry points in pyproject.toml:")
    print(f'  [project.entry-points."{TASKS_GROUP}"]')
    print('  my_task = "mypackage.jobs:my_task"')

    return 0
