"""High-level API for forkpath.

Quick Start:
    >>> import forkpath as fp
    >>>
    >>> @fp.task("resize")
    ... def resize(channel, path: str) -> bool:
    ...     channel.send({"path": path, "ok": True})
    ...     return True
    >>>
    >>> # Fire and forget, then collect
    >>> orchestrator = fp.spawn(resize, "a.jpg")
    >>> orchestrator.run("b.jpg")
    >>> orchestrator.wait_all()
    True
"""

from typing import Any, Dict, List, Optional

from forkpath.process.orchestrator import (
    Orchestrator,
    WorkFunction,
    check_work_function,
)
from forkpath.process.transport import DEFAULT_FRAME_SIZE


# =============================================================================
# Registry
# =============================================================================

_task_registry: Dict[str, WorkFunction] = {}


def task(name: str):
    """Decorator to register a work function under a name.

    The function is validated when decorated and returned unchanged, so it
    can still be called or passed to an Orchestrator directly.

    Raises:
        ConfigurationError: If the function does not declare ``-> bool``.

    Example:
        >>> @fp.task("ping")
        ... def ping(channel) -> bool:
        ...     channel.send("pong")
        ...     return True
    """
    def decorator(fn: WorkFunction) -> WorkFunction:
        check_work_function(fn)
        _task_registry[name] = fn
        return fn

    return decorator


def get_task(name: str) -> Optional[WorkFunction]:
    """Get a work function registered with task(), or None."""
    return _task_registry.get(name)


def list_tasks() -> List[str]:
    """List registered and published task names."""
    names = list(_task_registry.keys())

    from forkpath.plugin import discover_tasks
    names.extend(discover_tasks().keys())

    return sorted(set(names))


# =============================================================================
# Launching
# =============================================================================


def spawn(
    work_fn: WorkFunction,
    *args: Any,
    debug: bool = False,
    message_buffer: int = DEFAULT_FRAME_SIZE,
) -> Orchestrator:
    """Run a work function asynchronously and hand back its orchestrator.

    Further runs can be launched on the returned orchestrator; collect
    them all with wait_all().

    Args:
        work_fn: Work function ``work_fn(channel, *args) -> bool``.
        *args: Arguments for the first run.
        debug: Run inline instead of forking.
        message_buffer: Frame size in bytes.

    Returns:
        The async Orchestrator that launched the run.
    """
    orchestrator = Orchestrator(work_fn, async_mode=True)
    orchestrator.set_debug(debug)
    orchestrator.set_message_buffer(message_buffer)
    orchestrator.run(*args)
    return orchestrator
