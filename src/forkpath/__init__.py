"""forkpath - Run work functions in forked processes and collect their messages.

Quick Start:
    >>> import forkpath as fp
    >>>
    >>> def count_lines(channel, path: str) -> bool:
    ...     with open(path) as f:
    ...         channel.send({"path": path, "lines": sum(1 for _ in f)})
    ...     return True
    >>>
    >>> orchestrator = fp.Orchestrator(count_lines)
    >>> for path in ["a.txt", "b.txt"]:
    ...     orchestrator.run(path)
    >>> orchestrator.wait_all()
    True
    >>> list(orchestrator.get_messages())  # launch order
    [{'path': 'a.txt', 'lines': 12}, {'path': 'b.txt', 'lines': 3}]

For advanced usage, see:
- forkpath.process: Orchestrator, Channel, Transport
- forkpath.core: message encoding, outcomes, errors
- forkpath.config: YAML task configuration
"""

from importlib.metadata import PackageNotFoundError, version as _dist_version

try:
    __version__ = _dist_version("forkpath")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"

# =============================================================================
# High-level API (recommended)
# =============================================================================
from forkpath.api import (
    task,
    get_task,
    list_tasks,
    spawn,
)

# =============================================================================
# Core exports
# =============================================================================
from forkpath.core.errors import (
    ForkpathError,
    ConfigurationError,
    TransportError,
    TransportCreationError,
    TransportOverflowError,
)
from forkpath.core.outcome import Outcome, ProcessResult
from forkpath.process.channel import Channel
from forkpath.process.orchestrator import Orchestrator
from forkpath.process.transport import DEFAULT_FRAME_SIZE, Transport

__all__ = [
    # High-level API
    "task",
    "get_task",
    "list_tasks",
    "spawn",
    # Process
    "Orchestrator",
    "Channel",
    "Transport",
    "DEFAULT_FRAME_SIZE",
    # Outcomes
    "Outcome",
    "ProcessResult",
    # Errors
    "ForkpathError",
    "ConfigurationError",
    "TransportError",
    "TransportCreationError",
    "TransportOverflowError",
]
