"""Process launching and inter-process messaging.

Components:
- Transport: fixed-frame endpoint over one half of a socket pair
- Channel: worker → launcher message path owning both transports
- Orchestrator: forks workers, waits on them and collects their messages
"""

from forkpath.process.transport import (
    DEFAULT_FRAME_SIZE,
    Transport,
)
from forkpath.process.channel import (
    Channel,
    MessageOwner,
)
from forkpath.process.orchestrator import (
    Orchestrator,
    WorkFunction,
    check_work_function,
    is_supported,
)

__all__ = [
    # Transport
    "DEFAULT_FRAME_SIZE",
    "Transport",
    # Channel
    "Channel",
    "MessageOwner",
    # Orchestrator
    "Orchestrator",
    "WorkFunction",
    "check_work_function",
    "is_supported",
]
