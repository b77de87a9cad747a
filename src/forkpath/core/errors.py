"""Error types raised by forkpath.

Hierarchy:
    ForkpathError
    ├── ConfigurationError       wrong platform, bad work function, wrong-role call
    └── TransportError           low-level read/write failure
        ├── TransportCreationError   socket pair could not be created
        └── TransportOverflowError   encoded message larger than the frame
"""

from typing import Optional


class ForkpathError(Exception):
    """Base class for all forkpath errors."""

    pass


class ConfigurationError(ForkpathError):
    """Raised before any process is spawned or any blocking call is made.

    Covers a platform without fork support, a work function that does not
    declare a boolean return, and calls made from the wrong role (for
    example ``wait_all()`` on a synchronous orchestrator).
    """

    pass


class TransportError(ForkpathError):
    """Low-level failure reading from or writing to a transport."""

    pass


class TransportCreationError(TransportError):
    """The connected socket pair backing a channel could not be created."""

    pass


class TransportOverflowError(TransportError):
    """An encoded message does not fit in the transport's frame.

    Attributes:
        size: Encoded size of the rejected message in bytes.
        frame_size: Frame size of the transport in bytes.
    """

    def __init__(
        self,
        message: str,
        size: Optional[int] = None,
        frame_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.size = size
        self.frame_size = frame_size


__all__ = [
    "ForkpathError",
    "ConfigurationError",
    "TransportError",
    "TransportCreationError",
    "TransportOverflowError",
]
