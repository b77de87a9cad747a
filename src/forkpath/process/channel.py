"""One-way message channel from a worker process back to its launcher.

A Channel owns both halves of a connected socket pair. After the fork the
worker only writes to the worker-side transport and the launcher only
reads from the launcher-side transport.

In debug mode the owner runs the work function inline, and ``send()``
skips the socket entirely: the value goes through the same encode/decode
round trip and lands directly in the owner's message list.
"""

import logging
import socket
from typing import Any, Optional, Protocol

from forkpath.core.errors import TransportCreationError
from forkpath.process.transport import DEFAULT_FRAME_SIZE, Transport

logger = logging.getLogger(__name__)


class MessageOwner(Protocol):
    """What a Channel needs from the orchestrator that created it."""

    @property
    def debug(self) -> bool:
        ...

    def add_message(self, value: Any) -> None:
        ...


def _socket_family() -> int:
    # AF_UNIX where available, loopback TCP otherwise
    return getattr(socket, "AF_UNIX", socket.AF_INET)


class Channel:
    """Connected pair of transports sharing one frame size.

    Args:
        owner: Orchestrator consulted for debug mode and debug delivery.
            A channel without an owner always uses the socket.
        frame_size: Frame size in bytes for both transports.

    Raises:
        TransportCreationError: If the socket pair cannot be created.
    """

    def __init__(
        self,
        owner: Optional[MessageOwner] = None,
        frame_size: int = DEFAULT_FRAME_SIZE,
    ):
        self._owner = owner
        try:
            launcher_sock, worker_sock = socket.socketpair(
                _socket_family(), socket.SOCK_STREAM
            )
        except OSError as e:
            raise TransportCreationError(f"Socket pair failed to create: {e}") from e

        self._launcher = Transport(launcher_sock, frame_size)
        self._worker = Transport(worker_sock, frame_size)
        self._closed = False

    @property
    def frame_size(self) -> int:
        return self._launcher.frame_size

    @property
    def launcher_transport(self) -> Transport:
        return self._launcher

    @property
    def worker_transport(self) -> Transport:
        return self._worker

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, value: Any) -> bool:
        """Send a message from the worker side.

        Raises:
            TransportOverflowError: If the message does not fit in a frame.
                Checked in debug mode too.
        """
        if self._owner is not None and self._owner.debug:
            frame = self._worker.frame(value)
            self._owner.add_message(self._worker.decode(frame.decode("utf-8")))
            return True

        return self._worker.send(value)

    def receive(self, default: Any = None) -> Any:
        """Read a pending message on the launcher side without blocking."""
        return self._launcher.receive(default)

    def release_worker_side(self) -> None:
        """Close the worker-side transport in the launcher after a fork.

        The worker keeps its own copy. Once every copy is closed the
        launcher side sees end of stream when the worker exits.
        """
        if not self._worker.closed:
            self._worker.close()

    def close(self) -> None:
        """Close both transports. Calling it again is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._launcher.close()
        self.release_worker_side()

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = [
    "MessageOwner",
    "Channel",
]
