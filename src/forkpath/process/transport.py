"""Fixed-frame transport over one end of a connected socket pair.

Every message travels as exactly one frame of ``frame_size`` bytes: the
UTF-8 encoded message right-padded with ASCII spaces. A message that does
not fit is rejected before anything is written, so a frame is never sent
partially.

Example:
    >>> a, b = socket.socketpair()
    >>> sender, receiver = Transport(a, 64), Transport(b, 64)
    >>> sender.send({"progress": 0.5})
    True
    >>> receiver.receive()
    {'progress': 0.5}
"""

import logging
import socket
from typing import Any, Optional

from forkpath.core.errors import TransportError, TransportOverflowError
from forkpath.core.message import decode_message, encode_message

logger = logging.getLogger(__name__)

DEFAULT_FRAME_SIZE = 1024
PADDING = b" "
DISCARD_CHUNK = 65536


class Transport:
    """One endpoint of a duplex byte stream with a fixed frame size.

    Args:
        sock: A connected socket, typically one half of socket.socketpair().
        frame_size: Size of every frame in bytes.
    """

    def __init__(self, sock: socket.socket, frame_size: int = DEFAULT_FRAME_SIZE):
        if frame_size <= 0:
            raise ValueError(f"frame_size must be positive, got {frame_size}")
        self._sock = sock
        self._frame_size = frame_size
        self._closed = False
        # Bytes of the first frame read ahead by pump()
        self._pending = bytearray()

    @property
    def frame_size(self) -> int:
        return self._frame_size

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self._sock.fileno()

    def encode(self, value: Any) -> str:
        return encode_message(value)

    def decode(self, text: str) -> Any:
        return decode_message(text)

    def frame(self, value: Any) -> bytes:
        """Encode and pad a value into one frame.

        Raises:
            TransportOverflowError: If the encoded value exceeds the frame size.
        """
        payload = self.encode(value).encode("utf-8")
        if len(payload) > self._frame_size:
            raise TransportOverflowError(
                f"Tried to send {len(payload)} bytes, larger than the frame size "
                f"of {self._frame_size} bytes. Use a larger message buffer to "
                f"send this data",
                size=len(payload),
                frame_size=self._frame_size,
            )
        return payload.ljust(self._frame_size, PADDING)

    def send(self, value: Any) -> bool:
        """Send one message as a full frame.

        Args:
            value: Message value (string, mapping, list, number, bool or None).

        Returns:
            True once the whole frame has been written.

        Raises:
            TransportOverflowError: If the message does not fit in a frame.
            TransportError: If the transport is closed or the write fails.
        """
        data = self.frame(value)
        if self._closed:
            raise TransportError("Cannot send on a closed transport")
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Failed to write frame: {e}") from e
        logger.debug(f"Sent frame of {self._frame_size} bytes on fd {self.fileno()}")
        return True

    def receive(self, default: Any = None) -> Any:
        """Read one frame without blocking.

        Args:
            default: Returned when no data is available.

        Returns:
            The decoded message, or ``default`` if nothing was waiting.

        Raises:
            TransportError: If the transport is closed or the read fails.
        """
        if self._closed:
            raise TransportError("Cannot receive on a closed transport")

        while len(self._pending) < self._frame_size:
            chunk = self._recv(self._frame_size - len(self._pending))
            if not chunk:
                break
            self._pending += chunk

        if not self._pending:
            return default

        data = bytes(self._pending)
        self._pending.clear()
        logger.debug(f"Received {len(data)} bytes on fd {self.fileno()}")
        return self.decode(data.decode("utf-8", errors="replace"))

    def pump(self) -> Optional[int]:
        """Move waiting bytes off the socket without blocking.

        Bytes of the first frame are kept for the next receive(). Anything
        after a complete frame is read and dropped, so a writer blocked on
        a full socket buffer can finish.

        Returns:
            Number of bytes read, or None once the peer has closed.

        Raises:
            TransportError: If the transport is closed or the read fails.
        """
        if self._closed:
            raise TransportError("Cannot read from a closed transport")

        total = 0
        while True:
            wanted = self._frame_size - len(self._pending)
            chunk = self._recv(wanted if wanted > 0 else DISCARD_CHUNK)
            if chunk is None:
                return total
            if not chunk:
                return total or None
            total += len(chunk)
            if wanted > 0:
                self._pending += chunk

    def _recv(self, size: int) -> Optional[bytes]:
        """Non-blocking read. None if nothing is waiting, b"" at end of stream."""
        try:
            return self._sock.recv(size, socket.MSG_DONTWAIT)
        except BlockingIOError:
            return None
        except OSError as e:
            raise TransportError(f"Failed to read frame: {e}") from e

    def close(self) -> None:
        """Release the underlying socket.

        Raises:
            TransportError: If the transport was already closed.
        """
        if self._closed:
            raise TransportError("Transport is already closed")
        self._closed = True
        self._sock.close()


__all__ = [
    "DEFAULT_FRAME_SIZE",
    "Transport",
]
