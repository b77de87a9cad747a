"""Core types for forkpath.

- Message encoding: encode_message, decode_message, MessageType
- Outcomes: Outcome, ProcessResult and the exit-code convention
- Errors: ConfigurationError and the transport error family
"""

from forkpath.core.errors import (
    ForkpathError,
    ConfigurationError,
    TransportError,
    TransportCreationError,
    TransportOverflowError,
)
from forkpath.core.message import (
    MessageType,
    serialize_value,
    encode_message,
    decode_message,
    encoded_size,
)
from forkpath.core.outcome import (
    EXIT_SUCCESS,
    EXIT_FAILURE,
    EXIT_ERROR,
    Outcome,
    ProcessResult,
)

__all__ = [
    # Errors
    "ForkpathError",
    "ConfigurationError",
    "TransportError",
    "TransportCreationError",
    "TransportOverflowError",
    # Messages
    "MessageType",
    "serialize_value",
    "encode_message",
    "decode_message",
    "encoded_size",
    # Outcomes
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
    "EXIT_ERROR",
    "Outcome",
    "ProcessResult",
]
