"""Message encoding shared by the worker and the launcher.

A message is a tagged value: string, mapping, list, number, boolean or
null. Strings travel as raw UTF-8 text; every other value is rendered as
JSON. Decoding strips trailing padding and tries JSON first, falling back
to the raw text, so a string that happens to look like JSON (``"42"``,
``"true"``, ``"null"``) comes back as the JSON value it resembles.

Example:
    >>> encode_message({"done": 3})
    '{"done": 3}'
    >>> decode_message('{"done": 3}   ')
    {'done': 3}
    >>> decode_message("ok   ")
    'ok'
"""

import json
from enum import Enum
from typing import Any


class MessageType(Enum):
    """Tag of a message value."""

    STRING = "string"
    MAPPING = "mapping"
    LIST = "list"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"

    @classmethod
    def of(cls, value: Any) -> "MessageType":
        """Classify a decoded message value.

        Args:
            value: A value as returned by decode_message().

        Returns:
            The matching MessageType.

        Raises:
            TypeError: If the value is not one of the message types.
        """
        # bool before int: bool is a subclass of int
        if value is None:
            return cls.NULL
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, (int, float)):
            return cls.NUMBER
        if isinstance(value, str):
            return cls.STRING
        if isinstance(value, dict):
            return cls.MAPPING
        if isinstance(value, (list, tuple)):
            return cls.LIST
        raise TypeError(f"Not a message value: {type(value).__name__}")


def serialize_value(value: Any) -> Any:
    """Recursively convert a value into something json.dumps accepts.

    Handles dataclasses, lists, tuples and dicts. Falls back to repr()
    for objects with __dict__ and str() for everything else.

    Args:
        value: Any value to serialize.

    Returns:
        JSON-serializable representation.
    """
    if value is None:
        return None

    # Fast path: already JSON-serializable
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        pass

    if hasattr(value, "__dataclass_fields__"):
        return {
            k: serialize_value(getattr(value, k))
            for k in value.__dataclass_fields__
        }

    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]

    if isinstance(value, dict):
        return {str(k): serialize_value(v) for k, v in value.items()}

    if hasattr(value, "__dict__"):
        return repr(value)

    return str(value)


def encode_message(value: Any) -> str:
    """Encode a message value as text.

    Strings pass through unchanged; everything else becomes JSON.

    Args:
        value: The message value.

    Returns:
        Encoded text (not yet padded).
    """
    if isinstance(value, str):
        return value
    return json.dumps(serialize_value(value), ensure_ascii=False)


def decode_message(text: str) -> Any:
    """Decode text produced by encode_message().

    Trailing whitespace (frame padding) is stripped first. Valid JSON is
    returned as the parsed value, anything else as the stripped text.

    Args:
        text: Received text, possibly padded.

    Returns:
        The decoded message value.
    """
    text = text.rstrip()
    try:
        return json.loads(text)
    except ValueError:
        return text


def encoded_size(value: Any) -> int:
    """Size in bytes of a value's encoded UTF-8 form."""
    return len(encode_message(value).encode("utf-8"))


__all__ = [
    "MessageType",
    "serialize_value",
    "encode_message",
    "decode_message",
    "encoded_size",
]
