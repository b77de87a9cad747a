"""Tests for message encoding and decoding."""

from dataclasses import dataclass

import pytest

from forkpath.core.message import (
    MessageType,
    decode_message,
    encode_message,
    encoded_size,
    serialize_value,
)


@dataclass
class Point:
    x: int
    y: int


# =============================================================================
# Encoding Tests
# =============================================================================


class TestEncodeMessage:
    """Tests for encode_message()."""

    def test_string_passes_through(self):
        """Strings are sent raw, not JSON-quoted."""
        assert encode_message("hello") == "hello"

    def test_mapping_is_json(self):
        assert encode_message({"a": 1, "b": [1, 2]}) == '{"a": 1, "b": [1, 2]}'

    def test_scalars_are_json(self):
        """Non-string scalars use their JSON spelling."""
        assert encode_message(True) == "true"
        assert encode_message(False) == "false"
        assert encode_message(None) == "null"
        assert encode_message(42) == "42"
        assert encode_message(1.5) == "1.5"

    def test_tuple_becomes_list(self):
        assert encode_message((1, 2)) == "[1, 2]"

    def test_dataclass_becomes_mapping(self):
        assert encode_message(Point(1, 2)) == '{"x": 1, "y": 2}'

    def test_unicode_kept_as_utf8(self):
        """Non-ASCII text is not escaped, so the byte size reflects UTF-8."""
        assert encode_message(["é"]) == '["é"]'
        assert encoded_size(["é"]) == 5

    def test_encoded_size_counts_bytes(self):
        assert encoded_size("abc") == 3
        assert encoded_size("ééé") == 6


class TestSerializeValue:
    """Tests for serialize_value()."""

    def test_json_values_unchanged(self):
        value = {"a": [1, 2.0, None, True]}
        assert serialize_value(value) is value

    def test_nested_dataclass(self):
        assert serialize_value({"p": Point(3, 4)}) == {"p": {"x": 3, "y": 4}}

    def test_set_falls_back_to_str(self):
        assert serialize_value({1}) == "{1}"


# =============================================================================
# Decoding Tests
# =============================================================================


class TestDecodeMessage:
    """Tests for decode_message()."""

    def test_padding_is_stripped(self):
        assert decode_message("ok" + " " * 30) == "ok"

    def test_json_mapping(self):
        assert decode_message('{"a": 1}   ') == {"a": 1}

    def test_invalid_json_returned_verbatim(self):
        assert decode_message("not json {") == "not json {"

    def test_leading_whitespace_kept_on_raw_text(self):
        """Only trailing padding is removed."""
        assert decode_message("  indented  ") == "  indented"

    @pytest.mark.parametrize(
        "value",
        [
            {"a": 1, "nested": {"b": [1, 2, 3]}},
            [1, "two", 3.0, None, False],
            0,
            -17,
            2.25,
            True,
            False,
            None,
            "plain text",
            "ünïcödé",
        ],
    )
    def test_round_trip(self, value):
        """decode(encode(v)) == v for message values."""
        decoded = decode_message(encode_message(value))
        assert decoded == value
        assert type(decoded) is type(value)

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("42", 42),
            ("1.5", 1.5),
            ("true", True),
            ("null", None),
            ("[1]", [1]),
        ],
    )
    def test_json_looking_strings_are_reinterpreted(self, text, expected):
        """A string that parses as JSON comes back as the JSON value."""
        decoded = decode_message(encode_message(text))
        assert decoded == expected
        assert not isinstance(decoded, str)

    def test_numbers_keep_their_type(self):
        assert type(decode_message(encode_message(3))) is int
        assert type(decode_message(encode_message(3.0))) is float


class TestMessageType:
    """Tests for MessageType classification."""

    def test_classification(self):
        assert MessageType.of("x") is MessageType.STRING
        assert MessageType.of({}) is MessageType.MAPPING
        assert MessageType.of([]) is MessageType.LIST
        assert MessageType.of(1) is MessageType.NUMBER
        assert MessageType.of(1.0) is MessageType.NUMBER
        assert MessageType.of(None) is MessageType.NULL

    def test_bool_is_not_number(self):
        assert MessageType.of(True) is MessageType.BOOLEAN

    def test_unknown_type_raises(self):
        with pytest.raises(TypeError):
            MessageType.of(object())
