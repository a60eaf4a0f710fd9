"""Tests for payload encoding and identifier parsing."""

import json

import pytest

from checkpoint_storage.exceptions import DeserializationError, SerializationError
from checkpoint_storage.serialization import (
    MAX_CHECKPOINT_ID,
    decode_payload,
    encode_payload,
    parse_checkpoint_id,
)


def test_absent_value_encodes_as_null() -> None:
    assert encode_payload(None, "config") == "null"


def test_encode_keeps_unicode_readable() -> None:
    text = encode_payload({"greeting": "héllo ✓"}, "state")

    assert "héllo ✓" in text
    assert json.loads(text) == {"greeting": "héllo ✓"}


@pytest.mark.parametrize(
    "value",
    [object(), {1, 2}, b"bytes", float("nan"), float("inf"), {"nested": [float("-inf")]}],
)
def test_encode_rejects_non_json_values(value) -> None:
    with pytest.raises(SerializationError) as exc_info:
        encode_payload(value, "state")

    assert exc_info.value.field == "state"


def test_encode_rejects_circular_reference() -> None:
    circular: list = []
    circular.append(circular)

    with pytest.raises(SerializationError, match="config"):
        encode_payload(circular, "config")


def test_decode_reports_checkpoint() -> None:
    with pytest.raises(DeserializationError) as exc_info:
        decode_payload("{oops", "state", "42")

    assert exc_info.value.field == "state"
    assert exc_info.value.checkpoint_id == "42"
    assert "42" in str(exc_info.value)


def test_decode_null() -> None:
    assert decode_payload("null", "config", "1") is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1", 1),
        ("42", 42),
        (" 7 ", 7),
        (str(MAX_CHECKPOINT_ID), MAX_CHECKPOINT_ID),
        (str(MAX_CHECKPOINT_ID + 1), None),
        ("0", None),
        ("-1", None),
        ("+1", None),
        ("1.0", None),
        ("abc", None),
        ("", None),
        ("١٢", None),
    ],
)
def test_parse_checkpoint_id(text: str, expected) -> None:
    assert parse_checkpoint_id(text) == expected


def test_parse_checkpoint_id_rejects_non_strings() -> None:
    assert parse_checkpoint_id(None) is None  # type: ignore[arg-type]
    assert parse_checkpoint_id(5) is None  # type: ignore[arg-type]
