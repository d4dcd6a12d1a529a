#!/usr/bin/env python3
"""Tests for decoding event payloads into ConfigPayload objects."""
import pytest

from confstream.config_parser import ConfigPayload, decode
from confstream.errors import ParseError


def test_decode_object() -> None:
    """Test a JSON object becomes a mapping with the same fields."""
    payload = decode('{"settings": {"mode": "fast"}, "version": 3}')
    assert dict(payload) == {"settings": {"mode": "fast"}, "version": 3}
    assert payload["version"] == 3
    assert len(payload) == 2


def test_unknown_fields_preserved() -> None:
    """Test fields added by newer servers are kept."""
    payload = decode('{"settings": {}, "added_later": [1, 2]}')
    assert payload["added_later"] == [1, 2]


def test_event_metadata_recorded() -> None:
    """Test event type and id are carried on the payload."""
    payload = decode("{}", event_type="config", event_id="9")
    assert payload.event_type == "config"
    assert payload.event_id == "9"


def test_settings_property() -> None:
    """Test settings returns the nested object or an empty dict."""
    assert decode('{"settings": {"a": 1}}').settings == {"a": 1}
    assert decode('{"other": 1}').settings == {}
    assert decode('{"settings": [1]}').settings == {}


def test_payload_is_read_only() -> None:
    """Test the mapping rejects item assignment."""
    payload = decode('{"a": 1}')
    with pytest.raises(TypeError):
        payload["a"] = 2  # type: ignore[index]


def test_to_dict_returns_copy() -> None:
    """Test to_dict() does not expose internal state."""
    payload = ConfigPayload({"a": 1})
    copy = payload.to_dict()
    copy["a"] = 2
    assert payload["a"] == 1


@pytest.mark.parametrize(
    "data",
    ["not json", '{"unterminated": ', "", "[1, 2, 3]", '"string"', "42", "null"],
)
def test_invalid_payload_raises_parse_error(data: str) -> None:
    """Test malformed or non-object data raises ParseError."""
    with pytest.raises(ParseError):
        decode(data, event_id="5")


def test_parse_error_carries_event_id() -> None:
    """Test ParseError records which event failed."""
    with pytest.raises(ParseError) as exc_info:
        decode("{bad", event_id="17")
    assert exc_info.value.event_id == "17"
