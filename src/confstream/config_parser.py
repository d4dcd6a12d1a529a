#!/usr/bin/env python3
"""Decoding of event payloads into configuration objects.

A configuration event carries one JSON object in its data field. The object
is kept as an open mapping: fields the client does not know about are
preserved so that servers can add fields without breaking older clients.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from confstream.errors import ParseError


class ConfigPayload(Mapping[str, Any]):
    """Read-only mapping of configuration field names to JSON values.

    Attributes:
        event_type: The event field of the frame, or None.
        event_id: The id field of the frame, or None.
    """

    def __init__(
        self,
        fields: Mapping[str, Any],
        event_type: str | None = None,
        event_id: str | None = None,
    ) -> None:
        self._fields = MappingProxyType(dict(fields))
        self.event_type = event_type
        self.event_id = event_id

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return (
            f"ConfigPayload({dict(self._fields)!r}, event_type={self.event_type!r}, "
            f"event_id={self.event_id!r})"
        )

    @property
    def settings(self) -> dict[str, Any]:
        """The "settings" object, or an empty dict if absent or not an object."""
        value = self._fields.get("settings")
        if isinstance(value, dict):
            return value
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict copy of all fields."""
        return dict(self._fields)


def decode(
    payload: str,
    *,
    event_type: str | None = None,
    event_id: str | None = None,
) -> ConfigPayload:
    """Decode one event's data into a ConfigPayload.

    Args:
        payload: The event data (data lines already joined).
        event_type: Event type of the frame, recorded on the result.
        event_id: Event id of the frame, recorded on the result.

    Returns:
        The decoded configuration.

    Raises:
        ParseError: If the payload is not JSON or not a JSON object.
    """
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in event data: {e}", event_id) from e
    if not isinstance(value, dict):
        raise ParseError(
            f"Expected a JSON object, got {type(value).__name__}", event_id
        )
    return ConfigPayload(value, event_type=event_type, event_id=event_id)
