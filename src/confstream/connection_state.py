#!/usr/bin/env python3
"""Connection lifecycle states for the listener.

IDLE is the only initial state and TERMINATED the only terminal one:

    IDLE -> CONNECTING -> STREAMING -> BACKOFF -> CONNECTING -> ...

CONNECTING may also go straight to BACKOFF, and any live state may move
to TERMINATED.
"""

from __future__ import annotations

import enum

from confstream.errors import InvalidTransitionError


class ConnectionState(enum.Enum):
    """States of a single listener's connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    BACKOFF = "backoff"
    TERMINATED = "terminated"


_ALLOWED: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.IDLE: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.STREAMING, ConnectionState.BACKOFF}
    ),
    # A cleanly ended body also goes through BACKOFF.
    ConnectionState.STREAMING: frozenset({ConnectionState.BACKOFF}),
    ConnectionState.BACKOFF: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.TERMINATED: frozenset(),
}


def check_transition(current: ConnectionState, target: ConnectionState) -> None:
    """Validate a state change.

    Every non-terminal state may move to TERMINATED.

    Args:
        current: The state the listener is in.
        target: The requested next state.

    Raises:
        InvalidTransitionError: If the change is not allowed.
    """
    if target is ConnectionState.TERMINATED and current is not ConnectionState.TERMINATED:
        return
    if target not in _ALLOWED[current]:
        raise InvalidTransitionError(
            f"Cannot move from {current.value} to {target.value}"
        )
