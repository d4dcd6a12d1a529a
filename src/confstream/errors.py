#!/usr/bin/env python3
"""
Exception taxonomy for the configuration stream listener.

Failures fall into three groups:
- Retryable: ConnectivityError, ProtocolError and HttpStatusError for 429
  and 5xx responses. The listener backs off and reconnects.
- Recoverable: ParseError. One event is skipped, the stream continues.
- Terminal: FatalStatusError and RetriesExhaustedError. These are the only
  errors that leave start_listening().
"""
from __future__ import annotations

import enum


class ConfstreamError(Exception):
    """Base class for all confstream errors."""

    pass


class FailureKind(enum.Enum):
    """Transport-level failure categories reported by the connector."""

    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    TLS_FAILURE = "tls_failure"


class ConnectivityError(ConfstreamError):
    """
    Exception raised when the transport cannot open or keep the stream.

    Covers DNS failures, refused or reset connections, TLS handshake
    failures, read timeouts, and the server closing the response body.

    Attributes:
        kind: The FailureKind of this failure.
    """

    def __init__(self, kind: FailureKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class HttpStatusError(ConfstreamError):
    """
    Exception raised when the server answers with a non-2xx status.

    Attributes:
        status_code: The HTTP status code of the response.
    """

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Server responded with HTTP {status_code}")
        self.status_code = status_code


class ProtocolError(ConfstreamError):
    """
    Exception raised for event stream framing errors.

    Raised when an event grows past the configured size limit. The current
    connection is abandoned and partial event state is discarded.
    """

    pass


class ParseError(ConfstreamError):
    """
    Exception raised when an event payload is not a configuration object.

    Attributes:
        event_id: The id of the offending event, if it had one.
    """

    def __init__(self, message: str, event_id: str | None = None) -> None:
        super().__init__(message)
        self.event_id = event_id


class TerminalError(ConfstreamError):
    """Base class for errors that end the listener permanently."""

    pass


class FatalStatusError(TerminalError):
    """
    Exception raised when the server rejects the request with a 4xx status.

    429 Too Many Requests is not fatal and never produces this error.

    Attributes:
        status_code: The HTTP status code of the response.
    """

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Server rejected the request with HTTP {status_code}")
        self.status_code = status_code


class RetriesExhaustedError(TerminalError):
    """
    Exception raised when consecutive failures exceed the retry limit.

    Attributes:
        attempts: Number of consecutive failed connection attempts.
    """

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Maximum retries reached after {attempts} failed attempts, giving up"
        )
        self.attempts = attempts


class InvalidTransitionError(ConfstreamError):
    """Exception raised on a connection state change the machine forbids."""

    pass
