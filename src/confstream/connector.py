#!/usr/bin/env python3
"""HTTP transport for the configuration event stream.

This module opens the long-lived GET request with httpx and translates
transport failures into ConnectivityError and non-2xx responses into
HttpStatusError. The response is released when the open() context exits,
whether the stream ended, failed, or was cancelled.
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from confstream.errors import ConnectivityError, FailureKind, HttpStatusError
from confstream.listener_config import ListenerConfig
from confstream.listener_constants import EVENT_STREAM_MEDIA_TYPE

logger = logging.getLogger(__name__)


def _caused_by_tls(exc: BaseException) -> bool:
    """Return True if an ssl.SSLError appears in the exception chain."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def translate_transport_error(exc: httpx.RequestError) -> ConnectivityError:
    """Map an httpx request failure onto a ConnectivityError.

    Besides transport failures this covers body decoding errors, such as a
    corrupt Content-Encoding, which are treated like a broken connection.

    Args:
        exc: The httpx exception.

    Returns:
        ConnectivityError with kind TIMEOUT, TLS_FAILURE or UNREACHABLE.
    """
    if isinstance(exc, httpx.TimeoutException):
        kind = FailureKind.TIMEOUT
    elif _caused_by_tls(exc):
        kind = FailureKind.TLS_FAILURE
    else:
        kind = FailureKind.UNREACHABLE
    return ConnectivityError(kind, f"{kind.value}: {exc!r}")


class StreamHandle:
    """An open event stream response."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield body chunks as they arrive.

        Raises:
            ConnectivityError: On read timeout or a broken connection.
        """
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except httpx.RequestError as e:
            raise translate_transport_error(e) from e


class Connector:
    """Opens event stream requests.

    Args:
        config: Listener settings (timeouts, headers, user agent).
        client: httpx client to use. If omitted the connector creates one
            and closes it in aclose().
    """

    def __init__(
        self,
        config: ListenerConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config if config is not None else ListenerConfig()
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                timeout=self.config.timeout(),
                follow_redirects=True,
            )
        self._client = client

    def _request_headers(self, last_event_id: str | None) -> dict[str, str]:
        headers = {
            "Accept": EVENT_STREAM_MEDIA_TYPE,
            "Cache-Control": "no-cache",
            "User-Agent": self.config.user_agent,
        }
        headers.update(self.config.headers)
        if last_event_id:
            headers["Last-Event-ID"] = last_event_id
        return headers

    @asynccontextmanager
    async def open(
        self, url: str, last_event_id: str | None = None
    ) -> AsyncIterator[StreamHandle]:
        """Open the event stream at url.

        Args:
            url: Address of the event stream endpoint.
            last_event_id: Id of the last event seen, sent so the server
                can resume after it.

        Yields:
            StreamHandle for the 2xx response.

        Raises:
            ConnectivityError: If the server cannot be reached.
            HttpStatusError: If the response status is not 2xx.
        """
        headers = self._request_headers(last_event_id)
        logger.debug("Opening event stream %s", url)
        try:
            async with self._client.stream("GET", url, headers=headers) as response:
                try:
                    if not response.is_success:
                        raise HttpStatusError(response.status_code)
                    yield StreamHandle(response)
                finally:
                    logger.debug("Closing event stream %s", url)
        except httpx.RequestError as e:
            raise translate_transport_error(e) from e

    async def aclose(self) -> None:
        """Close the underlying client if this connector created it."""
        if self._owns_client:
            await self._client.aclose()
