#!/usr/bin/env python3
"""Connect, stream, decode and dispatch loop with reconnection.

The Orchestrator drives one listener through its ConnectionState machine:

- CONNECTING: open the stream through the Connector
- STREAMING: feed body chunks to a StreamDecoder, parse each event's data
  and hand the resulting ConfigPayload to the Dispatcher
- BACKOFF: wait for the delay chosen by the RetryController
- TERMINATED: stopped, fatal status, or retries exhausted

Every wait (transport bytes, queue capacity, backoff delay) runs in a task
raced against the stop event, so request_stop() interrupts whichever wait
is in progress.
"""

from __future__ import annotations

import asyncio
import logging
import random as random_module
from collections.abc import Awaitable, Callable, Coroutine
from contextlib import suppress
from typing import Any

from confstream.config_parser import decode
from confstream.connection_state import ConnectionState, check_transition
from confstream.connector import Connector
from confstream.dispatcher import Dispatcher, UpdateHandler
from confstream.errors import (
    ConnectivityError,
    FailureKind,
    HttpStatusError,
    ParseError,
    ProtocolError,
    TerminalError,
)
from confstream.listener_config import ListenerConfig
from confstream.retry_controller import RetryController
from confstream.retry_state import RetryState
from confstream.stream_decoder import RawEvent, StreamDecoder

logger = logging.getLogger(__name__)


async def _cancel_task(task: asyncio.Task[Any]) -> None:
    """Cancel a task and wait for it to finish."""
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task


class Orchestrator:
    """Runs one configuration stream listener.

    Usage::

        orchestrator = Orchestrator(url, handler, ListenerConfig(max_retries=3))
        task = asyncio.create_task(orchestrator.run())
        # ... later ...
        orchestrator.request_stop()
        await task

    Args:
        url: Address of the event stream endpoint.
        handler: Called with each ConfigPayload, in stream order.
        config: Listener settings.
        connector: Transport to use; defaults to an httpx-backed Connector
            that is closed when run() returns.
        random: Jitter source for the backoff delays.
        sleep: Coroutine function used for backoff waits.
    """

    def __init__(
        self,
        url: str,
        handler: UpdateHandler,
        config: ListenerConfig | None = None,
        *,
        connector: Connector | None = None,
        random: random_module.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.url = url
        self.config = config if config is not None else ListenerConfig()
        self._owns_connector = connector is None
        self._connector = connector if connector is not None else Connector(self.config)
        self._retry = RetryController(self.config.retry_state(), random=random)
        self._dispatcher = Dispatcher(handler, maxsize=self.config.queue_size)
        self._sleep = sleep
        self._stop_requested = asyncio.Event()
        self._state = ConnectionState.IDLE
        self.last_event_id: str | None = None
        self.delays: list[float] = []
        self.parse_errors = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def retry_state(self) -> RetryState:
        return self._retry.state

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def request_stop(self) -> None:
        """Ask the loop to exit. Safe to call from a signal handler."""
        if not self._stop_requested.is_set():
            logger.debug("Stop requested for %s", self.url)
        self._stop_requested.set()

    def _transition(self, target: ConnectionState) -> None:
        check_transition(self._state, target)
        logger.debug("%s: %s -> %s", self.url, self._state.value, target.value)
        self._state = target

    async def run(self) -> None:
        """Listen until stopped or a terminal error occurs.

        Raises:
            FatalStatusError: If the server rejects the request with a 4xx.
            RetriesExhaustedError: If consecutive failures exceed max_retries.
            RuntimeError: If called more than once.
        """
        if self._state is not ConnectionState.IDLE:
            raise RuntimeError("An Orchestrator can only run once")
        self._dispatcher.start()
        try:
            while True:
                self._transition(ConnectionState.CONNECTING)
                try:
                    await self._until_stopped(self._stream_once())
                except (ConnectivityError, HttpStatusError, ProtocolError) as e:
                    delay = self._retry.on_failure(e)
                    self.delays.append(delay)
                    logger.warning(
                        "Connection to %s failed: %s; retrying in %.2fs (attempt %d of %d)",
                        self.url,
                        e,
                        delay,
                        self._retry.state.attempt,
                        self._retry.state.max_retries,
                    )
                else:
                    # _stream_once only returns without raising when stopped
                    break
                self._transition(ConnectionState.BACKOFF)
                if not await self._until_stopped(self._sleep(delay)):
                    break
        except TerminalError as e:
            logger.error("Giving up on %s: %s", self.url, e)
            await self._until_stopped(self._dispatcher.drain())
            raise
        finally:
            if self._state is not ConnectionState.TERMINATED:
                self._transition(ConnectionState.TERMINATED)
            await self._dispatcher.aclose()
            if self._owns_connector:
                await self._connector.aclose()
        logger.info("Stopped listening to %s", self.url)

    async def _until_stopped(self, coro: Coroutine[Any, Any, Any]) -> bool:
        """Run coro unless a stop is requested first.

        Returns:
            True if coro completed, False if the stop won.

        Raises:
            Whatever coro raises.
        """
        if self._stop_requested.is_set():
            coro.close()
            return False
        task = asyncio.ensure_future(coro)
        stop_task = asyncio.create_task(self._stop_requested.wait())
        try:
            await asyncio.wait({task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await _cancel_task(task)
            await _cancel_task(stop_task)
            raise
        await _cancel_task(stop_task)
        if task.done():
            task.result()
            return True
        # Cancelling closes the stream through the connector's context exit
        await _cancel_task(task)
        return False

    async def _stream_once(self) -> None:
        """Hold one connection until it fails.

        Raises:
            ConnectivityError: On transport failure or end of stream.
            HttpStatusError: On a non-2xx response.
            ProtocolError: On an oversized event.
        """
        decoder = StreamDecoder(self.config.max_event_size)
        async with self._connector.open(self.url, self.last_event_id) as stream:
            self._transition(ConnectionState.STREAMING)
            logger.info("Connected to %s", self.url)
            async for chunk in stream.chunks():
                for event in decoder.feed(chunk):
                    await self._handle_event(event)
            for event in decoder.close():
                await self._handle_event(event)
        raise ConnectivityError(FailureKind.UNREACHABLE, "Server closed the event stream")

    async def _handle_event(self, event: RawEvent) -> None:
        if event.id is not None:
            self.last_event_id = event.id
        if event.retry_hint is not None:
            self._retry.apply_server_hint(event.retry_hint)
        if not event.data:
            logger.debug("Skipping event without data (type %s)", event.event_type)
            return

        try:
            payload = decode(event.data, event_type=event.event_type, event_id=event.id)
        except ParseError as e:
            self.parse_errors += 1
            logger.warning("Failed to parse configuration data: %s", e)
            return

        await self._dispatcher.deliver(payload)
        self._retry.on_event_delivered()
        logger.info("Configuration update received (event id %s)", event.id)
