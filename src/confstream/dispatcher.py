#!/usr/bin/env python3
"""Ordered delivery of configuration updates to the caller's handler.

The reader and the handler are connected by a bounded asyncio.Queue with a
single consumer task. When the handler falls behind and the queue fills up,
deliver() blocks, which stops the reader from pulling more bytes off the
connection. Handler failures, including a handler that raises
CancelledError on its own, are logged and counted; they never stop the
listener.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Union

from confstream.config_parser import ConfigPayload
from confstream.listener_constants import DISPATCH_QUEUE_SIZE

logger = logging.getLogger(__name__)

UpdateHandler = Callable[[ConfigPayload], Union[Awaitable[None], None]]


class Dispatcher:
    """Single-consumer, order-preserving delivery queue.

    Args:
        handler: Called once per payload, in delivery order. May be a plain
            function or a coroutine function.
        maxsize: Queue capacity.
    """

    def __init__(self, handler: UpdateHandler, maxsize: int = DISPATCH_QUEUE_SIZE) -> None:
        self._handler = handler
        self._queue: asyncio.Queue[ConfigPayload] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None
        self._closing = False
        self.delivered = 0
        self.failures = 0

    def start(self) -> None:
        """Start the consumer task. Must be called from a running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._consume())

    async def deliver(self, payload: ConfigPayload) -> None:
        """Queue a payload, waiting for capacity if the queue is full."""
        await self._queue.put(payload)

    async def drain(self) -> None:
        """Wait until every queued payload has been handled."""
        if self._task is None or self._task.done():
            return
        await self._queue.join()

    async def aclose(self) -> None:
        """Stop the consumer task. Payloads still queued are dropped."""
        dropped = self._queue.qsize()
        if dropped:
            logger.debug("Dropping %d undelivered updates", dropped)
        if self._task is not None:
            self._closing = True
            self._task.cancel()
            try:
                with suppress(asyncio.CancelledError):
                    await self._task
            finally:
                self._closing = False
                self._task = None

    async def _consume(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                await self._invoke(payload)
            finally:
                self._queue.task_done()

    async def _invoke(self, payload: ConfigPayload) -> None:
        try:
            result = self._handler(payload)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            # Only aclose() may stop the consumer; a handler cancelling
            # itself is treated as a failure
            if self._closing:
                raise
            self.failures += 1
            logger.exception("Update handler cancelled for event %s", payload.event_id)
        except Exception:
            self.failures += 1
            logger.exception("Update handler failed for event %s", payload.event_id)
        else:
            self.delivered += 1
