#!/usr/bin/env python3
"""Public entry points for listening to configuration updates.

Usage::

    from confstream.listener import start_listening

    async def on_update(config):
        print(config.settings)

    await start_listening("http://example.com/sse", on_update, max_retries=3)

start_listening() blocks until stopped or until a TerminalError ends it.
start() and stop() run the same loop as a background task.
"""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass

from confstream.connector import Connector
from confstream.dispatcher import UpdateHandler
from confstream.listener_config import ListenerConfig
from confstream.orchestrator import Orchestrator


def _with_max_retries(config: ListenerConfig | None, max_retries: int) -> ListenerConfig:
    if config is None:
        return ListenerConfig(max_retries=max_retries)
    return dataclasses.replace(config, max_retries=max_retries)


async def start_listening(
    url: str,
    on_update: UpdateHandler,
    max_retries: int,
    *,
    config: ListenerConfig | None = None,
    connector: Connector | None = None,
) -> None:
    """Listen to the event stream at url until stopped or terminated.

    Args:
        url: Address of the event stream endpoint.
        on_update: Called once per successfully parsed configuration event.
        max_retries: Consecutive failed reconnects tolerated before giving up.
        config: Other listener settings; its max_retries is overridden.
        connector: Transport to use instead of a default httpx client. The
            caller keeps ownership and closes it.

    Raises:
        FatalStatusError: If the server rejects the request with a 4xx.
        RetriesExhaustedError: If consecutive failures exceed max_retries.
    """
    orchestrator = Orchestrator(
        url, on_update, _with_max_retries(config, max_retries), connector=connector
    )
    await orchestrator.run()


@dataclass
class ListenerHandle:
    """A listener running in the background.

    Attributes:
        orchestrator: The loop driving the listener.
        task: The asyncio task running orchestrator.run().
    """

    orchestrator: Orchestrator
    task: asyncio.Task[None]

    def request_stop(self) -> None:
        """Ask the listener to exit without waiting for it."""
        self.orchestrator.request_stop()

    async def wait(self) -> None:
        """Wait for the listener to finish, re-raising any TerminalError."""
        await self.task


def start(
    url: str,
    handler: UpdateHandler,
    max_retries: int,
    *,
    config: ListenerConfig | None = None,
    connector: Connector | None = None,
) -> ListenerHandle:
    """Start listening in a background task and return immediately.

    Must be called from a running event loop.
    """
    orchestrator = Orchestrator(
        url, handler, _with_max_retries(config, max_retries), connector=connector
    )
    task = asyncio.create_task(orchestrator.run(), name=f"confstream:{url}")
    return ListenerHandle(orchestrator, task)


async def stop(handle: ListenerHandle) -> None:
    """Stop a listener and wait until it has released its connection.

    The open stream is closed, a pending backoff wait is interrupted, and no
    further connection attempts are made. A TerminalError the listener hit
    before being stopped is not re-raised here; use handle.wait() for it.
    """
    handle.request_stop()
    await asyncio.gather(handle.task, return_exceptions=True)
