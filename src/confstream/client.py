#!/usr/bin/env python3
"""Command-line listener mode.

This module provides the coroutine behind the confstream command: it
listens to an event stream and writes every configuration update to stdout
as one JSON line. SIGINT and SIGTERM stop the listener cleanly.

See listener.py for the library entry points.
"""

from __future__ import annotations

import asyncio
import json
import signal

import click

from confstream.config_parser import ConfigPayload
from confstream.listener import start
from confstream.listener_config import ListenerConfig


def print_update(config: ConfigPayload) -> None:
    """Write one configuration update to stdout as a JSON line."""
    click.echo(json.dumps(config.to_dict(), sort_keys=True))


async def run_client(url: str, config: ListenerConfig) -> None:
    """Listen to url until interrupted or a terminal error occurs.

    Args:
        url: Address of the event stream endpoint.
        config: Listener settings.

    Raises:
        TerminalError: If the listener gives up.
    """
    handle = start(url, print_update, config.max_retries, config=config)

    # Register signal handlers for clean shutdown
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, handle.request_stop)
    loop.add_signal_handler(signal.SIGTERM, handle.request_stop)
    try:
        await handle.wait()
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        loop.remove_signal_handler(signal.SIGTERM)
