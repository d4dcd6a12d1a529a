"""CLI handling for confstream.

This module provides the command-line interface, handling argument parsing
via click, logging configuration, and running the listener. Every option
can also be set through a CONFSTREAM_* environment variable.

Usage:
    confstream URL [--max-retries N] [--base-delay S] [--max-delay S]
                   [--read-timeout S] [--header NAME:VALUE]...
                   [--verbose | --quiet] [--json-logs]
"""

import click
import sys

from confstream.listener_constants import (
    BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    MAX_DELAY,
    READ_TIMEOUT,
)
from confstream.main_logging import configure_logging
from confstream.main_options import ConflictingOption, HeaderParamType


def _collect_headers(ctx, param, values):
    """Turn repeated (name, value) pairs into a dict."""
    return dict(values)


@click.command()
@click.argument("url", envvar="CONFSTREAM_URL")
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=DEFAULT_MAX_RETRIES,
    show_default=True,
    envvar="CONFSTREAM_MAX_RETRIES",
    help="Consecutive failed reconnects before giving up",
)
@click.option(
    "--base-delay",
    type=click.FloatRange(min=0.0),
    default=BASE_DELAY,
    show_default=True,
    envvar="CONFSTREAM_BASE_DELAY",
    help="Seconds before the first reconnect",
)
@click.option(
    "--max-delay",
    type=click.FloatRange(min=0.0),
    default=MAX_DELAY,
    show_default=True,
    envvar="CONFSTREAM_MAX_DELAY",
    help="Upper bound for the reconnect delay in seconds",
)
@click.option(
    "--read-timeout",
    type=click.FloatRange(min=0.0, min_open=True),
    default=READ_TIMEOUT,
    show_default=True,
    envvar="CONFSTREAM_READ_TIMEOUT",
    help="Seconds of silence before the connection is considered dead",
)
@click.option(
    "--header",
    "headers",
    type=HeaderParamType(),
    multiple=True,
    callback=_collect_headers,
    envvar="CONFSTREAM_HEADER",
    help="Extra request header as NAME:VALUE (repeatable; newline-separated "
    "in CONFSTREAM_HEADER)",
)
@click.option(
    "--verbose",
    is_flag=True,
    cls=ConflictingOption,
    conflicts_with=["quiet"],
    envvar="CONFSTREAM_VERBOSE",
    help="Enable DEBUG-level logging",
)
@click.option(
    "--quiet",
    is_flag=True,
    cls=ConflictingOption,
    conflicts_with=["verbose"],
    envvar="CONFSTREAM_QUIET",
    help="Only log warnings and errors",
)
@click.option(
    "--json-logs",
    is_flag=True,
    envvar="CONFSTREAM_JSON_LOGS",
    help="Write logs as JSON lines",
)
def main(
    url: str,
    max_retries: int,
    base_delay: float,
    max_delay: float,
    read_timeout: float,
    headers: dict,
    verbose: bool,
    quiet: bool,
    json_logs: bool,
) -> None:
    """Listen to a configuration event stream and print each update as JSON."""
    from confstream.listener_config import ListenerConfig

    try:
        config = ListenerConfig(
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            read_timeout=read_timeout,
            headers=headers,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    configure_logging(verbose, quiet=quiet, json_logs=json_logs)

    _run_listener(url, config)


def _run_listener(url: str, config) -> None:
    """Run the listener, exiting with code 1 on a terminal error.

    Args:
        url: Address of the event stream endpoint.
        config: Listener settings.
    """
    import asyncio
    from confstream.client import run_client
    from confstream.errors import TerminalError

    try:
        asyncio.run(run_client(url, config))
    except TerminalError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
