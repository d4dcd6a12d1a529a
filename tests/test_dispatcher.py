#!/usr/bin/env python3
"""Tests for ordered delivery to the update handler."""
import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from confstream.config_parser import ConfigPayload
from confstream.dispatcher import Dispatcher


def payload(n: int) -> ConfigPayload:
    """Create a payload numbered n."""
    return ConfigPayload({"n": n}, event_id=str(n))


@pytest.mark.asyncio
async def test_sync_handler_called_in_order() -> None:
    """Test a plain handler sees payloads in delivery order."""
    seen: list[int] = []
    dispatcher = Dispatcher(lambda p: seen.append(p["n"]), maxsize=4)
    dispatcher.start()
    for n in range(20):
        await dispatcher.deliver(payload(n))
    await dispatcher.drain()
    await dispatcher.aclose()
    assert seen == list(range(20))
    assert dispatcher.delivered == 20


@pytest.mark.asyncio
async def test_async_handler_awaited_in_order() -> None:
    """Test a coroutine handler is awaited one payload at a time."""
    seen: list[int] = []
    active = 0

    async def handler(p: ConfigPayload) -> None:
        nonlocal active
        active += 1
        assert active == 1
        # Yield with varying delays; order must still hold
        await asyncio.sleep(0.001 * (p["n"] % 3))
        seen.append(p["n"])
        active -= 1

    dispatcher = Dispatcher(handler, maxsize=2)
    dispatcher.start()
    for n in range(10):
        await dispatcher.deliver(payload(n))
    await dispatcher.drain()
    await dispatcher.aclose()
    assert seen == list(range(10))


@pytest.mark.asyncio
async def test_handler_failure_is_isolated(caplog: pytest.LogCaptureFixture) -> None:
    """Test a raising handler is logged and later payloads still arrive."""
    seen: list[int] = []

    def handler(p: ConfigPayload) -> None:
        if p["n"] == 1:
            raise ValueError("bad config")
        seen.append(p["n"])

    dispatcher = Dispatcher(handler)
    dispatcher.start()
    with caplog.at_level(logging.ERROR):
        for n in range(3):
            await dispatcher.deliver(payload(n))
        await dispatcher.drain()
    await dispatcher.aclose()

    assert seen == [0, 2]
    assert dispatcher.failures == 1
    assert dispatcher.delivered == 2
    assert "Update handler failed" in caplog.text
    assert "bad config" in caplog.text


@pytest.mark.asyncio
async def test_full_queue_blocks_deliver() -> None:
    """Test deliver() waits for capacity while the handler is stuck."""
    release = asyncio.Event()

    async def slow_handler(p: ConfigPayload) -> None:
        await release.wait()

    dispatcher = Dispatcher(slow_handler, maxsize=1)
    dispatcher.start()
    await dispatcher.deliver(payload(0))
    await asyncio.sleep(0.01)  # consumer takes payload 0 and blocks
    await dispatcher.deliver(payload(1))  # fills the queue

    blocked = asyncio.create_task(dispatcher.deliver(payload(2)))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    release.set()
    await asyncio.wait_for(blocked, timeout=1.0)
    await dispatcher.drain()
    await dispatcher.aclose()
    assert dispatcher.delivered == 3


@pytest.mark.asyncio
async def test_aclose_drops_queued_payloads() -> None:
    """Test payloads still queued at close are never handled."""
    handler = MagicMock()
    dispatcher = Dispatcher(handler, maxsize=8)
    for n in range(3):
        await dispatcher.deliver(payload(n))
    await dispatcher.aclose()
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_drain_without_consumer_returns() -> None:
    """Test drain() on a dispatcher that never started does not hang."""
    dispatcher = Dispatcher(MagicMock())
    await asyncio.wait_for(dispatcher.drain(), timeout=1.0)


@pytest.mark.asyncio
async def test_handler_cancelled_error_is_isolated(caplog: pytest.LogCaptureFixture) -> None:
    """Test a handler raising CancelledError is counted and the consumer keeps going."""
    seen: list[int] = []

    async def handler(p: ConfigPayload) -> None:
        if p["n"] == 1:
            raise asyncio.CancelledError()
        seen.append(p["n"])

    dispatcher = Dispatcher(handler, maxsize=2)
    dispatcher.start()
    with caplog.at_level(logging.ERROR):
        for n in range(4):
            await asyncio.wait_for(dispatcher.deliver(payload(n)), timeout=1.0)
        await asyncio.wait_for(dispatcher.drain(), timeout=1.0)
    await dispatcher.aclose()

    assert seen == [0, 2, 3]
    assert dispatcher.failures == 1
    assert "Update handler cancelled" in caplog.text


@pytest.mark.asyncio
async def test_aclose_stops_consumer_inside_handler() -> None:
    """Test aclose() still cancels a consumer blocked in a handler."""
    entered = asyncio.Event()

    async def handler(p: ConfigPayload) -> None:
        entered.set()
        await asyncio.Event().wait()

    dispatcher = Dispatcher(handler)
    dispatcher.start()
    await dispatcher.deliver(payload(0))
    await asyncio.wait_for(entered.wait(), timeout=1.0)
    await asyncio.wait_for(dispatcher.aclose(), timeout=1.0)
    assert dispatcher.failures == 0
