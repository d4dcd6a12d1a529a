#!/usr/bin/env python3
"""Pytest fixtures for confstream tests.

Provides listener configs tuned for tests, a factory for connectors backed
by a ScriptedServer, and a recording sleep replacement.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from confstream.connector import Connector
from confstream.listener_config import ListenerConfig
from conftest_stream import FakeSleep, ScriptedServer


@pytest.fixture
def fast_config() -> ListenerConfig:
    """Config with a 1s base delay and no jitter, for exact delay checks."""
    return ListenerConfig(
        max_retries=5, base_delay=1.0, max_delay=30.0, jitter_factor=0.0
    )


@pytest.fixture
def make_connector() -> Callable[[ScriptedServer, ListenerConfig], Connector]:
    """Return a factory for Connectors talking to a ScriptedServer."""

    def factory(server: ScriptedServer, config: ListenerConfig) -> Connector:
        client = httpx.AsyncClient(transport=server.transport())
        return Connector(config, client=client)

    return factory


@pytest.fixture
def fake_sleep() -> FakeSleep:
    """Create a sleep replacement that records delays."""
    return FakeSleep()
