#!/usr/bin/env python3
"""Listener configuration.

This module provides the ListenerConfig dataclass that groups every tunable
of a listener. Defaults come from listener_constants.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from confstream.listener_constants import (
    BASE_DELAY,
    CONNECT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DISPATCH_QUEUE_SIZE,
    JITTER_FACTOR,
    MAX_DELAY,
    MAX_EVENT_SIZE,
    READ_TIMEOUT,
    USER_AGENT,
)
from confstream.retry_state import RetryState


@dataclass
class ListenerConfig:
    """Settings for one configuration stream listener.

    Attributes:
        max_retries: Consecutive failed reconnects tolerated before giving up.
        base_delay: Delay in seconds before the first reconnect.
        max_delay: Upper bound in seconds for any reconnect delay.
        jitter_factor: Relative jitter bound applied to each delay.
        connect_timeout: Seconds allowed to establish the connection.
        read_timeout: Seconds of silence after which the stream is dead.
        max_event_size: Largest accepted event in bytes.
        queue_size: Capacity of the queue feeding the handler.
        user_agent: Value of the User-Agent request header.
        headers: Extra request headers, e.g. Authorization.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = BASE_DELAY
    max_delay: float = MAX_DELAY
    jitter_factor: float = JITTER_FACTOR
    connect_timeout: float = CONNECT_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    max_event_size: int = MAX_EVENT_SIZE
    queue_size: int = DISPATCH_QUEUE_SIZE
    user_agent: str = USER_AGENT
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0 or self.max_delay < self.base_delay:
            raise ValueError("delays must satisfy 0 <= base_delay <= max_delay")
        if not 0.0 <= self.jitter_factor <= 1.0:
            raise ValueError("jitter_factor must be between 0 and 1")
        if self.max_event_size <= 0:
            raise ValueError("max_event_size must be positive")
        if self.queue_size <= 0:
            raise ValueError("queue_size must be positive")

    def retry_state(self) -> RetryState:
        """Build a fresh RetryState from these settings."""
        return RetryState(
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            max_retries=self.max_retries,
            jitter_factor=self.jitter_factor,
        )

    def timeout(self) -> httpx.Timeout:
        """Build the httpx timeout for the stream request."""
        return httpx.Timeout(
            self.read_timeout,
            connect=self.connect_timeout,
            read=self.read_timeout,
        )
