#!/usr/bin/env python3
"""
Retry bookkeeping for one listener.

RetryState is owned by exactly one Orchestrator and is never shared, so it
needs no locking. The attempt counter counts consecutive failed connection
attempts:
- RetryController.on_failure() increments it by one
- reset() sets it back to 0 once an event has been delivered
"""
from __future__ import annotations

from dataclasses import dataclass

from confstream.listener_constants import (
    BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    JITTER_FACTOR,
    MAX_DELAY,
)


@dataclass
class RetryState:
    """
    Backoff parameters and the consecutive failure count.

    Attributes:
        attempt: Consecutive failed attempts since the last delivered event.
        base_delay: Delay in seconds before the first reconnect.
        max_delay: Upper bound in seconds for any delay.
        max_retries: Failures tolerated before giving up.
        jitter_factor: Relative jitter bound, between 0 and 1.
        server_hint: Delay in seconds requested by the server's retry field,
            used once for the next reconnect, or None.
    """

    attempt: int = 0
    base_delay: float = BASE_DELAY
    max_delay: float = MAX_DELAY
    max_retries: int = DEFAULT_MAX_RETRIES
    jitter_factor: float = JITTER_FACTOR
    server_hint: float | None = None

    @property
    def exhausted(self) -> bool:
        """True once attempt exceeds max_retries."""
        return self.attempt > self.max_retries

    def reset(self) -> None:
        """
        Reset the failure count.

        Called after an event is delivered, so the next failure backs off
        from the base delay again.
        """
        self.attempt = 0
