#!/usr/bin/env python3
"""Backoff computation and failure classification for reconnects.

The delay for a failure is min(base_delay * 2^attempt, max_delay), computed
with tenacity's wait_exponential, then stretched by up to
jitter_factor of itself so that many clients losing the same server do
not reconnect in lockstep.
"""

from __future__ import annotations

import enum
import logging
import random as random_module

from tenacity import RetryCallState, wait_exponential

from confstream.errors import (
    ConnectivityError,
    FatalStatusError,
    HttpStatusError,
    ProtocolError,
    RetriesExhaustedError,
)
from confstream.retry_state import RetryState

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS: int = 429


class Disposition(enum.Enum):
    """What the listener does after a failure."""

    RETRY = "retry"
    FATAL = "fatal"


def classify(exc: BaseException) -> Disposition:
    """Classify a connection-level failure.

    Args:
        exc: The failure raised while connecting or streaming.

    Returns:
        RETRY for connectivity, protocol, 429 and 5xx failures;
        FATAL for any other 4xx status.

    Raises:
        TypeError: If exc is not a connection-level failure.
    """
    if isinstance(exc, HttpStatusError):
        if 400 <= exc.status_code < 500 and exc.status_code != TOO_MANY_REQUESTS:
            return Disposition.FATAL
        return Disposition.RETRY
    if isinstance(exc, (ConnectivityError, ProtocolError)):
        return Disposition.RETRY
    raise TypeError(f"Cannot classify {type(exc).__name__}: {exc}")


class RetryController:
    """Owns the RetryState of one listener.

    Args:
        state: The retry bookkeeping to drive.
        random: Source of jitter; pass a seeded random.Random for
            reproducible delays.
    """

    def __init__(
        self,
        state: RetryState,
        random: random_module.Random | None = None,
    ) -> None:
        self.state = state
        self._random = random if random is not None else random_module.Random()
        self._wait = wait_exponential(
            multiplier=state.base_delay,
            max=state.max_delay,
            exp_base=2,
        )

    def next_delay(self) -> float:
        """Compute the delay before reconnecting at the current attempt.

        A pending server hint replaces the exponential delay once.

        Returns:
            Delay in seconds, never above max_delay.
        """
        state = self.state
        if state.server_hint is not None:
            delay = min(state.server_hint, state.max_delay)
            state.server_hint = None
            return delay

        call_state = RetryCallState(None, None, (), {})
        call_state.attempt_number = state.attempt + 1
        delay = self._wait(call_state)
        if state.jitter_factor:
            # Upward only, so consecutive delays never shrink
            delay *= 1.0 + state.jitter_factor * self._random.uniform(0.0, 1.0)
        return min(delay, state.max_delay)

    def on_failure(self, exc: BaseException) -> float:
        """Record a failed attempt and decide whether to reconnect.

        Args:
            exc: The failure raised while connecting or streaming.

        Returns:
            Seconds to wait before the next connection attempt.

        Raises:
            FatalStatusError: If the server rejected the request.
            RetriesExhaustedError: If attempt now exceeds max_retries.
        """
        disposition = classify(exc)
        if disposition is Disposition.FATAL and isinstance(exc, HttpStatusError):
            raise FatalStatusError(exc.status_code) from exc

        delay = self.next_delay()
        self.state.attempt += 1
        if self.state.exhausted:
            raise RetriesExhaustedError(self.state.attempt) from exc
        logger.debug(
            "Attempt %d of %d failed, next delay %.2fs",
            self.state.attempt,
            self.state.max_retries,
            delay,
        )
        return delay

    def on_event_delivered(self) -> None:
        """Reset backoff after an event reached the dispatcher."""
        if self.state.attempt:
            logger.debug("Event delivered, resetting retry counter")
        self.state.reset()

    def apply_server_hint(self, seconds: float) -> None:
        """Record the server's retry field for the next reconnect.

        Args:
            seconds: Requested reconnection delay in seconds.
        """
        self.state.server_hint = seconds
