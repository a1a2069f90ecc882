#!/usr/bin/env python3
"""
=====================================================================
eventflood Rate Limiter
=====================================================================
Process-wide token bucket shared by every dispatching thread.

The bucket is NOT a continuous drip. It starts with ``burst_limit``
tokens; once a full window has elapsed since the last reset and the
bucket is empty, it is overwritten with exactly ``rate_limit`` tokens and
the window restarts. This gives a controlled initial burst followed by a
strict window-aligned ceiling.

Author: eventflood Team
Version: 1.0
=====================================================================
"""

import logging
import threading
import time
from typing import Callable

from .metrics import METRIC_RATE_LIMIT_WAITS

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Token bucket with hard per-window reset.

    Features:
    - Blocking: ``acquire()`` only ever delays, never denies
    - Thread-safe: check, reset and decrement happen under one lock
    - Polling: waiting callers sleep ``poll_interval`` between attempts

    Usage:
        limiter = RateLimiter(rate_limit=90, burst_limit=100)

        limiter.acquire()
        # Issue one request
    """

    def __init__(
        self,
        rate_limit: int,
        burst_limit: int,
        window_seconds: float = 1.0,
        poll_interval: float = 0.01,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize rate limiter.

        Args:
            rate_limit: Tokens granted per window after the first
            burst_limit: Tokens available in the first window
            window_seconds: Window length in seconds
            poll_interval: Seconds to sleep while the bucket is empty
            clock: Monotonic time source (injectable for tests)
            sleep: Sleep function (injectable for tests)
        """
        if rate_limit < 1:
            raise ValueError(f"rate_limit too low: {rate_limit}")
        if burst_limit < 0:
            raise ValueError(f"burst_limit cannot be negative: {burst_limit}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive: {window_seconds}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive: {poll_interval}")

        self.rate_limit = rate_limit
        self.burst_limit = burst_limit
        self.window_seconds = window_seconds
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

        self._lock = threading.Lock()
        self._tokens = burst_limit
        self._window_start = clock()
        self.waits = 0

        logger.debug(
            f"Rate limiter initialized: burst={burst_limit}, "
            f"rate={rate_limit}/{window_seconds}s"
        )

    @property
    def available_tokens(self) -> int:
        """Tokens left in the current window (no reset is applied)."""
        with self._lock:
            return self._tokens

    def _try_acquire(self) -> bool:
        with self._lock:
            if self._tokens <= 0:
                now = self._clock()
                if now - self._window_start >= self.window_seconds:
                    self._tokens = self.rate_limit
                    self._window_start = now
            if self._tokens > 0:
                self._tokens -= 1
                return True
            self.waits += 1
            return False

    def acquire(self) -> None:
        """Block until one request permit has been granted to the caller."""
        while not self._try_acquire():
            METRIC_RATE_LIMIT_WAITS.inc()
            self._sleep(self.poll_interval)
