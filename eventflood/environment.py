#!/usr/bin/env python3
"""
eventflood - Environment Configuration

Central configuration for a load run, loaded from environment variables.
Command-line flags may override any value; see ``Config.__init__``.

Author: eventflood Development Team
License: MIT
Version: 1.0.0
"""

import os
from typing import Any, Dict, Optional


# =====================================================================
# DEFAULTS
# =====================================================================

DEFAULT_TOTAL_EVENTS = 100_000
DEFAULT_BATCH_SIZE = 500
DEFAULT_CONCURRENCY = 8          # Batches in flight at once
DEFAULT_RATE_LIMIT = 90          # Requests per window after the first
DEFAULT_BURST_LIMIT = 100        # Requests allowed in the first window
DEFAULT_RATE_WINDOW_SECONDS = 1.0
DEFAULT_RATE_POLL_INTERVAL = 0.01
MAX_AUTO_HTTP_POOL_SIZE = 1000  # Cap for the derived pool size


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _env_optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return None
    return float(raw)


# =====================================================================
# CONFIGURATION
# =====================================================================

class Config:
    """Run configuration loaded from environment variables."""

    def __init__(self, **overrides: Any):
        """
        Load configuration from the environment, then apply overrides.

        Args:
            **overrides: Attribute name -> value. ``None`` values are
                ignored so unset CLI flags fall through to the environment.

        Raises:
            ValueError: If a value cannot be parsed or fails validation.
        """
        try:
            # Workload
            self.TOTAL_EVENTS = _env_int('TOTAL_EVENTS', DEFAULT_TOTAL_EVENTS)
            self.BATCH_SIZE = _env_int('BATCH_SIZE', DEFAULT_BATCH_SIZE)
            self.CONCURRENCY = _env_int('CONCURRENCY', DEFAULT_CONCURRENCY)

            # Rate limiting
            self.RATE_LIMIT = _env_int('RATE_LIMIT', DEFAULT_RATE_LIMIT)
            self.BURST_LIMIT = _env_int('BURST_LIMIT', DEFAULT_BURST_LIMIT)
            self.RATE_WINDOW_SECONDS = _env_float('RATE_WINDOW_SECONDS', DEFAULT_RATE_WINDOW_SECONDS)
            self.RATE_POLL_INTERVAL = _env_float('RATE_POLL_INTERVAL', DEFAULT_RATE_POLL_INTERVAL)

            # Transport
            # None keeps the transport default (no timeout)
            self.REQUEST_TIMEOUT = _env_optional_float('REQUEST_TIMEOUT')
            self.FANOUT_WORKERS = _env_int('FANOUT_WORKERS', 0)  # 0 = one thread per event
            self.HTTP_POOL_SIZE = _env_int('HTTP_POOL_SIZE', 0)  # 0 = derive from concurrency x fan-out

            # Observability
            self.METRICS_PORT = _env_int('METRICS_PORT', 0)  # 0 = exporter disabled
            self.LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
        except ValueError as e:
            raise ValueError(f"Configuration error: {e}") from e

        for name, value in overrides.items():
            if not hasattr(self, name):
                raise ValueError(f"Unknown configuration key: {name}")
            if value is not None:
                setattr(self, name, value)

        self._validate()

    def _validate(self):
        """Validate configuration values."""
        if self.TOTAL_EVENTS < 0:
            raise ValueError(f"TOTAL_EVENTS cannot be negative: {self.TOTAL_EVENTS}")

        if self.BATCH_SIZE < 1:
            raise ValueError(f"BATCH_SIZE too low: {self.BATCH_SIZE}")

        if self.CONCURRENCY < 1:
            raise ValueError(f"CONCURRENCY too low: {self.CONCURRENCY}")

        if self.RATE_LIMIT < 1:
            raise ValueError(f"RATE_LIMIT too low: {self.RATE_LIMIT}")

        if self.BURST_LIMIT < 0:
            raise ValueError(f"BURST_LIMIT cannot be negative: {self.BURST_LIMIT}")

        if self.RATE_WINDOW_SECONDS <= 0:
            raise ValueError(f"RATE_WINDOW_SECONDS must be positive: {self.RATE_WINDOW_SECONDS}")

        if self.RATE_POLL_INTERVAL <= 0:
            raise ValueError(f"RATE_POLL_INTERVAL must be positive: {self.RATE_POLL_INTERVAL}")

        if self.REQUEST_TIMEOUT is not None and self.REQUEST_TIMEOUT <= 0:
            raise ValueError(f"REQUEST_TIMEOUT must be positive when set: {self.REQUEST_TIMEOUT}")

        if self.FANOUT_WORKERS < 0:
            raise ValueError(f"FANOUT_WORKERS cannot be negative: {self.FANOUT_WORKERS}")

        if self.HTTP_POOL_SIZE < 0:
            raise ValueError(f"HTTP_POOL_SIZE cannot be negative: {self.HTTP_POOL_SIZE}")

        if self.METRICS_PORT < 0 or self.METRICS_PORT > 65535:
            raise ValueError(f"METRICS_PORT invalid: {self.METRICS_PORT}")


# =====================================================================
# HELPER FUNCTIONS
# =====================================================================

def get_rate_limit_config(config: Config) -> Dict[str, Any]:
    """
    Get rate limiter settings as a dictionary.

    Examples:
        >>> get_rate_limit_config(Config())['burst_limit']  # 100
    """
    return {
        'rate_limit': config.RATE_LIMIT,
        'burst_limit': config.BURST_LIMIT,
        'window_seconds': config.RATE_WINDOW_SECONDS,
        'poll_interval': config.RATE_POLL_INTERVAL,
    }


def get_dispatch_config(config: Config) -> Dict[str, Any]:
    """Get workload and transport settings as a dictionary."""
    return {
        'total_events': config.TOTAL_EVENTS,
        'batch_size': config.BATCH_SIZE,
        'concurrency': config.CONCURRENCY,
        'timeout': config.REQUEST_TIMEOUT,
        'fanout_workers': config.FANOUT_WORKERS or None,
        'pool_size': get_http_pool_size(config),
    }


def get_http_pool_size(config: Config) -> int:
    """
    Connection pool size for the shared HTTP session.

    An explicit HTTP_POOL_SIZE wins. Otherwise the pool is sized for every
    sender that can be in flight (concurrency x per-batch fan-out), capped at
    MAX_AUTO_HTTP_POOL_SIZE. Senders beyond the pool still work; their
    connections are closed after use instead of being kept alive.
    """
    if config.HTTP_POOL_SIZE:
        return config.HTTP_POOL_SIZE
    fanout = config.FANOUT_WORKERS or config.BATCH_SIZE
    return min(config.CONCURRENCY * fanout, MAX_AUTO_HTTP_POOL_SIZE)
