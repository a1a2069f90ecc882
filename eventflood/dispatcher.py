"""
eventflood Dispatcher

Sends one event per HTTP POST after acquiring a rate limit permit. Every
failure mode is converted into a ``RequestResult``; nothing propagates to
the caller and nothing is retried.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from .metrics import METRIC_REQUEST_LATENCY, METRIC_REQUESTS_TOTAL
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    'Content-Type': 'application/json',
    'Accept': 'application/json',
}


@dataclass(frozen=True)
class RequestResult:
    """Terminal outcome of one event send."""

    ok: bool
    status: Optional[int] = None
    error: Optional[str] = None


def build_session(pool_size: int = 100) -> requests.Session:
    """Create a keep-alive session whose pool fits ``pool_size`` concurrent sends."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session


class Dispatcher:
    """Rate-limited single-event sender."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            rate_limiter: Shared limiter; one permit is taken per send
            session: HTTP session (default: ``build_session()``)
            timeout: Per-request timeout in seconds; None keeps the
                transport default of waiting indefinitely
        """
        self.rate_limiter = rate_limiter
        self.session = session if session is not None else build_session()
        self.timeout = timeout

    def send(self, event: Dict[str, Any], endpoint: str) -> RequestResult:
        """POST ``event`` as JSON to ``endpoint`` and classify the outcome."""
        self.rate_limiter.acquire()

        start_time = time.time()
        try:
            response = self.session.post(
                endpoint,
                data=json.dumps(event),
                headers=JSON_HEADERS,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.debug(f"Request timeout after {self.timeout}s")
            METRIC_REQUESTS_TOTAL.labels(status='fail_timeout').inc()
            return RequestResult(ok=False, error="Timeout")
        except requests.exceptions.RequestException as e:
            logger.debug(f"Transport error: {e}")
            METRIC_REQUESTS_TOTAL.labels(status='fail_transport').inc()
            return RequestResult(ok=False, error=str(e))
        except Exception as e:
            logger.debug(f"Unexpected error sending event: {e}", exc_info=True)
            METRIC_REQUESTS_TOTAL.labels(status='fail_transport').inc()
            return RequestResult(ok=False, error=f"{type(e).__name__}: {e}")
        finally:
            METRIC_REQUEST_LATENCY.observe(time.time() - start_time)

        if 200 <= response.status_code < 300:
            METRIC_REQUESTS_TOTAL.labels(status='success').inc()
            return RequestResult(ok=True, status=response.status_code)

        logger.debug(f"Endpoint returned HTTP {response.status_code}")
        METRIC_REQUESTS_TOTAL.labels(status='fail_http').inc()
        return RequestResult(ok=False, status=response.status_code)
