"""
eventflood - Prometheus Metrics

Process-wide metrics for a load run. The exporter is only started when a
metrics port is configured.
"""

import logging

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

METRIC_REQUESTS_TOTAL = Counter(
    'eventflood_requests_total',
    'Total event POST requests',
    ['status']  # success, fail_http, fail_timeout, fail_transport
)

METRIC_REQUEST_LATENCY = Histogram(
    'eventflood_request_latency_seconds',
    'Latency of event POST requests',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

METRIC_BATCHES_TOTAL = Counter(
    'eventflood_batches_total',
    'Total completed batches',
    ['status']  # sent, partial
)

METRIC_BATCHES_IN_FLIGHT = Gauge(
    'eventflood_batches_in_flight',
    'Batches currently admitted and not yet completed'
)

METRIC_RATE_LIMIT_WAITS = Counter(
    'eventflood_rate_limit_waits_total',
    'Total poll sleeps spent waiting for a rate limit token'
)


def start_metrics_server(port: int) -> bool:
    """Start the Prometheus exporter if port > 0. Returns True if started."""
    if port <= 0:
        return False
    start_http_server(port)
    logger.info(f"Prometheus metrics server started on port {port}")
    return True
