#!/usr/bin/env python3
"""
eventflood Sender
==================

Purpose
 - Generate synthetic FCM registration events and POST each one to an
   ingestion endpoint under a global rate limit, with a bounded number of
   batches in flight.

Usage
 - Default run (100,000 events, 500 per batch, 8 batches in parallel,
   100 requests in the first second then 90/s):
     eventflood http://localhost:8080/events

 - Smaller run with a request timeout and a metrics exporter:
     eventflood http://localhost:8080/events --total-events 1000 \
       --rate-limit 200 --burst-limit 200 --timeout 5 --metrics-port 9105

Notes
 - Every tunable also reads from the environment (TOTAL_EVENTS, BATCH_SIZE,
   CONCURRENCY, RATE_LIMIT, BURST_LIMIT, REQUEST_TIMEOUT, METRICS_PORT, ...).
   Flags win over the environment.
 - Failed requests are counted, never retried. The exit code is 0 once a
   run completes, whatever the failure count.
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .aggregator import Aggregator, RunSummary
from .batch_runner import BatchRunner
from .dispatcher import Dispatcher, build_session
from .environment import Config, get_dispatch_config, get_rate_limit_config
from .event_generator import chunk, generate_events
from .logging_utils import setup_json_logging
from .metrics import start_metrics_server
from .rate_limiter import RateLimiter
from .scheduler import Batch, Scheduler

USAGE = "Usage: eventflood <endpoint_url>"


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="eventflood",
        description=(
            "Send synthetic FCM registration events to an ingestion endpoint, "
            "one POST per event, under a token-bucket rate limit."
        ),
    )
    parser.add_argument("endpoint", nargs="?", help="Destination URL for event POSTs")

    parser.add_argument("--total-events", type=int, help="Events to generate (default: 100000)")
    parser.add_argument("--batch-size", type=int, help="Events per batch (default: 500)")
    parser.add_argument("--concurrency", type=int, help="Batches in flight at once (default: 8)")
    parser.add_argument("--rate-limit", type=int, help="Requests per second after the first (default: 90)")
    parser.add_argument("--burst-limit", type=int, help="Requests in the first second (default: 100)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default: none)")
    parser.add_argument("--metrics-port", type=int, help="Prometheus exporter port, 0 disables (default: 0)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def run_batches(config: Config, batches: List[Batch], endpoint: str) -> RunSummary:
    """Wire the dispatch engine together and run every batch to completion."""
    dispatch = get_dispatch_config(config)

    limiter = RateLimiter(**get_rate_limit_config(config))
    dispatcher = Dispatcher(
        limiter,
        session=build_session(dispatch['pool_size']),
        timeout=dispatch['timeout'],
    )
    runner = BatchRunner(dispatcher, max_workers=dispatch['fanout_workers'])
    scheduler = Scheduler(runner, Aggregator(), dispatch['concurrency'])
    try:
        return scheduler.run(batches, endpoint)
    finally:
        dispatcher.session.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    args = get_args(argv)

    if not args.endpoint:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        config = Config(
            TOTAL_EVENTS=args.total_events,
            BATCH_SIZE=args.batch_size,
            CONCURRENCY=args.concurrency,
            RATE_LIMIT=args.rate_limit,
            BURST_LIMIT=args.burst_limit,
            REQUEST_TIMEOUT=args.timeout,
            METRICS_PORT=args.metrics_port,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger = setup_json_logging(service_name="eventflood", version=__version__, level=config.LOG_LEVEL)
    logger.info(
        f"Target: {args.endpoint} | rate: {config.BURST_LIMIT} then {config.RATE_LIMIT} "
        f"per {config.RATE_WINDOW_SECONDS}s | concurrency: {config.CONCURRENCY}"
    )

    try:
        start_metrics_server(config.METRICS_PORT)
    except OSError as e:
        print(f"Error: Could not start metrics server on port {config.METRICS_PORT}: {e}", file=sys.stderr)
        return 1

    print(f"Generating {config.TOTAL_EVENTS} unique events...")
    events = generate_events(config.TOTAL_EVENTS)
    batches = chunk(events, config.BATCH_SIZE)
    print(f"Split into {len(batches)} batches of up to {config.BATCH_SIZE}")

    summary = run_batches(config, batches, args.endpoint)

    print(f"Done. Sent: {summary.sent}, Failed: {summary.failed}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
