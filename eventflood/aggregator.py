"""
eventflood Aggregator

Thread-safe tally of batch outcomes. Batches may complete in any order.
"""

import logging
import threading
from dataclasses import dataclass

from .batch_runner import BatchResult
from .metrics import METRIC_BATCHES_TOTAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSummary:
    sent: int
    failed: int

    @property
    def total(self) -> int:
        return self.sent + self.failed


class Aggregator:
    """Accumulates sent/failed counts across completed batches."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sent = 0
        self._failed = 0
        self.batches_recorded = 0

    def record(self, result: BatchResult) -> None:
        with self._lock:
            self._sent += result.succeeded
            self._failed += result.failed
            self.batches_recorded += 1

        if result.failed > 0:
            logger.warning(f"Batch {result.index + 1} failed for {result.failed} events")
            METRIC_BATCHES_TOTAL.labels(status='partial').inc()
        else:
            logger.info(f"Batch {result.index + 1} sent")
            METRIC_BATCHES_TOTAL.labels(status='sent').inc()

    def finalize(self) -> RunSummary:
        """Return the totals. Only meaningful once every batch has been recorded."""
        with self._lock:
            return RunSummary(sent=self._sent, failed=self._failed)
