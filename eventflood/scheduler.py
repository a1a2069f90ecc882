"""
eventflood Scheduler

Admits batches strictly in index order with at most ``concurrency`` in
flight, launching the next batch whenever a running one completes.
A run cannot be cancelled once started.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from .aggregator import Aggregator, RunSummary
from .batch_runner import BatchResult, BatchRunner
from .metrics import METRIC_BATCHES_IN_FLIGHT

logger = logging.getLogger(__name__)

Batch = Sequence[Dict[str, Any]]


class Scheduler:
    """Bounded-concurrency batch launcher."""

    def __init__(self, runner: BatchRunner, aggregator: Aggregator, concurrency: int):
        if concurrency < 1:
            raise ValueError(f"concurrency too low: {concurrency}")
        self.runner = runner
        self.aggregator = aggregator
        self.concurrency = concurrency

        # Guards next_batch_index, in_flight, admitted, peak_in_flight
        self._cond = threading.Condition()
        self.next_batch_index = 0
        self.in_flight = 0
        self.peak_in_flight = 0
        self.admitted: List[int] = []

        self._batches: Sequence[Batch] = ()
        self._endpoint: Optional[str] = None
        self._start_error: Optional[BaseException] = None

    def run(self, batches: Sequence[Batch], endpoint: str) -> RunSummary:
        """Run every batch exactly once and block until all have completed."""
        with self._cond:
            if self._endpoint is not None:
                raise RuntimeError("Scheduler instances are single-use")
            self._batches = batches
            self._endpoint = endpoint

            self._admit()
            while not self._finished() and self._start_error is None:
                self._cond.wait()

        if self._start_error is not None:
            raise RuntimeError(
                f"Could not start a worker for batch {self.next_batch_index + 1} "
                f"with no batches left in flight: {self._start_error}"
            ) from self._start_error

        logger.debug(f"All {len(batches)} batches completed (peak in flight: {self.peak_in_flight})")
        return self.aggregator.finalize()

    def _finished(self) -> bool:
        return self.next_batch_index >= len(self._batches) and self.in_flight == 0

    def _admit(self) -> None:
        """
        Launch batches while a slot is free. Caller holds the condition.

        Counters are only committed once the worker thread has started; the
        worker cannot touch them before then because it needs the condition.
        If a thread cannot be started, admission resumes on the next
        completion. With nothing left in flight there is no next completion,
        so the error is recorded for ``run()`` to raise.
        """
        while self.in_flight < self.concurrency and self.next_batch_index < len(self._batches):
            index = self.next_batch_index
            worker = threading.Thread(
                target=self._run_batch,
                args=(index,),
                name=f"batch-{index + 1}",
            )
            try:
                worker.start()
            except RuntimeError as e:
                if self.in_flight == 0:
                    self._start_error = e
                else:
                    logger.warning(f"Could not start batch {index + 1}: {e}; retrying when a slot frees")
                return

            self.next_batch_index += 1
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            self.admitted.append(index)
            METRIC_BATCHES_IN_FLIGHT.inc()

    def _run_batch(self, index: int) -> None:
        batch = self._batches[index]
        result = None
        try:
            result = self.runner.run(batch, self._endpoint, index=index)
        except Exception as e:
            logger.error(f"Batch {index + 1} crashed; counting all {len(batch)} events as failed: {e}",
                         exc_info=True)
            result = BatchResult(index=index, succeeded=0, failed=len(batch))
        finally:
            if result is not None:
                self.aggregator.record(result)
            with self._cond:
                self.in_flight -= 1
                METRIC_BATCHES_IN_FLIGHT.dec()
                try:
                    self._admit()
                finally:
                    self._cond.notify_all()
