"""
eventflood Batch Runner

Fans a batch out to the Dispatcher, one concurrent send per event, and
reduces the results once every send has finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .dispatcher import Dispatcher, RequestResult
from .logging_utils import CorrelationID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one batch. ``index`` is zero-based."""

    index: int
    succeeded: int
    failed: int

    @property
    def size(self) -> int:
        return self.succeeded + self.failed


class BatchRunner:
    """Runs every event of a batch concurrently and joins on all of them."""

    def __init__(self, dispatcher: Dispatcher, max_workers: Optional[int] = None):
        # max_workers=None gives one thread per event
        self.dispatcher = dispatcher
        self.max_workers = max_workers

    def _send_tagged(self, label: str, endpoint: str, event: Dict[str, Any]) -> RequestResult:
        CorrelationID.set(label)
        try:
            return self.dispatcher.send(event, endpoint)
        finally:
            CorrelationID.clear()

    def _send_into(
        self,
        results: List[Optional[RequestResult]],
        position: int,
        label: str,
        endpoint: str,
        event: Dict[str, Any],
    ) -> None:
        results[position] = self._send_tagged(label, endpoint, event)

    def run(self, batch: Sequence[Dict[str, Any]], endpoint: str, index: int = 0) -> BatchResult:
        if not batch:
            return BatchResult(index=index, succeeded=0, failed=0)

        label = f"batch-{index + 1}"
        workers = min(self.max_workers or len(batch), len(batch))

        # A slot still empty once the pool has drained was never dispatched.
        # submit() queues the work before starting a thread, so a failed start
        # loses only the future; existing workers still run the event.
        results: List[Optional[RequestResult]] = [None] * len(batch)
        futures = []
        submit_error = None
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=label) as pool:
            for position, event in enumerate(batch):
                try:
                    futures.append(pool.submit(self._send_into, results, position, label, endpoint, event))
                except RuntimeError as e:
                    submit_error = e

        for future in futures:
            future.result()

        if submit_error is not None:
            missing = sum(1 for r in results if r is None)
            logger.error(f"Batch {index + 1}: worker thread start failed ({submit_error}); "
                         f"{missing} events were not dispatched")

        outcomes = [
            r if r is not None else RequestResult(ok=False, error=f"Not dispatched: {submit_error}")
            for r in results
        ]
        failed = sum(1 for r in outcomes if not r.ok)
        logger.debug(f"Batch {index + 1} finished: {len(outcomes) - failed} ok, {failed} failed")
        return BatchResult(index=index, succeeded=len(outcomes) - failed, failed=failed)
