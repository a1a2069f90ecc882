# =====================================================================
# eventflood Scheduler Unit Tests
# =====================================================================
# Tests for eventflood/scheduler.py
# Run with: pytest tests/test_scheduler_unit.py -v
# =====================================================================

import random
import threading

import pytest
from unittest.mock import patch

from eventflood.aggregator import Aggregator, RunSummary
from eventflood.batch_runner import BatchResult, BatchRunner
from eventflood.event_generator import chunk
from eventflood.scheduler import Scheduler


# Mark all tests in this file as unit tests
pytestmark = pytest.mark.unit

ENDPOINT = "http://ingest.example.com/events"


class TrackingRunner:
    """BatchRunner stand-in that records concurrency and completion order"""

    def __init__(self, delay_for=None, fail_seqs=(), crash_on=()):
        self.lock = threading.Lock()
        self.current = 0
        self.peak = 0
        self.started = []
        self.completed = []
        self.delay_for = delay_for or (lambda index: 0.01)
        self.fail_seqs = set(fail_seqs)
        self.crash_on = set(crash_on)

    def run(self, batch, endpoint, index=0):
        with self.lock:
            self.current += 1
            self.peak = max(self.peak, self.current)
            self.started.append(index)
        try:
            threading.Event().wait(self.delay_for(index))
            if index in self.crash_on:
                raise RuntimeError(f"runner crashed on batch {index}")
            failed = sum(1 for e in batch if e["seq"] in self.fail_seqs)
            return BatchResult(index=index, succeeded=len(batch) - failed, failed=failed)
        finally:
            with self.lock:
                self.current -= 1
                self.completed.append(index)


def _batches(total, size):
    return chunk([{"seq": i} for i in range(total)], size)


class TestConcurrencyBound:
    """Test in-flight batches never exceed the ceiling"""

    def test_ten_events_batch_three_concurrency_two(self):
        """Test 10 events / size 3 / C=2 gives 4 batches, all sent, <=2 in flight"""
        batches = _batches(10, 3)
        runner = TrackingRunner(delay_for=lambda i: 0.03)
        scheduler = Scheduler(runner, Aggregator(), concurrency=2)

        summary = scheduler.run(batches, ENDPOINT)

        assert [len(b) for b in batches] == [3, 3, 3, 1]
        assert summary == RunSummary(sent=10, failed=0)
        assert runner.peak <= 2
        assert scheduler.peak_in_flight <= 2
        assert scheduler.in_flight == 0

    @pytest.mark.parametrize("concurrency", [1, 3, 8])
    def test_peak_never_exceeds_concurrency(self, concurrency):
        rng = random.Random(concurrency)
        delays = {i: rng.uniform(0.001, 0.02) for i in range(20)}
        runner = TrackingRunner(delay_for=delays.get)
        scheduler = Scheduler(runner, Aggregator(), concurrency=concurrency)

        scheduler.run(_batches(40, 2), ENDPOINT)

        assert runner.peak <= concurrency
        assert scheduler.peak_in_flight <= concurrency
        assert sorted(runner.completed) == list(range(20))

    def test_concurrency_reached_when_enough_batches(self):
        """Test the ceiling is actually used, not just respected"""
        runner = TrackingRunner(delay_for=lambda i: 0.05)
        scheduler = Scheduler(runner, Aggregator(), concurrency=4)

        scheduler.run(_batches(8, 1), ENDPOINT)

        assert scheduler.peak_in_flight == 4

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            Scheduler(TrackingRunner(), Aggregator(), concurrency=0)


class TestAdmissionOrder:
    """Test batches are admitted strictly by index"""

    def test_admission_is_monotonic_with_out_of_order_completion(self):
        """Test later batches finishing first does not reorder admission"""
        # Early batches are slow, later ones fast
        runner = TrackingRunner(delay_for=lambda i: 0.05 if i % 3 == 0 else 0.001)
        scheduler = Scheduler(runner, Aggregator(), concurrency=3)

        summary = scheduler.run(_batches(12, 1), ENDPOINT)

        assert scheduler.admitted == list(range(12))
        assert runner.completed != runner.started  # completions really were out of order
        assert summary.total == 12

    def test_every_batch_runs_exactly_once(self):
        runner = TrackingRunner(delay_for=lambda i: 0.0)
        scheduler = Scheduler(runner, Aggregator(), concurrency=5)

        scheduler.run(_batches(23, 4), ENDPOINT)

        assert sorted(runner.started) == list(range(6))
        assert len(runner.started) == 6


class TestFailureSemantics:
    """Test failures are counted and never stall the run"""

    def test_failed_batch_does_not_block_later_batches(self):
        runner = TrackingRunner(fail_seqs={0, 1, 2})
        scheduler = Scheduler(runner, Aggregator(), concurrency=1)

        summary = scheduler.run(_batches(9, 3), ENDPOINT)

        assert scheduler.admitted == [0, 1, 2]
        assert summary == RunSummary(sent=6, failed=3)

    def test_crashing_runner_counts_batch_as_failed(self):
        """Test an unexpected runner error is contained and conservation holds"""
        runner = TrackingRunner(crash_on={1})
        scheduler = Scheduler(runner, Aggregator(), concurrency=2)

        summary = scheduler.run(_batches(9, 3), ENDPOINT)

        assert summary == RunSummary(sent=6, failed=3)
        assert scheduler.in_flight == 0

    def test_five_events_two_failures(self, scripted_dispatcher):
        """Test positions 2 and 4 failing in one batch of five"""
        dispatcher = scripted_dispatcher(fail_seqs={1, 3})
        scheduler = Scheduler(BatchRunner(dispatcher), Aggregator(), concurrency=1)

        summary = scheduler.run(_batches(5, 5), ENDPOINT)

        assert summary == RunSummary(sent=3, failed=2)


class TestConservationAndTermination:
    """Test sent + failed == total for any partition, and the run resolves"""

    @pytest.mark.parametrize("total,size,concurrency", [
        (0, 5, 2),
        (1, 5, 2),
        (10, 1, 3),
        (10, 10, 1),
        (37, 6, 4),
    ])
    def test_conservation(self, scripted_dispatcher, total, size, concurrency):
        dispatcher = scripted_dispatcher(fail_seqs=set(range(0, total, 4)))
        scheduler = Scheduler(BatchRunner(dispatcher), Aggregator(), concurrency=concurrency)

        summary = scheduler.run(_batches(total, size), ENDPOINT)

        assert summary.sent + summary.failed == total
        assert summary.failed == len(range(0, total, 4))
        assert sorted(dispatcher.sent) == list(range(total))

    def test_empty_run_resolves_immediately(self):
        scheduler = Scheduler(TrackingRunner(), Aggregator(), concurrency=2)

        assert scheduler.run([], ENDPOINT) == RunSummary(sent=0, failed=0)

    def test_scheduler_is_single_use(self):
        scheduler = Scheduler(TrackingRunner(), Aggregator(), concurrency=2)
        scheduler.run([], ENDPOINT)

        with pytest.raises(RuntimeError):
            scheduler.run([], ENDPOINT)


def _failing_start(names, once=False):
    """Thread.start replacement that refuses to start threads named in ``names``"""
    original_start = threading.Thread.start
    pending = set(names)

    def start(self):
        if self.name in pending:
            if once:
                pending.discard(self.name)
            raise RuntimeError("can't start new thread")
        return original_start(self)

    return start


class TestWorkerStartFailure:
    """Test a batch thread that cannot be started never hangs the run"""

    def _run_in_background(self, scheduler, batches):
        outcome = {}

        def target():
            try:
                outcome["summary"] = scheduler.run(batches, ENDPOINT)
            except RuntimeError as e:
                outcome["error"] = e

        thread = threading.Thread(target=target, name="scheduler-run", daemon=True)
        thread.start()
        thread.join(timeout=5)
        assert not thread.is_alive(), "run() did not resolve"
        return outcome

    def test_start_failure_with_nothing_in_flight_raises(self):
        """Test C=1: batch 2 cannot start after batch 1 finished, so run() raises"""
        runner = TrackingRunner()
        scheduler = Scheduler(runner, Aggregator(), concurrency=1)

        with patch.object(threading.Thread, "start", _failing_start({"batch-2"})):
            outcome = self._run_in_background(scheduler, _batches(3, 1))

        assert "Could not start a worker for batch 2" in str(outcome["error"])
        assert scheduler.admitted == [0]
        assert scheduler.next_batch_index == 1
        assert scheduler.in_flight == 0
        assert runner.completed == [0]

    def test_first_batch_start_failure_raises(self):
        scheduler = Scheduler(TrackingRunner(), Aggregator(), concurrency=2)

        with patch.object(threading.Thread, "start", _failing_start({"batch-1"})):
            outcome = self._run_in_background(scheduler, _batches(4, 1))

        assert "error" in outcome
        assert scheduler.admitted == []
        assert scheduler.in_flight == 0

    def test_start_failure_retried_when_slot_frees(self):
        """Test C=2: batch 3 fails to start once while another batch runs, then runs later"""
        runner = TrackingRunner(delay_for=lambda i: 0.02)
        scheduler = Scheduler(runner, Aggregator(), concurrency=2)

        with patch.object(threading.Thread, "start", _failing_start({"batch-3"}, once=True)):
            outcome = self._run_in_background(scheduler, _batches(4, 1))

        assert outcome["summary"] == RunSummary(sent=4, failed=0)
        assert scheduler.admitted == [0, 1, 2, 3]
        assert scheduler.in_flight == 0
        assert scheduler.peak_in_flight <= 2
