"""
Tests for the benchmark harness.

Uses a scripted in-memory strategy and MockClock so that
every latency, failure point and cancellation is exact.
"""

import threading
from unittest.mock import MagicMock

import pytest

from benchmarking.harness import BenchmarkHarness, BenchmarkSample
from benchmarking.scenarios import DefinitionChangeScenario
from core.clock import MockClock
from core.exceptions import (
    BenchmarkCancelled,
    ComputeError,
    DefinitionIncompatible,
    StoreUnavailable,
)
from database.record_store import Record
from view_maintenance.strategies.base import MaintenanceStrategy
from view_maintenance.types import ComplexityClass, MetricDefinition, StrategyKind


OLD = MetricDefinition.of(0.4, 0.3, 0.3, version=1)
NEW = OLD.evolve(stress=0.5)
SCENARIO = DefinitionChangeScenario(name="stress_shift", old=OLD, new=NEW)

RECORDS = [
    Record(id=1, university="U1", anxiety_score=10, stress_score=5, depression_score=2),
    Record(id=2, university="U1", anxiety_score=2, stress_score=8, depression_score=9),
    Record(id=3, university="U1", anxiety_score=7, stress_score=7, depression_score=7),
]

# Top rows under NEW: 8.4, 7.5, 7.1
CORRECT_ROWS = [
    {"id": 3, "university": "U1", "score": 8.4},
    {"id": 2, "university": "U1", "score": 7.5},
    {"id": 1, "university": "U1", "score": 7.1},
]


class ScriptedStrategy(MaintenanceStrategy):
    """Strategy whose reads and failures are scripted."""

    kind = StrategyKind.FULL_RECOMPUTE
    title = "Scripted"
    read_complexity = ComplexityClass.LINEAR
    refresh_complexity = ComplexityClass.CONSTANT

    def __init__(
        self,
        rows=None,
        fail_on_read=None,
        read_error=None,
        apply_error=None,
        prepare_error=None,
        on_read=None,
    ):
        session = MagicMock()
        session.closed = False
        super().__init__(session)
        self.rows = CORRECT_ROWS if rows is None else rows
        self.fail_on_read = fail_on_read
        self.read_error = read_error
        self.apply_error = apply_error
        self.prepare_error = prepare_error
        self.on_read = on_read
        self.reads = 0
        self.prepared_with = None
        self.released = 0

    def prepare(self, baseline):
        if self.prepare_error:
            raise self.prepare_error
        self.prepared_with = baseline

    def _apply(self, old_def, new_def):
        if self.apply_error:
            raise self.apply_error
        return len(self.rows), {}

    def _read(self, k, definition):
        self.reads += 1
        if self.on_read:
            self.on_read(self.reads)
        if self.fail_on_read == self.reads:
            raise self.read_error
        return self.rows[:k]

    def _release(self):
        self.released += 1


# =============================================================
# FIXTURES
# =============================================================

@pytest.fixture
def clock():
    return MockClock(step_ms=1.0)


@pytest.fixture
def harness(clock):
    return BenchmarkHarness(clock)


# =============================================================
# TEST: Successful runs
# =============================================================

class TestSuccessfulRun:
    """Test the prepare / refresh / read sequence."""

    def test_collects_one_latency_per_iteration(self, harness):
        strategy = ScriptedStrategy()

        sample = harness.run(strategy, iterations=10, scenario=SCENARIO, top_k=3)

        assert sample.succeeded
        assert sample.completed_iterations == 10
        assert sample.latencies_ms == [1.0] * 10
        assert sample.refresh_latency_ms == 1.0
        assert sample.average_read_latency_ms == 1.0
        assert sample.rows_affected == 3
        assert strategy.reads == 10

    def test_prepares_with_old_definition(self, harness):
        strategy = ScriptedStrategy()
        harness.run(strategy, iterations=1, scenario=SCENARIO)

        assert strategy.prepared_with == OLD
        assert strategy.live_definition == NEW

    def test_keeps_first_read_as_sample(self, harness):
        sample = harness.run(ScriptedStrategy(), iterations=3, scenario=SCENARIO, top_k=2)
        assert sample.sample_rows == [(3, 8.4), (2, 7.5)]

    def test_oracle_spot_check_passes(self, harness):
        sample = harness.run(
            ScriptedStrategy(), iterations=2, scenario=SCENARIO, top_k=3, oracle_records=RECORDS,
        )
        assert sample.succeeded

    def test_tears_down_by_default(self, harness):
        strategy = ScriptedStrategy()
        harness.run(strategy, iterations=1, scenario=SCENARIO)

        assert strategy.released == 1
        with pytest.raises(StoreUnavailable):
            strategy.read_top_k(1)

    def test_teardown_can_be_deferred(self, harness):
        strategy = ScriptedStrategy()
        harness.run(strategy, iterations=1, scenario=SCENARIO, teardown=False)

        assert strategy.released == 0
        assert [row.record_id for row in strategy.read_top_k(1)] == [3]

    @pytest.mark.parametrize("iterations, top_k", [(0, 5), (-1, 5), (3, 0)])
    def test_rejects_invalid_arguments(self, harness, iterations, top_k):
        with pytest.raises(ValueError):
            harness.run(ScriptedStrategy(), iterations=iterations, scenario=SCENARIO, top_k=top_k)


# =============================================================
# TEST: Failures
# =============================================================

class TestFailures:
    """Failures stop the run and keep partial results."""

    def test_store_unavailable_on_fourth_read(self, harness):
        strategy = ScriptedStrategy(fail_on_read=4, read_error=StoreUnavailable("connection lost"))

        sample = harness.run(strategy, iterations=10, scenario=SCENARIO)

        assert not sample.succeeded
        assert isinstance(sample.error, StoreUnavailable)
        assert sample.failed_phase == "read"
        assert sample.completed_iterations == 3
        assert sample.latencies_ms == [1.0, 1.0, 1.0]
        assert strategy.reads == 4
        assert strategy.released == 1

    def test_unexpected_exception_becomes_compute_error(self, harness):
        strategy = ScriptedStrategy(fail_on_read=2, read_error=RuntimeError("boom"))

        sample = harness.run(strategy, iterations=5, scenario=SCENARIO)

        assert isinstance(sample.error, ComputeError)
        assert sample.error.context["cause_type"] == "RuntimeError"
        assert sample.completed_iterations == 1

    def test_refresh_failure_records_no_reads(self, harness):
        strategy = ScriptedStrategy(apply_error=DefinitionIncompatible("no window support"))

        sample = harness.run(strategy, iterations=5, scenario=SCENARIO)

        assert isinstance(sample.error, DefinitionIncompatible)
        assert sample.failed_phase == "refresh"
        assert sample.refresh_latency_ms is None
        assert sample.latencies_ms == []
        assert sample.average_read_latency_ms is None
        assert strategy.reads == 0

    def test_prepare_failure(self, harness):
        strategy = ScriptedStrategy(prepare_error=StoreUnavailable("store down"))

        sample = harness.run(strategy, iterations=5, scenario=SCENARIO)

        assert sample.failed_phase == "prepare"
        assert isinstance(sample.error, StoreUnavailable)
        assert strategy.released == 1

    def test_deadline_expiry_is_store_unavailable(self, harness):
        # 1 ms per reading: deadline at 5, refresh uses 1-2, read 1 uses 3-5
        strategy = ScriptedStrategy()

        sample = harness.run(strategy, iterations=10, scenario=SCENARIO, deadline_seconds=0.005)

        assert isinstance(sample.error, StoreUnavailable)
        assert "Deadline expired" in sample.error.message
        assert sample.failed_phase == "read"
        assert sample.completed_iterations == 1

    def test_oracle_mismatch_fails_verification(self, harness):
        wrong = [dict(row) for row in CORRECT_ROWS]
        wrong[1]["score"] = 9.9

        sample = harness.run(
            ScriptedStrategy(rows=wrong), iterations=2, scenario=SCENARIO, top_k=3,
            oracle_records=RECORDS,
        )

        assert sample.failed_phase == "verify"
        assert isinstance(sample.error, ComputeError)
        assert sample.completed_iterations == 2

    def test_unordered_sample_fails_verification(self, harness):
        unordered = [CORRECT_ROWS[1], CORRECT_ROWS[0]]

        sample = harness.run(
            ScriptedStrategy(rows=unordered), iterations=1, scenario=SCENARIO, top_k=2,
            oracle_records=RECORDS,
        )

        assert sample.failed_phase == "verify"
        assert "descending" in sample.error.message


# =============================================================
# TEST: Cancellation
# =============================================================

class TestCancellation:
    """Cancellation propagates and still tears down."""

    def test_cancelled_before_start(self, harness):
        cancel = threading.Event()
        cancel.set()
        strategy = ScriptedStrategy()

        with pytest.raises(BenchmarkCancelled):
            harness.run(strategy, iterations=5, scenario=SCENARIO, cancel_event=cancel)

        assert strategy.prepared_with is None
        assert strategy.released == 1

    def test_cancelled_between_reads(self, harness):
        cancel = threading.Event()

        def cancel_after_second(read_number):
            if read_number == 2:
                cancel.set()

        strategy = ScriptedStrategy(on_read=cancel_after_second)

        with pytest.raises(BenchmarkCancelled):
            harness.run(strategy, iterations=10, scenario=SCENARIO, cancel_event=cancel)

        assert strategy.reads == 2
        assert strategy.released == 1


# =============================================================
# TEST: BenchmarkSample
# =============================================================

class TestBenchmarkSample:
    """Test sample bookkeeping."""

    def test_failed_constructor(self):
        error = StoreUnavailable("unreachable")
        sample = BenchmarkSample.failed(StrategyKind.INCREMENTAL_DELTA, "Strategy 3", SCENARIO, 10, error)

        assert not sample.succeeded
        assert sample.failed_phase == "setup"
        assert sample.completed_iterations == 0
        assert sample.iterations_requested == 10

    def test_to_dict(self):
        sample = BenchmarkSample(
            strategy_id=StrategyKind.WINDOWED_PARTITION,
            strategy_title="Strategy 4: Window Matrix",
            scenario_name="window_widen",
            iterations_requested=2,
            latencies_ms=[2.0, 4.0],
            refresh_latency_ms=0.5,
            sample_rows=[(3, 8.4)],
        )

        data = sample.to_dict()

        assert data["strategy_id"] == "windowed_partition"
        assert data["average_read_latency_ms"] == 3.0
        assert data["completed_iterations"] == 2
        assert data["sample_rows"] == [[3, 8.4]]
        assert data["error"] is None
