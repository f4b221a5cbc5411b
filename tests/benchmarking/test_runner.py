"""
Tests for scoped benchmark runs against a real SQLite store.

Tests cover:
- Each strategy under its showcase scenario
- Empty stores and incompatible scenarios as failed samples
- Sequential and parallel multi-strategy runs
- Recommendations from live benchmarks
- Runtime strategy switching
- Cleanup of auxiliary tables on every exit path
"""

import threading

import pytest
from sqlalchemy import inspect

from benchmarking.config import BenchmarkConfig
from benchmarking.cost_model import ChangePattern
from benchmarking.runner import (
    benchmark_change_classes,
    recommend,
    run_all_strategies,
    run_benchmark,
    switch_strategy,
)
from benchmarking.scenarios import FULL_REWEIGHT, WINDOW_WIDTH
from core.exceptions import (
    BenchmarkCancelled,
    ComputeError,
    DefinitionIncompatible,
    EmptyRecordStore,
    StoreUnavailable,
)
from database.engine import session_scope
from database.models import RECORD_TABLE
from view_maintenance.registry import create_strategy
from view_maintenance.types import ChangeClass, MetricDefinition, StrategyKind


FAST = BenchmarkConfig(iterations=3, top_k=5)


def table_names(engine):
    return set(inspect(engine).get_table_names())


# =============================================================
# TEST: Single runs
# =============================================================

class TestRunBenchmark:
    """One strategy, one scoped session."""

    @pytest.mark.parametrize("kind", StrategyKind.all_kinds())
    def test_showcase_scenario_succeeds(self, cohort_engine, kind):
        sample = run_benchmark(cohort_engine, kind, config=FAST)

        assert sample.succeeded, sample.error
        assert sample.completed_iterations == 3
        assert len(sample.sample_rows) == 5
        assert sample.refresh_latency_ms is not None
        assert table_names(cohort_engine) == {RECORD_TABLE}

    def test_accepts_string_identifier(self, cohort_engine):
        sample = run_benchmark(cohort_engine, "incremental_delta", config=FAST)
        assert sample.strategy_id == StrategyKind.INCREMENTAL_DELTA
        assert sample.scenario_name == "stress_shift"
        assert sample.rows_affected == 40

    def test_unknown_strategy(self, cohort_engine):
        with pytest.raises(ValueError):
            run_benchmark(cohort_engine, "strategy9")

    def test_empty_store_is_a_failed_sample(self, engine):
        sample = run_benchmark(engine, StrategyKind.FULL_RECOMPUTE, config=FAST)

        assert isinstance(sample.error, EmptyRecordStore)
        assert sample.failed_phase == "setup"
        assert sample.completed_iterations == 0

    def test_snapshot_rejects_window_scenario(self, cohort_engine):
        sample = run_benchmark(cohort_engine, StrategyKind.MATERIALIZED_SNAPSHOT, scenario=WINDOW_WIDTH, config=FAST)

        assert isinstance(sample.error, DefinitionIncompatible)
        assert sample.failed_phase == "refresh"
        assert table_names(cohort_engine) == {RECORD_TABLE}

    def test_incremental_rejects_window_scenario_at_prepare(self, cohort_engine):
        sample = run_benchmark(cohort_engine, StrategyKind.INCREMENTAL_DELTA, scenario=WINDOW_WIDTH, config=FAST)

        assert isinstance(sample.error, DefinitionIncompatible)
        assert sample.failed_phase == "prepare"

    def test_cancellation_propagates_and_cleans_up(self, cohort_engine):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(BenchmarkCancelled):
            run_benchmark(cohort_engine, StrategyKind.MATERIALIZED_SNAPSHOT, config=FAST, cancel_event=cancel)

        assert table_names(cohort_engine) == {RECORD_TABLE}

    def test_unverified_run(self, cohort_engine):
        config = BenchmarkConfig(iterations=2, top_k=3, verify_samples=False)
        sample = run_benchmark(cohort_engine, StrategyKind.MATERIALIZED_SNAPSHOT, scenario=FULL_REWEIGHT, config=config)
        assert sample.succeeded
        assert len(sample.sample_rows) == 3


# =============================================================
# TEST: Multi-strategy runs
# =============================================================

class TestRunAllStrategies:
    """Several strategies, one session each."""

    def test_sequential_runs_in_benchmark_order(self, cohort_engine):
        samples = run_all_strategies(cohort_engine, config=FAST)

        assert list(samples) == StrategyKind.all_kinds()
        assert all(s.succeeded for s in samples.values())
        assert table_names(cohort_engine) == {RECORD_TABLE}

    def test_parallel_read_only_strategies(self, cohort_engine):
        config = BenchmarkConfig(iterations=3, top_k=5, parallel=True)
        kinds = [StrategyKind.FULL_RECOMPUTE, StrategyKind.WINDOWED_PARTITION]

        samples = run_all_strategies(cohort_engine, kinds=kinds, config=config, max_workers=2)

        assert list(samples) == kinds
        assert all(s.succeeded for s in samples.values())

    def test_one_scenario_for_every_strategy(self, cohort_engine):
        kinds = StrategyKind.all_kinds()
        samples = run_all_strategies(
            cohort_engine,
            scenarios={kind: FULL_REWEIGHT for kind in kinds},
            config=FAST,
        )

        assert {s.scenario_name for s in samples.values()} == {"full_reweight"}
        reference = [score for _, score in samples[StrategyKind.FULL_RECOMPUTE].sample_rows]
        for sample in samples.values():
            assert [score for _, score in sample.sample_rows] == pytest.approx(reference)

    def test_change_classes(self, cohort_engine):
        samples = benchmark_change_classes(
            cohort_engine,
            change_classes=[ChangeClass.SINGLE_DIMENSION, ChangeClass.WINDOW_WIDTH],
            config=FAST,
        )

        assert all(s.succeeded for s in samples[ChangeClass.SINGLE_DIMENSION])
        failed = {s.strategy_id for s in samples[ChangeClass.WINDOW_WIDTH] if not s.succeeded}
        assert failed == {StrategyKind.MATERIALIZED_SNAPSHOT, StrategyKind.INCREMENTAL_DELTA}


class TestRecommend:
    """Recommendations from live benchmarks."""

    def test_window_only_pattern_excludes_non_windowing_strategies(self, cohort_engine):
        choice = recommend(cohort_engine, ChangePattern.only(ChangeClass.WINDOW_WIDTH), config=FAST)

        assert choice.strategy_id in (StrategyKind.FULL_RECOMPUTE, StrategyKind.WINDOWED_PARTITION)
        assert set(choice.excluded) == {"materialized_snapshot", "incremental_delta"}
        assert choice.reads_per_change == 10

    def test_empty_store_has_no_recommendation(self, engine):
        with pytest.raises(ComputeError):
            recommend(engine, ChangePattern.only(ChangeClass.FULL_REWEIGHT), config=FAST)


# =============================================================
# TEST: Strategy switching
# =============================================================

class TestSwitchStrategy:
    """Hand the live definition over to another strategy."""

    def test_switch_preserves_answers(self, trio_engine, baseline):
        with session_scope(trio_engine) as session:
            current = create_strategy(StrategyKind.FULL_RECOMPUTE, session)
            current.apply_definition_change(baseline, baseline)
            before = [row.as_pair() for row in current.read_top_k(3)]

            replacement = switch_strategy(current, "incremental_delta")
            try:
                after = [row.as_pair() for row in replacement.read_top_k(3)]
                assert replacement.live_definition == baseline
                with pytest.raises(StoreUnavailable):
                    current.read_top_k(1)
            finally:
                replacement.teardown()

        assert [rid for rid, _ in after] == [rid for rid, _ in before] == [3, 1, 2]
        assert [s for _, s in after] == pytest.approx([s for _, s in before])
        assert table_names(trio_engine) == {RECORD_TABLE}

    def test_incompatible_replacement_keeps_current(self, trio_engine):
        windowed = MetricDefinition.of(0.4, 0.3, 0.3, window_size=5)
        with session_scope(trio_engine) as session:
            with create_strategy(StrategyKind.WINDOWED_PARTITION, session) as current:
                current.apply_definition_change(windowed, windowed)

                with pytest.raises(DefinitionIncompatible):
                    switch_strategy(current, StrategyKind.MATERIALIZED_SNAPSHOT)

                assert len(current.read_top_k(3)) == 3

        assert table_names(trio_engine) == {RECORD_TABLE}

    def test_nothing_live_to_hand_over(self, trio_engine):
        with session_scope(trio_engine) as session:
            with create_strategy(StrategyKind.FULL_RECOMPUTE, session) as current:
                with pytest.raises(ComputeError):
                    switch_strategy(current, StrategyKind.MATERIALIZED_SNAPSHOT)
