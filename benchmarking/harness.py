"""
Benchmarking - Benchmark Harness.

============================================================
RESPONSIBILITY
============================================================
Measures one maintenance strategy under one definition
change.

- Applies the change once, timed as refresh latency
- Issues `iterations` sequential reads, timing each
- Keeps the first read's rows as the spot-check sample
- Stops at the first failure and keeps partial results

============================================================
DESIGN PRINCIPLES
============================================================
- Monotonic clock only (injectable for tests)
- Sequential reads: no contention inside a run
- Never compares strategies; the cost model does that
- Errors are recorded, never swallowed and never zero
- Cancellation propagates; teardown always runs

============================================================
RUN WORKFLOW
============================================================
1. prepare(scenario.old)         untimed one-time setup
2. apply_definition_change       -> refresh_latency_ms
3. read_top_k x iterations       -> latencies_ms
4. optional oracle spot-check    -> ComputeError on mismatch
5. teardown()

============================================================
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.clock import ClockProtocol, SystemClock, measure, now_utc
from core.exceptions import (
    BenchmarkCancelled,
    ComputeError,
    StoreUnavailable,
    ViewMaintenanceError,
    wrap_exception,
)
from database.record_store import Record
from view_maintenance.oracle import find_mismatches
from view_maintenance.strategies.base import MaintenanceStrategy
from view_maintenance.types import StrategyKind
from .scenarios import DefinitionChangeScenario

logger = logging.getLogger(__name__)


# ============================================================
# BENCHMARK SAMPLE
# ============================================================


@dataclass
class BenchmarkSample:
    """
    Result of one harness run.

    Created per run and discarded after reporting. A failed
    run keeps every latency gathered before the failure.
    """

    strategy_id: StrategyKind
    strategy_title: str
    scenario_name: str
    iterations_requested: int
    latencies_ms: List[float] = field(default_factory=list)
    refresh_latency_ms: Optional[float] = None
    rows_affected: Optional[int] = None
    sample_rows: List[Tuple[int, float]] = field(default_factory=list)
    error: Optional[ViewMaintenanceError] = None
    failed_phase: Optional[str] = None
    started_at: datetime = field(default_factory=now_utc)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def completed_iterations(self) -> int:
        return len(self.latencies_ms)

    @property
    def average_read_latency_ms(self) -> Optional[float]:
        """Arithmetic mean of the collected read latencies."""
        if not self.latencies_ms:
            return None
        return sum(self.latencies_ms) / len(self.latencies_ms)

    def record_failure(self, phase: str, error: ViewMaintenanceError) -> None:
        self.error = error
        self.failed_phase = phase

    @classmethod
    def failed(
        cls,
        kind: StrategyKind,
        title: str,
        scenario: DefinitionChangeScenario,
        iterations: int,
        error: ViewMaintenanceError,
        phase: str = "setup",
    ) -> "BenchmarkSample":
        """Sample for a run that could not start."""
        sample = cls(
            strategy_id=kind,
            strategy_title=title,
            scenario_name=scenario.name,
            iterations_requested=iterations,
        )
        sample.record_failure(phase, error)
        return sample

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy_id": self.strategy_id.value,
            "strategy_title": self.strategy_title,
            "scenario_name": self.scenario_name,
            "iterations_requested": self.iterations_requested,
            "completed_iterations": self.completed_iterations,
            "latencies_ms": list(self.latencies_ms),
            "refresh_latency_ms": self.refresh_latency_ms,
            "average_read_latency_ms": self.average_read_latency_ms,
            "rows_affected": self.rows_affected,
            "sample_rows": [list(row) for row in self.sample_rows],
            "error": self.error.to_dict() if self.error else None,
            "failed_phase": self.failed_phase,
            "started_at": self.started_at.isoformat(),
        }


# ============================================================
# HARNESS
# ============================================================


class BenchmarkHarness:
    """
    Drives one strategy through one scenario.

    Usage:
        harness = BenchmarkHarness()
        sample = harness.run(strategy, iterations=10, scenario=FULL_REWEIGHT)
    """

    def __init__(self, clock: Optional[ClockProtocol] = None):
        """
        Args:
            clock: Monotonic clock used for every latency
        """
        self._clock = clock or SystemClock()

    def run(
        self,
        strategy: MaintenanceStrategy,
        iterations: int,
        scenario: DefinitionChangeScenario,
        top_k: int = 5,
        deadline_seconds: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        oracle_records: Optional[Sequence[Record]] = None,
        teardown: bool = True,
    ) -> BenchmarkSample:
        """
        Benchmark `strategy` under `scenario`.

        Args:
            strategy: Strategy bound to an open session
            iterations: Number of sequential reads
            scenario: Definition change applied once
            top_k: Rows per read
            deadline_seconds: Run deadline; expiry is recorded as StoreUnavailable
            cancel_event: Set to cancel; raises BenchmarkCancelled
            oracle_records: Records for the oracle spot-check of the sample
            teardown: Tear the strategy down when the run ends

        Returns:
            BenchmarkSample, failed or not
        """
        if iterations < 1:
            raise ValueError(f"iterations must be >= 1, got {iterations}")
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")

        sample = BenchmarkSample(
            strategy_id=strategy.kind,
            strategy_title=strategy.title,
            scenario_name=scenario.name,
            iterations_requested=iterations,
        )
        deadline_at = None
        if deadline_seconds is not None:
            deadline_at = self._clock.monotonic_ms() + deadline_seconds * 1000.0

        logger.info(
            f"Benchmark {strategy.kind.value}: scenario={scenario.name} "
            f"iterations={iterations} top_k={top_k}"
        )

        try:
            self._execute(strategy, iterations, scenario, top_k, sample, deadline_at, cancel_event)
            if sample.succeeded and oracle_records is not None:
                self._verify(sample, oracle_records, scenario)
        finally:
            if teardown:
                strategy.teardown()

        if sample.succeeded:
            logger.info(
                f"Benchmark {strategy.kind.value} complete: "
                f"refresh={sample.refresh_latency_ms:.2f} ms "
                f"avg_read={sample.average_read_latency_ms:.2f} ms"
            )
        else:
            logger.warning(
                f"Benchmark {strategy.kind.value} failed during {sample.failed_phase} "
                f"after {sample.completed_iterations}/{iterations} reads: "
                f"{sample.error.to_log_format()}"
            )
        return sample

    # --------------------------------------------------------
    # PHASES
    # --------------------------------------------------------

    def _execute(
        self,
        strategy: MaintenanceStrategy,
        iterations: int,
        scenario: DefinitionChangeScenario,
        top_k: int,
        sample: BenchmarkSample,
        deadline_at: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> None:
        self._check_cancelled(cancel_event, strategy)
        try:
            strategy.prepare(scenario.old)
        except Exception as e:
            sample.record_failure("prepare", self._as_lab_error(e, "prepare"))
            return

        self._check_cancelled(cancel_event, strategy)
        try:
            with measure(self._clock) as refresh_timer:
                result = strategy.apply_definition_change(scenario.old, scenario.new)
            sample.refresh_latency_ms = refresh_timer.elapsed_ms
            sample.rows_affected = result.rows_affected
        except Exception as e:
            sample.record_failure("refresh", self._as_lab_error(e, "apply_definition_change"))
            return

        for iteration in range(iterations):
            self._check_cancelled(cancel_event, strategy)
            if self._expired(deadline_at):
                sample.record_failure("read", StoreUnavailable(
                    f"Deadline expired before read {iteration + 1} of {iterations}",
                    store=strategy.kind.value,
                ))
                return

            try:
                with measure(self._clock) as read_timer:
                    rows = strategy.read_top_k(top_k)
            except Exception as e:
                sample.record_failure("read", self._as_lab_error(e, "read_top_k"))
                return

            sample.latencies_ms.append(read_timer.elapsed_ms)
            if iteration == 0:
                sample.sample_rows = [row.as_pair() for row in rows]

    def _verify(
        self,
        sample: BenchmarkSample,
        records: Sequence[Record],
        scenario: DefinitionChangeScenario,
    ) -> None:
        mismatches = find_mismatches(sample.sample_rows, records, scenario.new)
        if mismatches:
            record_id, expected, actual = mismatches[0]
            sample.record_failure("verify", ComputeError(
                f"{len(mismatches)} sample rows disagree with the oracle; "
                f"record {record_id}: expected {expected}, got {actual}",
                operation="verify_sample",
            ))
            return

        scores = [score for _, score in sample.sample_rows]
        if any(later > earlier for earlier, later in zip(scores, scores[1:])):
            sample.record_failure("verify", ComputeError(
                "Sample rows are not ordered by descending score",
                operation="verify_sample",
            ))

    # --------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------

    def _expired(self, deadline_at: Optional[float]) -> bool:
        return deadline_at is not None and self._clock.monotonic_ms() >= deadline_at

    @staticmethod
    def _check_cancelled(
        cancel_event: Optional[threading.Event],
        strategy: MaintenanceStrategy,
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Benchmark {strategy.kind.value} cancelled")
            raise BenchmarkCancelled(
                f"Benchmark of {strategy.kind.value} cancelled",
                context={"strategy": strategy.kind.value},
            )

    @staticmethod
    def _as_lab_error(exc: Exception, operation: str) -> ViewMaintenanceError:
        if isinstance(exc, BenchmarkCancelled):
            raise exc
        return wrap_exception(
            exc,
            ComputeError,
            message=f"Unexpected {type(exc).__name__} during {operation}: {exc}",
            operation=operation,
        )
