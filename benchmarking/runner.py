"""
Benchmarking - Runner.

============================================================
RESPONSIBILITY
============================================================
Scoped benchmark runs against a store engine.

- One StoreSession per strategy run, always released
- Empty stores and unreachable stores become failed samples
- Optional thread-per-strategy execution
- Runtime strategy switching

============================================================
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy.engine import Engine

from core.clock import ClockProtocol
from core.exceptions import BenchmarkCancelled, ComputeError, ViewMaintenanceError
from database.engine import StoreSession, session_scope
from database.record_store import RecordStore
from view_maintenance.registry import create_strategy, resolve_kind, strategy_class
from view_maintenance.strategies.base import MaintenanceStrategy
from view_maintenance.types import ChangeClass, StrategyKind
from .config import BenchmarkConfig
from .cost_model import ChangePattern, CostModel, Recommendation
from .harness import BenchmarkHarness, BenchmarkSample
from .scenarios import DefinitionChangeScenario, default_scenario, scenario_for_class

logger = logging.getLogger(__name__)


# Change classes sampled for a pattern recommendation
PATTERN_CLASSES = (
    ChangeClass.FULL_REWEIGHT,
    ChangeClass.SINGLE_DIMENSION,
    ChangeClass.WINDOW_WIDTH,
)


def run_benchmark(
    engine: Engine,
    kind: Union[StrategyKind, str],
    scenario: Optional[DefinitionChangeScenario] = None,
    config: Optional[BenchmarkConfig] = None,
    clock: Optional[ClockProtocol] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BenchmarkSample:
    """
    Benchmark one strategy in its own scoped session.

    Args:
        engine: Store engine; the session is acquired and released here
        kind: Strategy identifier
        scenario: Definition change (defaults to the strategy's showcase)
        config: Iterations, top_k, deadline, oracle verification
        clock: Harness clock
        cancel_event: Cooperative cancellation

    Returns:
        BenchmarkSample (failed samples carry the error)

    Raises:
        BenchmarkCancelled if cancel_event is set during the run
    """
    kind = resolve_kind(kind)
    scenario = scenario or default_scenario(kind)
    config = config or BenchmarkConfig()
    title = strategy_class(kind).title

    try:
        with session_scope(engine, label=f"{kind.value}-benchmark") as session:
            store = RecordStore(session)
            store.ensure_populated()
            records = store.fetch_records() if config.verify_samples else None

            strategy = create_strategy(kind, session)
            harness = BenchmarkHarness(clock)
            return harness.run(
                strategy,
                iterations=config.iterations,
                scenario=scenario,
                top_k=config.top_k,
                deadline_seconds=config.deadline_seconds,
                cancel_event=cancel_event,
                oracle_records=records,
            )
    except BenchmarkCancelled:
        raise
    except ViewMaintenanceError as e:
        logger.error(f"Benchmark {kind.value} could not run: {e.to_log_format()}")
        return BenchmarkSample.failed(kind, title, scenario, config.iterations, e)


def run_all_strategies(
    engine: Engine,
    kinds: Optional[Iterable[Union[StrategyKind, str]]] = None,
    scenarios: Optional[Mapping[StrategyKind, DefinitionChangeScenario]] = None,
    config: Optional[BenchmarkConfig] = None,
    clock: Optional[ClockProtocol] = None,
    cancel_event: Optional[threading.Event] = None,
    max_workers: int = 4,
) -> Dict[StrategyKind, BenchmarkSample]:
    """
    Benchmark several strategies, each with its own session.

    With config.parallel the runs execute in a thread pool;
    reads inside each run stay sequential.

    Returns:
        Samples keyed by strategy, in benchmark order
    """
    config = config or BenchmarkConfig()
    selected = [resolve_kind(k) for k in (kinds or StrategyKind.all_kinds())]
    scenarios = scenarios or {}

    def run_one(kind: StrategyKind) -> BenchmarkSample:
        return run_benchmark(
            engine,
            kind,
            scenario=scenarios.get(kind),
            config=config,
            clock=clock,
            cancel_event=cancel_event,
        )

    if not config.parallel:
        return {kind: run_one(kind) for kind in selected}

    logger.info(f"Running {len(selected)} benchmarks in parallel (max_workers={max_workers})")
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="benchmark") as pool:
        futures = {kind: pool.submit(run_one, kind) for kind in selected}
        return {kind: futures[kind].result() for kind in selected}


def benchmark_change_classes(
    engine: Engine,
    kinds: Optional[Iterable[Union[StrategyKind, str]]] = None,
    change_classes: Iterable[ChangeClass] = PATTERN_CLASSES,
    config: Optional[BenchmarkConfig] = None,
    clock: Optional[ClockProtocol] = None,
) -> Dict[ChangeClass, List[BenchmarkSample]]:
    """Benchmark every strategy under each change class' reference scenario."""
    selected = list(kinds) if kinds is not None else None
    samples: Dict[ChangeClass, List[BenchmarkSample]] = {}
    for change_class in change_classes:
        scenario = scenario_for_class(change_class)
        kinds_for_class = [resolve_kind(k) for k in (selected or StrategyKind.all_kinds())]
        results = run_all_strategies(
            engine,
            kinds=kinds_for_class,
            scenarios={kind: scenario for kind in kinds_for_class},
            config=config,
            clock=clock,
        )
        samples[change_class] = list(results.values())
    return samples


def recommend(
    engine: Engine,
    pattern: ChangePattern,
    reads_per_change: int = 10,
    config: Optional[BenchmarkConfig] = None,
    clock: Optional[ClockProtocol] = None,
) -> Recommendation:
    """Benchmark the pattern's active change classes and pick the cheapest strategy."""
    samples = benchmark_change_classes(
        engine,
        change_classes=pattern.active_classes(),
        config=config,
        clock=clock,
    )
    return CostModel(reads_per_change=reads_per_change).recommend_for_pattern(samples, pattern)


def switch_strategy(
    current: MaintenanceStrategy,
    new_kind: Union[StrategyKind, str],
    session: Optional[StoreSession] = None,
    clock: Optional[ClockProtocol] = None,
) -> MaintenanceStrategy:
    """
    Replace a live strategy with another kind.

    Tears down the current strategy's auxiliary state, then
    brings the new strategy up from the current live
    definition. A replacement that rejects the live
    definition leaves the current strategy untouched.

    Raises:
        ComputeError if the current strategy has no live definition
        DefinitionIncompatible if the new strategy rejects it
    """
    live = current.live_definition
    if live is None:
        raise ComputeError(
            f"{current.title} has no live definition to hand over",
            operation="switch_strategy",
        )

    session = session or current.session
    replacement = create_strategy(new_kind, session, clock=clock)
    try:
        # Reject before the current state is dropped
        replacement.check_compatibility(live, live)
    except BaseException:
        replacement.teardown()
        raise

    current.teardown()
    try:
        replacement.prepare(live)
        replacement.apply_definition_change(live, live)
    except BaseException:
        replacement.teardown()
        raise

    logger.info(
        f"Switched {current.kind.value} -> {replacement.kind.value} "
        f"at definition v{live.version}"
    )
    return replacement
