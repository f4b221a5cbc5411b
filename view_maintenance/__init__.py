"""
View Maintenance Module.

============================================================
PURPOSE
============================================================
Keeps a derived risk score queryable while its definition
drifts (new weights, new aggregation window).

Four strategies share one contract:
- FullRecomputeStrategy: score everything on every read
- MaterializedSnapshotStrategy: rebuild a snapshot per change
- IncrementalDeltaStrategy: add per-dimension weight deltas
- WindowedPartitionStrategy: rolling mean via window function

============================================================
USAGE
============================================================
    from view_maintenance import MetricDefinition, create_strategy

    baseline = MetricDefinition.of(0.4, 0.3, 0.3)
    with session_scope(engine) as session:
        with create_strategy("incremental_delta", session) as strategy:
            strategy.prepare(baseline)
            strategy.apply_definition_change(baseline, baseline.evolve(stress=0.5))
            top = strategy.read_top_k(5)

============================================================
"""

from .types import (
    SCORE_TOLERANCE,
    StrategyKind,
    ComplexityClass,
    ScoreDimension,
    ChangeClass,
    ScoreWeights,
    MetricDefinition,
    DerivedScore,
    RefreshResult,
    classify_change,
    scores_match,
)
from .strategies import (
    MaintenanceStrategy,
    ReadFence,
    FullRecomputeStrategy,
    MaterializedSnapshotStrategy,
    IncrementalDeltaStrategy,
    WindowedPartitionStrategy,
)
from .registry import create_strategy, describe_strategies, resolve_kind
from .oracle import compute_score, compute_derived_scores, expected_top_k, find_mismatches


__all__ = [
    # Types
    "SCORE_TOLERANCE",
    "StrategyKind",
    "ComplexityClass",
    "ScoreDimension",
    "ChangeClass",
    "ScoreWeights",
    "MetricDefinition",
    "DerivedScore",
    "RefreshResult",
    "classify_change",
    "scores_match",
    # Strategies
    "MaintenanceStrategy",
    "ReadFence",
    "FullRecomputeStrategy",
    "MaterializedSnapshotStrategy",
    "IncrementalDeltaStrategy",
    "WindowedPartitionStrategy",
    # Registry
    "create_strategy",
    "describe_strategies",
    "resolve_kind",
    # Oracle
    "compute_score",
    "compute_derived_scores",
    "expected_top_k",
    "find_mismatches",
]
