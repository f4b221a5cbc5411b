"""
Benchmarking - Cost Model / Selector.

============================================================
PURPOSE
============================================================
Turns benchmark samples into an advisory choice of the
cheapest maintenance strategy.

============================================================
COST
============================================================
total_cost = refresh_latency_ms
           + reads_per_change * average_read_latency_ms

For an anticipated mix of change classes the expected cost
is the probability-weighted sum of per-class costs. A
strategy that failed a class with non-zero probability is
not eligible.

============================================================
ADVISORY ONLY
============================================================
The caller decides whether to switch strategies; see
runner.switch_strategy.

============================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from core.exceptions import ComputeError, InvalidConfigError
from view_maintenance.types import ChangeClass, StrategyKind
from .config import CostModelConfig
from .harness import BenchmarkSample

logger = logging.getLogger(__name__)


# ============================================================
# DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class StrategyCost:
    """Amortized cost of one strategy for one sample."""

    strategy_id: StrategyKind
    refresh_ms: float
    average_read_ms: float
    reads_per_change: int

    @property
    def total_cost_ms(self) -> float:
        return self.refresh_ms + self.reads_per_change * self.average_read_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy_id": self.strategy_id.value,
            "refresh_ms": self.refresh_ms,
            "average_read_ms": self.average_read_ms,
            "reads_per_change": self.reads_per_change,
            "total_cost_ms": self.total_cost_ms,
        }


@dataclass(frozen=True)
class ChangePattern:
    """
    Anticipated mix of definition changes.

    Probabilities per change class; they must sum to 1.
    """

    full_reweight: float = 0.0
    single_dimension: float = 0.0
    window_width: float = 0.0

    def __post_init__(self) -> None:
        values = self.probabilities()
        for change_class, p in values.items():
            if p < 0:
                raise InvalidConfigError(change_class.value, p, "probability must be >= 0")
        if abs(sum(values.values()) - 1.0) > 1e-6:
            raise InvalidConfigError("change_pattern", values, "probabilities must sum to 1")

    @classmethod
    def only(cls, change_class: ChangeClass) -> "ChangePattern":
        """Pattern where every change is of one class."""
        field_by_class = {
            ChangeClass.FULL_REWEIGHT: "full_reweight",
            ChangeClass.SINGLE_DIMENSION: "single_dimension",
            ChangeClass.WINDOW_WIDTH: "window_width",
        }
        if change_class not in field_by_class:
            raise ValueError(f"No change pattern for {change_class.value}")
        return cls(**{field_by_class[change_class]: 1.0})

    @classmethod
    def from_config(cls, config: CostModelConfig) -> "ChangePattern":
        return cls(
            full_reweight=config.full_reweight_probability,
            single_dimension=config.single_dimension_probability,
            window_width=config.window_width_probability,
        )

    def probabilities(self) -> Dict[ChangeClass, float]:
        return {
            ChangeClass.FULL_REWEIGHT: self.full_reweight,
            ChangeClass.SINGLE_DIMENSION: self.single_dimension,
            ChangeClass.WINDOW_WIDTH: self.window_width,
        }

    def active_classes(self) -> List[ChangeClass]:
        return [c for c, p in self.probabilities().items() if p > 0]


@dataclass(frozen=True)
class Recommendation:
    """Cheapest eligible strategy and the evidence behind it."""

    strategy_id: StrategyKind
    expected_cost_ms: float
    ranking: List[Dict[str, Any]] = field(default_factory=list)
    excluded: Dict[str, str] = field(default_factory=dict)
    reads_per_change: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy_id": self.strategy_id.value,
            "expected_cost_ms": self.expected_cost_ms,
            "reads_per_change": self.reads_per_change,
            "ranking": list(self.ranking),
            "excluded": dict(self.excluded),
        }


# ============================================================
# COST MODEL
# ============================================================


class CostModel:
    """
    Ranks strategies by amortized cost.

    Usage:
        model = CostModel(reads_per_change=100)
        choice = model.recommend(samples)
    """

    def __init__(self, reads_per_change: int = 10):
        if reads_per_change < 0:
            raise InvalidConfigError("reads_per_change", reads_per_change, "must be >= 0")
        self.reads_per_change = reads_per_change

    @classmethod
    def from_config(cls, config: CostModelConfig) -> "CostModel":
        return cls(reads_per_change=config.reads_per_change)

    def cost_of(self, sample: BenchmarkSample) -> Optional[StrategyCost]:
        """Cost of a sample, or None for a failed/incomplete one."""
        if not sample.succeeded or sample.refresh_latency_ms is None:
            return None
        average = sample.average_read_latency_ms
        if average is None:
            return None
        return StrategyCost(
            strategy_id=sample.strategy_id,
            refresh_ms=sample.refresh_latency_ms,
            average_read_ms=average,
            reads_per_change=self.reads_per_change,
        )

    def rank(self, samples: Iterable[BenchmarkSample]) -> List[StrategyCost]:
        """Costs of the usable samples, cheapest first."""
        costs = [c for c in (self.cost_of(s) for s in samples) if c is not None]
        return sorted(costs, key=lambda c: (c.total_cost_ms, _benchmark_order(c.strategy_id)))

    def recommend(self, samples: Iterable[BenchmarkSample]) -> Recommendation:
        """
        Recommend the cheapest strategy for one change class.

        All samples must come from the same scenario.

        Raises:
            ComputeError if the scenarios differ or no sample is usable
        """
        samples = list(samples)
        scenario_names = sorted({s.scenario_name for s in samples})
        if len(scenario_names) > 1:
            raise ComputeError(
                "Samples come from different scenarios; recommend per change class",
                operation="recommend",
                context={"scenarios": scenario_names},
            )
        ranking = self.rank(samples)
        excluded = {
            s.strategy_id.value: _exclusion_reason(s)
            for s in samples
            if self.cost_of(s) is None
        }
        if not ranking:
            raise ComputeError(
                "No strategy produced a usable benchmark sample",
                operation="recommend",
                context={"excluded": excluded},
            )

        best = ranking[0]
        logger.info(
            f"Recommended {best.strategy_id.value} at {best.total_cost_ms:.2f} ms "
            f"per change ({self.reads_per_change} reads/change)"
        )
        return Recommendation(
            strategy_id=best.strategy_id,
            expected_cost_ms=best.total_cost_ms,
            ranking=[c.to_dict() for c in ranking],
            excluded=excluded,
            reads_per_change=self.reads_per_change,
        )

    def recommend_for_pattern(
        self,
        samples_by_class: Mapping[ChangeClass, Iterable[BenchmarkSample]],
        pattern: ChangePattern,
    ) -> Recommendation:
        """
        Recommend for an anticipated mix of change classes.

        Args:
            samples_by_class: Samples per change class, one per strategy
            pattern: Probability of each change class

        Raises:
            ComputeError if no strategy is usable for every active class
        """
        probabilities = pattern.probabilities()
        active = pattern.active_classes()

        per_class: Dict[ChangeClass, Dict[StrategyKind, StrategyCost]] = {}
        seen: Dict[StrategyKind, None] = {}
        excluded: Dict[str, str] = {}
        for change_class in active:
            per_class[change_class] = {}
            for sample in samples_by_class.get(change_class, []):
                seen[sample.strategy_id] = None
                cost = self.cost_of(sample)
                if cost is None:
                    excluded[sample.strategy_id.value] = (
                        f"{change_class.value}: {_exclusion_reason(sample)}"
                    )
                else:
                    per_class[change_class][sample.strategy_id] = cost

        expected: Dict[StrategyKind, float] = {}
        for kind in seen:
            if kind.value in excluded:
                continue
            missing = [c.value for c in active if kind not in per_class[c]]
            if missing:
                excluded[kind.value] = f"no sample for {', '.join(missing)}"
                continue
            expected[kind] = sum(
                probabilities[c] * per_class[c][kind].total_cost_ms for c in active
            )

        if not expected:
            raise ComputeError(
                "No strategy is usable for every anticipated change class",
                operation="recommend_for_pattern",
                context={"excluded": excluded},
            )

        ordered = sorted(expected.items(), key=lambda kv: (kv[1], _benchmark_order(kv[0])))
        best_kind, best_cost = ordered[0]
        logger.info(f"Recommended {best_kind.value} for pattern at {best_cost:.2f} ms expected")
        return Recommendation(
            strategy_id=best_kind,
            expected_cost_ms=best_cost,
            ranking=[
                {"strategy_id": kind.value, "expected_cost_ms": cost}
                for kind, cost in ordered
            ],
            excluded=excluded,
            reads_per_change=self.reads_per_change,
        )


def _benchmark_order(kind: StrategyKind) -> int:
    return StrategyKind.all_kinds().index(kind)


def _exclusion_reason(sample: BenchmarkSample) -> str:
    if sample.error is not None:
        return f"{sample.error.error_type}: {sample.error.message}"
    return "incomplete sample"
