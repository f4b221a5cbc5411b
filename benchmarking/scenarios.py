"""
Benchmarking - Definition Change Scenarios.

A scenario is a named (old, new) pair of metric definitions.
The defaults reproduce the reference workload: a baseline of
anxiety 0.4 / stress 0.3 / depression 0.3, then one change
per strategy family.
"""

from dataclasses import dataclass
from typing import Dict

from view_maintenance.types import (
    ChangeClass,
    MetricDefinition,
    StrategyKind,
    classify_change,
)


@dataclass(frozen=True)
class DefinitionChangeScenario:
    """One definition change to benchmark."""

    name: str
    old: MetricDefinition
    new: MetricDefinition
    description: str = ""

    @property
    def change_class(self) -> ChangeClass:
        return classify_change(self.old, self.new)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "change_class": self.change_class.value,
            "old": self.old.to_dict(),
            "new": self.new.to_dict(),
            "description": self.description,
        }


# ============================================================
# REFERENCE DEFINITIONS
# ============================================================

BASELINE_DEFINITION = MetricDefinition.of(0.4, 0.3, 0.3, version=1)

# Reweight used by the snapshot strategy
REWEIGHTED_DEFINITION = MetricDefinition.of(0.5, 0.4, 0.1, version=2)

# Stress weight 0.3 -> 0.5
STRESS_SHIFT_DEFINITION = BASELINE_DEFINITION.evolve(stress=0.5)

NARROW_WINDOW_DEFINITION = MetricDefinition.of(0.4, 0.3, 0.3, window_size=5, version=1)
WIDE_WINDOW_DEFINITION = NARROW_WINDOW_DEFINITION.evolve(window_size=50)


# ============================================================
# SCENARIO LIBRARY
# ============================================================

FULL_REWEIGHT = DefinitionChangeScenario(
    name="full_reweight",
    old=BASELINE_DEFINITION,
    new=REWEIGHTED_DEFINITION,
    description="All three weights move: (0.4, 0.3, 0.3) -> (0.5, 0.4, 0.1)",
)

SINGLE_DIMENSION = DefinitionChangeScenario(
    name="stress_shift",
    old=BASELINE_DEFINITION,
    new=STRESS_SHIFT_DEFINITION,
    description="Stress weight 0.3 -> 0.5, other weights unchanged",
)

WINDOW_WIDTH = DefinitionChangeScenario(
    name="window_widen",
    old=NARROW_WINDOW_DEFINITION,
    new=WIDE_WINDOW_DEFINITION,
    description="Rolling window widened from 5 to 50 preceding rows",
)

NO_CHANGE = DefinitionChangeScenario(
    name="baseline",
    old=BASELINE_DEFINITION,
    new=BASELINE_DEFINITION,
    description="Baseline weights, nothing changes",
)

SCENARIOS_BY_CLASS: Dict[ChangeClass, DefinitionChangeScenario] = {
    ChangeClass.NO_CHANGE: NO_CHANGE,
    ChangeClass.FULL_REWEIGHT: FULL_REWEIGHT,
    ChangeClass.SINGLE_DIMENSION: SINGLE_DIMENSION,
    ChangeClass.WINDOW_WIDTH: WINDOW_WIDTH,
}

# The change each strategy is showcased with by default
DEFAULT_SCENARIOS: Dict[StrategyKind, DefinitionChangeScenario] = {
    StrategyKind.FULL_RECOMPUTE: NO_CHANGE,
    StrategyKind.MATERIALIZED_SNAPSHOT: FULL_REWEIGHT,
    StrategyKind.INCREMENTAL_DELTA: SINGLE_DIMENSION,
    StrategyKind.WINDOWED_PARTITION: WINDOW_WIDTH,
}


def default_scenario(kind: StrategyKind) -> DefinitionChangeScenario:
    return DEFAULT_SCENARIOS[kind]


def scenario_for_class(change_class: ChangeClass) -> DefinitionChangeScenario:
    return SCENARIOS_BY_CLASS[change_class]

