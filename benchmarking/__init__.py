"""
Benchmarking Module.

============================================================
PURPOSE
============================================================
Measures maintenance strategies under definition changes
and recommends the cheapest one for a change pattern.

- harness: refresh latency + sequential read latencies
- report: presentation format with N/A on failure
- cost_model: refresh + amortized read cost
- runner: scoped sessions, parallel runs, strategy switching

============================================================
"""

from .config import (
    StoreConfig,
    BenchmarkConfig,
    CostModelConfig,
    DriftLabConfig,
    get_default_config,
    load_config_from_env,
)
from .scenarios import (
    DefinitionChangeScenario,
    BASELINE_DEFINITION,
    FULL_REWEIGHT,
    SINGLE_DIMENSION,
    WINDOW_WIDTH,
    NO_CHANGE,
    default_scenario,
    scenario_for_class,
)
from .harness import BenchmarkHarness, BenchmarkSample
from .report import StrategyReport, build_reports, format_latency, render_reports
from .cost_model import ChangePattern, CostModel, Recommendation, StrategyCost
from .runner import (
    run_benchmark,
    run_all_strategies,
    benchmark_change_classes,
    recommend,
    switch_strategy,
)

__all__ = [
    # Config
    "StoreConfig",
    "BenchmarkConfig",
    "CostModelConfig",
    "DriftLabConfig",
    "get_default_config",
    "load_config_from_env",
    # Scenarios
    "DefinitionChangeScenario",
    "BASELINE_DEFINITION",
    "FULL_REWEIGHT",
    "SINGLE_DIMENSION",
    "WINDOW_WIDTH",
    "NO_CHANGE",
    "default_scenario",
    "scenario_for_class",
    # Harness
    "BenchmarkHarness",
    "BenchmarkSample",
    # Reports
    "StrategyReport",
    "build_reports",
    "format_latency",
    "render_reports",
    # Cost model
    "ChangePattern",
    "CostModel",
    "Recommendation",
    "StrategyCost",
    # Runner
    "run_benchmark",
    "run_all_strategies",
    "benchmark_change_classes",
    "recommend",
    "switch_strategy",
]
