"""
Strategy 1: Full SQL Recompute.

No persistent derived state. The definition is supplied at
read time and every read scores all records.

- refresh: O(1), only records the new definition
- read: full scan plus partial sort on every call
- accepts any definition, so it is the universal fallback
"""

import logging
from typing import Any, Dict, Mapping, Sequence, Tuple

from view_maintenance import sql
from view_maintenance.types import ComplexityClass, MetricDefinition, StrategyKind
from .base import MaintenanceStrategy, ReadFence

logger = logging.getLogger(__name__)


class FullRecomputeStrategy(MaintenanceStrategy):
    """Baseline: recompute every score on every read."""

    kind = StrategyKind.FULL_RECOMPUTE
    title = "Strategy 1: Full SQL Recompute"
    description = "Scores every record under the live definition on each read."
    read_complexity = ComplexityClass.LINEAR
    refresh_complexity = ComplexityClass.CONSTANT
    read_fence = ReadFence.NONE

    def _apply(
        self,
        old_def: MetricDefinition,
        new_def: MetricDefinition,
    ) -> Tuple[int, Dict[str, Any]]:
        return 0, {"mode": "rolling" if new_def.is_windowed else "instantaneous"}

    def _read(self, k: int, definition: MetricDefinition) -> Sequence[Mapping[str, Any]]:
        if definition.is_windowed:
            source = sql.rolling_scores_sql(definition)
        else:
            source = sql.instantaneous_scores_sql()

        params = sql.score_params(definition)
        params["k"] = k
        result = self._execute(sql.top_k_sql(source), params, operation="read_top_k")
        return result.mappings().all()
