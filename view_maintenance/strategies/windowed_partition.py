"""
Strategy 4: Window Matrix.

Rolling aggregate of the base score over the preceding
`window_size` records of the same university, ordered by
record id, evaluated declaratively at read time:

    AVG(score) OVER (
        PARTITION BY university ORDER BY id
        ROWS BETWEEN <window_size> PRECEDING AND CURRENT ROW
    )

Window-width changes need no migration step. A definition
without a window is read with a zero-row frame, which is the
instantaneous score.
"""

import logging
from typing import Any, Dict, Mapping, Sequence, Tuple

from view_maintenance import sql
from view_maintenance.types import ComplexityClass, MetricDefinition, StrategyKind
from .base import MaintenanceStrategy, ReadFence

logger = logging.getLogger(__name__)


class WindowedPartitionStrategy(MaintenanceStrategy):
    """Read-time rolling aggregation over a partitioned, ordered frame."""

    kind = StrategyKind.WINDOWED_PARTITION
    title = "Strategy 4: Window Matrix"
    description = "Rolling mean per university, recomputed by a window function on each read."
    read_complexity = ComplexityClass.LINEAR
    refresh_complexity = ComplexityClass.CONSTANT
    read_fence = ReadFence.NONE

    def _apply(
        self,
        old_def: MetricDefinition,
        new_def: MetricDefinition,
    ) -> Tuple[int, Dict[str, Any]]:
        if old_def.window_size != new_def.window_size:
            logger.debug(
                f"Window frame {old_def.frame_preceding} -> {new_def.frame_preceding} preceding rows"
            )
        return 0, {
            "window_from": old_def.window_size,
            "window_to": new_def.window_size,
        }

    def _read(self, k: int, definition: MetricDefinition) -> Sequence[Mapping[str, Any]]:
        params = sql.score_params(definition)
        params["k"] = k
        statement = sql.top_k_sql(sql.rolling_scores_sql(definition))
        return self._execute(statement, params, operation="read_top_k").mappings().all()
