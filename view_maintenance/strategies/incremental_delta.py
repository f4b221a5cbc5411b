"""
Strategy 3: Incremental Sync.

============================================================
PURPOSE
============================================================
Maintains per-record precomputed scores, seeded once under
a baseline definition, and absorbs weight changes with one
bulk delta update:

    score += raw_k(r) * (new_weight_k - old_weight_k)

for each dimension k whose weight actually changed.
Unchanged dimensions never appear in the UPDATE.

============================================================
INVARIANTS
============================================================
- Deltas are taken from the live definition, so repeating
  (old, new) after success is a no-op
- d0 -> d1 -> d2 yields the same scores as d0 -> d2
- Both definitions must be instantaneous (no window);
  anything else raises DefinitionIncompatible
- Readers wait for an in-flight update and then see the
  post-change scores

============================================================
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from core.exceptions import DefinitionIncompatible
from view_maintenance import sql
from view_maintenance.types import ComplexityClass, MetricDefinition, StrategyKind
from .base import MaintenanceStrategy, ReadFence

logger = logging.getLogger(__name__)


PRECALC_TABLE_PREFIX = "precalc_risk_state"


class IncrementalDeltaStrategy(MaintenanceStrategy):
    """Seed once, then apply per-dimension weight deltas in bulk."""

    kind = StrategyKind.INCREMENTAL_DELTA
    title = "Strategy 3: Incremental Sync"
    description = "Adds raw_k * delta_k to precomputed scores for changed weights only."
    read_complexity = ComplexityClass.LOGARITHMIC
    refresh_complexity = ComplexityClass.LINEAR
    read_fence = ReadFence.BLOCK
    supports_windowing = False

    def __init__(self, session, clock=None, table_name: Optional[str] = None):
        super().__init__(session, clock)
        self.table_name = sql.ensure_identifier(table_name) if table_name else sql.auxiliary_table_name(
            PRECALC_TABLE_PREFIX
        )
        self._seeded = False

    @property
    def is_seeded(self) -> bool:
        return self._seeded

    def check_compatibility(self, old_def: MetricDefinition, new_def: MetricDefinition) -> None:
        if not old_def.is_comparable_to(new_def):
            raise DefinitionIncompatible(
                f"{self.title}: cannot take a delta between {old_def.shape} "
                f"and {new_def.shape} definitions",
                strategy=self.kind.value,
                old_shape=old_def.shape,
                new_shape=new_def.shape,
            )
        if new_def.is_windowed:
            raise DefinitionIncompatible(
                f"{self.title}: windowed definitions have no per-record delta",
                strategy=self.kind.value,
                old_shape=old_def.shape,
                new_shape=new_def.shape,
            )

    def prepare(self, baseline: MetricDefinition) -> None:
        """
        Seed the precomputed table under `baseline`.

        Runs outside apply_definition_change so the one-time
        seeding is not charged to a refresh.
        """
        self.check_compatibility(baseline, baseline)
        with self._writer_lock:
            self._ensure_open()
            self._fence.acquire_write()
            try:
                rows = self._seed(baseline)
                self._live = baseline
            finally:
                self._fence.release_write()
        logger.info(f"{self.kind.value}: seeded {rows} rows under definition v{baseline.version}")

    def _seed(self, definition: MetricDefinition) -> int:
        self._seeded = False
        with self._session.transaction(operation=f"{self.kind.value}.seed") as session:
            session.execute(sql.drop_table_sql(self.table_name), operation="drop_precalc")
            session.execute(sql.create_score_table_sql(self.table_name), operation="create_precalc")
            result = session.execute(
                sql.populate_score_table_sql(self.table_name),
                sql.score_params(definition),
                operation="seed_precalc",
            )
            rows = result.rowcount
            session.execute(sql.score_index_sql(self.table_name), operation="index_precalc")
        self._seeded = True
        return rows

    def _apply(
        self,
        old_def: MetricDefinition,
        new_def: MetricDefinition,
    ) -> Tuple[int, Dict[str, Any]]:
        if not self._seeded:
            # Not prepared: seeding is charged to this refresh
            seeded = self._seed(old_def)
            self._live = old_def
            logger.debug(f"{self.kind.value}: seeded {seeded} rows on first change")

        base = self._live
        if not base.same_formula(old_def):
            logger.warning(
                f"{self.kind.value}: caller's old definition v{old_def.version} differs from "
                f"live v{base.version}; delta taken from the live definition"
            )

        delta = base.weights.delta(new_def.weights)
        if not delta:
            return 0, {"delta": {}}

        params = {sql.delta_param(dimension): value for dimension, value in delta.items()}
        with self._session.transaction(operation=f"{self.kind.value}.delta") as session:
            result = session.execute(
                sql.delta_update_sql(self.table_name, list(delta)),
                params,
                operation="apply_delta",
            )
            rows = result.rowcount

        return rows, {"delta": {dimension.value: value for dimension, value in delta.items()}}

    def _read(self, k: int, definition: MetricDefinition) -> Sequence[Mapping[str, Any]]:
        result = self._execute(sql.table_top_k_sql(self.table_name), {"k": k}, operation="read_top_k")
        return result.mappings().all()

    def _release(self) -> None:
        self._seeded = False
        self._execute(sql.drop_table_sql(self.table_name), operation="drop_precalc")
        logger.debug(f"Precalc table {self.table_name} dropped")
