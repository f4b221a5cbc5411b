"""
Strategy 2: Materialized Views.

============================================================
PURPOSE
============================================================
Keeps a persistent snapshot table of derived scores computed
eagerly under the live definition.

- refresh: drop the prior snapshot and rebuild it in full,
  in one transaction, committed before returning
- read: ordered scan of the precomputed table
- windowed definitions are rejected: the snapshot schema
  has no window concept

============================================================
READ BEHAVIOUR DURING REFRESH
============================================================
Drop-then-rebuild. Reads issued while a rebuild is in
flight fail with StoreUnavailable until the refresh returns.
Reads before the first snapshot also fail with
StoreUnavailable.

============================================================
"""

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from core.exceptions import DefinitionIncompatible, StoreUnavailable, ViewMaintenanceError
from view_maintenance import sql
from view_maintenance.types import ComplexityClass, MetricDefinition, StrategyKind
from .base import MaintenanceStrategy, ReadFence

logger = logging.getLogger(__name__)


SNAPSHOT_TABLE_PREFIX = "mv_risk_snapshot"


class MaterializedSnapshotStrategy(MaintenanceStrategy):
    """Eager snapshot, fully rebuilt on every definition change."""

    kind = StrategyKind.MATERIALIZED_SNAPSHOT
    title = "Strategy 2: Materialized Views"
    description = "Rebuilds a precomputed score table on every definition change."
    read_complexity = ComplexityClass.CONSTANT
    refresh_complexity = ComplexityClass.LINEAR
    read_fence = ReadFence.FAIL_FAST
    supports_windowing = False

    def __init__(self, session, clock=None, table_name: Optional[str] = None):
        super().__init__(session, clock)
        self.table_name = sql.ensure_identifier(table_name) if table_name else sql.auxiliary_table_name(
            SNAPSHOT_TABLE_PREFIX
        )
        self._built_for: Optional[MetricDefinition] = None

    def check_compatibility(self, old_def: MetricDefinition, new_def: MetricDefinition) -> None:
        if new_def.is_windowed:
            raise DefinitionIncompatible(
                f"{self.title}: snapshot schema has no window concept "
                f"(requested {new_def.shape})",
                strategy=self.kind.value,
                old_shape=old_def.shape,
                new_shape=new_def.shape,
            )

    def _apply(
        self,
        old_def: MetricDefinition,
        new_def: MetricDefinition,
    ) -> Tuple[int, Dict[str, Any]]:
        # Unreadable until the new snapshot commits
        self._built_for = None

        params = sql.score_params(new_def)
        with self._session.transaction(operation=f"{self.kind.value}.rebuild") as session:
            session.execute(sql.drop_table_sql(self.table_name), operation="drop_snapshot")
            session.execute(sql.create_score_table_sql(self.table_name), operation="create_snapshot")
            result = session.execute(
                sql.populate_score_table_sql(self.table_name),
                params,
                operation="populate_snapshot",
            )
            rows = result.rowcount
            session.execute(sql.score_index_sql(self.table_name), operation="index_snapshot")

        self._built_for = new_def
        logger.debug(f"Snapshot {self.table_name} rebuilt with {rows} rows")
        return rows, {"table": self.table_name}

    def _read(self, k: int, definition: MetricDefinition) -> Sequence[Mapping[str, Any]]:
        if self._built_for is None:
            raise self._not_ready_error()
        result = self._execute(sql.table_top_k_sql(self.table_name), {"k": k}, operation="read_top_k")
        return result.mappings().all()

    def _release(self) -> None:
        self._built_for = None
        self._execute(sql.drop_table_sql(self.table_name), operation="drop_snapshot")
        logger.debug(f"Snapshot {self.table_name} dropped")

    def _not_ready_error(self) -> ViewMaintenanceError:
        return StoreUnavailable(
            f"{self.title}: snapshot {self.table_name} is not available",
            store=self.table_name,
        )
