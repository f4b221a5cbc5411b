"""
View Maintenance Strategies.

Four structurally different ways of keeping the derived
risk score queryable across definition changes.
"""

from .base import MaintenanceStrategy, ReadFence, ReadWriteFence
from .full_recompute import FullRecomputeStrategy
from .materialized_snapshot import MaterializedSnapshotStrategy
from .incremental_delta import IncrementalDeltaStrategy
from .windowed_partition import WindowedPartitionStrategy

__all__ = [
    "MaintenanceStrategy",
    "ReadFence",
    "ReadWriteFence",
    "FullRecomputeStrategy",
    "MaterializedSnapshotStrategy",
    "IncrementalDeltaStrategy",
    "WindowedPartitionStrategy",
]
