"""
View Maintenance - Strategy Registry.

Dispatch from StrategyKind to the strategy implementation.
"""

import logging
from typing import Any, Dict, List, Optional, Type, Union

from core.clock import ClockProtocol
from database.engine import StoreSession
from .strategies import (
    FullRecomputeStrategy,
    IncrementalDeltaStrategy,
    MaintenanceStrategy,
    MaterializedSnapshotStrategy,
    WindowedPartitionStrategy,
)
from .types import StrategyKind

logger = logging.getLogger(__name__)


STRATEGY_CLASSES: Dict[StrategyKind, Type[MaintenanceStrategy]] = {
    StrategyKind.FULL_RECOMPUTE: FullRecomputeStrategy,
    StrategyKind.MATERIALIZED_SNAPSHOT: MaterializedSnapshotStrategy,
    StrategyKind.INCREMENTAL_DELTA: IncrementalDeltaStrategy,
    StrategyKind.WINDOWED_PARTITION: WindowedPartitionStrategy,
}


def resolve_kind(kind: Union[StrategyKind, str]) -> StrategyKind:
    if isinstance(kind, StrategyKind):
        return kind
    return StrategyKind.from_identifier(kind)


def strategy_class(kind: Union[StrategyKind, str]) -> Type[MaintenanceStrategy]:
    return STRATEGY_CLASSES[resolve_kind(kind)]


def create_strategy(
    kind: Union[StrategyKind, str],
    session: StoreSession,
    clock: Optional[ClockProtocol] = None,
) -> MaintenanceStrategy:
    """
    Instantiate the strategy for `kind`, bound to `session`.

    Raises:
        ValueError: for an unknown identifier
    """
    cls = strategy_class(kind)
    logger.debug(f"Creating {cls.__name__} on session '{session.label}'")
    return cls(session, clock=clock)


def describe_strategies() -> List[Dict[str, Any]]:
    """Static metadata for every strategy, in benchmark order."""
    described = []
    for kind in StrategyKind.all_kinds():
        cls = STRATEGY_CLASSES[kind]
        described.append({
            "id": kind.value,
            "title": cls.title,
            "description": cls.description,
            "read_complexity": cls.read_complexity.value,
            "refresh_complexity": cls.refresh_complexity.value,
            "supports_windowing": cls.supports_windowing,
        })
    return described
