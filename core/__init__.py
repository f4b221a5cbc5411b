"""
Core Module Package.

This package contains the infrastructure components
that all other modules depend on.

Components:
- clock: Monotonic benchmark clock
- exceptions: Custom exception hierarchy
"""

from .clock import ClockProtocol, SystemClock, MockClock, measure, now_utc
from .exceptions import (
    ViewMaintenanceError,
    StoreUnavailable,
    DefinitionIncompatible,
    ComputeError,
    EmptyRecordStore,
    ConfigurationError,
    InvalidConfigError,
    IngestionError,
    BenchmarkCancelled,
)

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "measure",
    "now_utc",
    "ViewMaintenanceError",
    "StoreUnavailable",
    "DefinitionIncompatible",
    "ComputeError",
    "EmptyRecordStore",
    "ConfigurationError",
    "InvalidConfigError",
    "IngestionError",
    "BenchmarkCancelled",
]
