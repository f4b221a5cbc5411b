"""
Metric Drift Lab - Configuration.

============================================================
PURPOSE
============================================================
Configuration dataclasses for the record store connection,
the benchmark harness and the cost model.

============================================================
DESIGN PRINCIPLES
============================================================
- Immutable configurations
- Store settings come from the environment (.env honoured)
- Invalid values fail loudly with InvalidConfigError
- Defaults mirror the reference benchmark: 10 reads, top 5

============================================================
ENVIRONMENT
============================================================
DATABASE_URL          Record store URL (SQLite file by default)
DB_POOL_SIZE          Pooled connections (server databases)
DB_MAX_OVERFLOW       Extra connections beyond the pool
DB_POOL_TIMEOUT       Seconds to wait for a connection
DB_ECHO               Log SQL statements ("1"/"true")
BENCHMARK_ITERATIONS  Reads per benchmark run
BENCHMARK_TOP_K       Rows per read
BENCHMARK_DEADLINE_S  Optional per-run deadline in seconds

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from core.exceptions import InvalidConfigError
from database.engine import describe_url, get_database_url


# ============================================================
# STORE CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class StoreConfig:
    """Connection settings for the record store."""

    database_url: str = "sqlite:///metric_drift_lab.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False

    def __post_init__(self) -> None:
        if not self.database_url:
            raise InvalidConfigError("database_url", self.database_url, "must not be empty")
        if self.pool_size < 1:
            raise InvalidConfigError("pool_size", self.pool_size, "must be >= 1")
        if self.max_overflow < 0:
            raise InvalidConfigError("max_overflow", self.max_overflow, "must be >= 0")
        if self.pool_timeout <= 0:
            raise InvalidConfigError("pool_timeout", self.pool_timeout, "must be > 0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database_url": describe_url(self.database_url),
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "echo": self.echo,
        }


# ============================================================
# BENCHMARK CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class BenchmarkConfig:
    """
    Harness settings.

    iterations and top_k match the reference workload: ten
    sequential reads of the top five scores.
    """

    iterations: int = 10
    top_k: int = 5
    deadline_seconds: Optional[float] = None   # None = no deadline
    verify_samples: bool = True                # oracle spot-check of sample rows
    parallel: bool = False                     # one thread per strategy

    def __post_init__(self) -> None:
        if self.iterations < 1:
            raise InvalidConfigError("iterations", self.iterations, "must be >= 1")
        if self.top_k < 1:
            raise InvalidConfigError("top_k", self.top_k, "must be >= 1")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise InvalidConfigError("deadline_seconds", self.deadline_seconds, "must be > 0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iterations": self.iterations,
            "top_k": self.top_k,
            "deadline_seconds": self.deadline_seconds,
            "verify_samples": self.verify_samples,
            "parallel": self.parallel,
        }


# ============================================================
# COST MODEL CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class CostModelConfig:
    """
    Cost model settings.

    reads_per_change is the number of reads expected between
    two definition changes; refresh cost is amortized over it.
    """

    reads_per_change: int = 10

    # Anticipated change mix (must sum to 1)
    full_reweight_probability: float = 0.4
    single_dimension_probability: float = 0.4
    window_width_probability: float = 0.2

    def __post_init__(self) -> None:
        if self.reads_per_change < 0:
            raise InvalidConfigError("reads_per_change", self.reads_per_change, "must be >= 0")
        probabilities = (
            self.full_reweight_probability,
            self.single_dimension_probability,
            self.window_width_probability,
        )
        if any(p < 0 for p in probabilities):
            raise InvalidConfigError("change_pattern", probabilities, "probabilities must be >= 0")
        if abs(sum(probabilities) - 1.0) > 1e-6:
            raise InvalidConfigError("change_pattern", probabilities, "probabilities must sum to 1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reads_per_change": self.reads_per_change,
            "full_reweight_probability": self.full_reweight_probability,
            "single_dimension_probability": self.single_dimension_probability,
            "window_width_probability": self.window_width_probability,
        }


# ============================================================
# MASTER CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class DriftLabConfig:
    """Aggregates store, benchmark and cost model settings."""

    store: StoreConfig = field(default_factory=StoreConfig)
    benchmark: BenchmarkConfig = field(default_factory=BenchmarkConfig)
    cost_model: CostModelConfig = field(default_factory=CostModelConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": self.store.to_dict(),
            "benchmark": self.benchmark.to_dict(),
            "cost_model": self.cost_model.to_dict(),
        }


# ============================================================
# DEFAULT CONFIGURATION
# ============================================================


def get_default_config() -> DriftLabConfig:
    """Return the default configuration (local SQLite store)."""
    return DriftLabConfig()


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfigError(key, raw, "must be an integer")


def _env_float(key: str) -> Optional[float]:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfigError(key, raw, "must be a number")


def load_config_from_env() -> DriftLabConfig:
    """
    Build the configuration from environment variables.

    Unset variables keep their defaults.

    Raises:
        InvalidConfigError on malformed values
    """
    load_dotenv()

    store = StoreConfig(
        database_url=get_database_url(),
        pool_size=_env_int("DB_POOL_SIZE", 10),
        max_overflow=_env_int("DB_MAX_OVERFLOW", 20),
        pool_timeout=_env_int("DB_POOL_TIMEOUT", 30),
        echo=os.getenv("DB_ECHO", "").lower() in ("1", "true", "yes"),
    )
    benchmark = BenchmarkConfig(
        iterations=_env_int("BENCHMARK_ITERATIONS", 10),
        top_k=_env_int("BENCHMARK_TOP_K", 5),
        deadline_seconds=_env_float("BENCHMARK_DEADLINE_S"),
    )
    return DriftLabConfig(store=store, benchmark=benchmark)
