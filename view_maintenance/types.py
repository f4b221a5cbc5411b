"""
View Maintenance - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for derived-score maintenance.

This module defines the metric definition, the derived
score, the refresh result and the enums shared by every
maintenance strategy and by the benchmark harness.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable
- Enums for discrete identifiers
- A definition change is a pair of values, never a mutation
- Derived scores are never authoritative; they are always
  reconstructible from Record x MetricDefinition

============================================================
SCORE
============================================================
score(r, d) = d.anxiety * r.anxiety_score
            + d.stress * r.stress_score
            + d.depression * r.depression_score

With a window, the derived value is the mean of score over
the `window_size` preceding records plus the current one,
within the same university, ordered by record id.

============================================================
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


# Two derived scores closer than this are considered equal
SCORE_TOLERANCE = 1e-9


# ============================================================
# ENUMS
# ============================================================


class StrategyKind(str, Enum):
    """
    Stable identifiers for the four maintenance strategies.

    The invocation surface addresses strategies only by
    these values.
    """

    FULL_RECOMPUTE = "full_recompute"
    MATERIALIZED_SNAPSHOT = "materialized_snapshot"
    INCREMENTAL_DELTA = "incremental_delta"
    WINDOWED_PARTITION = "windowed_partition"

    @classmethod
    def all_kinds(cls) -> List["StrategyKind"]:
        """Return all strategies in benchmark order."""
        return [
            cls.FULL_RECOMPUTE,
            cls.MATERIALIZED_SNAPSHOT,
            cls.INCREMENTAL_DELTA,
            cls.WINDOWED_PARTITION,
        ]

    @classmethod
    def from_identifier(cls, identifier: str) -> "StrategyKind":
        """
        Resolve an external identifier.

        Raises:
            ValueError: for unknown identifiers
        """
        try:
            return cls(identifier.strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown strategy '{identifier}'. Valid values: {valid}")


class ComplexityClass(str, Enum):
    """Asymptotic cost label shown in reports."""

    CONSTANT = "O(1)"
    LOGARITHMIC = "O(log n)"
    LINEAR = "O(n)"


class ScoreDimension(str, Enum):
    """The three raw attributes feeding the derived score."""

    ANXIETY = "anxiety"
    STRESS = "stress"
    DEPRESSION = "depression"

    @classmethod
    def all_dimensions(cls) -> List["ScoreDimension"]:
        return [cls.ANXIETY, cls.STRESS, cls.DEPRESSION]

    @property
    def column(self) -> str:
        """Raw attribute column in the record store."""
        return f"{self.value}_score"


class ChangeClass(str, Enum):
    """
    Shape of a definition change, as seen by the cost model.

    - NO_CHANGE: identical weights and window
    - SINGLE_DIMENSION: exactly one weight changed
    - FULL_REWEIGHT: two or more weights changed
    - WINDOW_WIDTH: the windowing changed (weights may too)
    """

    NO_CHANGE = "no_change"
    SINGLE_DIMENSION = "single_dimension"
    FULL_REWEIGHT = "full_reweight"
    WINDOW_WIDTH = "window_width"


# ============================================================
# METRIC DEFINITION
# ============================================================


@dataclass(frozen=True)
class ScoreWeights:
    """Coefficients of the weighted risk score."""

    anxiety: float
    stress: float
    depression: float

    def __post_init__(self) -> None:
        for dimension in ScoreDimension.all_dimensions():
            value = getattr(self, dimension.value)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Weight '{dimension.value}' must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"Weight '{dimension.value}' must be finite, got {value!r}")

    def get(self, dimension: ScoreDimension) -> float:
        return float(getattr(self, dimension.value))

    @property
    def total(self) -> float:
        return self.anxiety + self.stress + self.depression

    def delta(self, new: "ScoreWeights") -> Dict[ScoreDimension, float]:
        """
        Per-dimension coefficient change from self to `new`.

        Only dimensions whose weight changed appear in the
        result, so consumers touch exactly those columns.
        """
        return {
            dimension: new.get(dimension) - self.get(dimension)
            for dimension in ScoreDimension.all_dimensions()
            if new.get(dimension) != self.get(dimension)
        }

    def as_dict(self) -> Dict[str, float]:
        return {d.value: self.get(d) for d in ScoreDimension.all_dimensions()}


@dataclass(frozen=True)
class MetricDefinition:
    """
    Versioned definition of the derived risk score.

    A definition without a window scores each record on its
    own; a windowed definition scores the rolling mean.
    """

    weights: ScoreWeights
    window_size: Optional[int] = None
    version: int = 1

    def __post_init__(self) -> None:
        if self.window_size is not None:
            if isinstance(self.window_size, bool) or not isinstance(self.window_size, int):
                raise ValueError(f"window_size must be an integer, got {self.window_size!r}")
            if self.window_size < 0:
                raise ValueError(f"window_size must be >= 0, got {self.window_size}")
        if self.version < 0:
            raise ValueError(f"version must be >= 0, got {self.version}")

    @classmethod
    def of(
        cls,
        anxiety: float,
        stress: float,
        depression: float,
        window_size: Optional[int] = None,
        version: int = 1,
    ) -> "MetricDefinition":
        """Build a definition from bare weights."""
        return cls(
            weights=ScoreWeights(anxiety=anxiety, stress=stress, depression=depression),
            window_size=window_size,
            version=version,
        )

    @property
    def is_windowed(self) -> bool:
        return self.window_size is not None

    @property
    def shape(self) -> str:
        """Structural shape label used in compatibility errors."""
        return f"windowed({self.window_size})" if self.is_windowed else "instantaneous"

    @property
    def frame_preceding(self) -> int:
        """Rows preceding the current row in the rolling frame."""
        return self.window_size or 0

    def is_comparable_to(self, other: "MetricDefinition") -> bool:
        """Same windowing mode: both windowed or both not."""
        return self.is_windowed == other.is_windowed

    def same_formula(self, other: "MetricDefinition") -> bool:
        """Equal weights and window, ignoring the version tag."""
        return self.weights == other.weights and self.window_size == other.window_size

    def evolve(self, **changes: Any) -> "MetricDefinition":
        """
        Return the next definition version.

        Accepts `anxiety`, `stress`, `depression` and
        `window_size`; the version is bumped by one.
        """
        weight_changes = {
            key: changes.pop(key)
            for key in ("anxiety", "stress", "depression")
            if key in changes
        }
        weights = replace(self.weights, **weight_changes) if weight_changes else self.weights
        window_size = changes.pop("window_size", self.window_size)
        if changes:
            raise TypeError(f"Unknown definition fields: {', '.join(sorted(changes))}")
        return MetricDefinition(weights=weights, window_size=window_size, version=self.version + 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weights": self.weights.as_dict(),
            "window_size": self.window_size,
            "version": self.version,
        }


def classify_change(old: MetricDefinition, new: MetricDefinition) -> ChangeClass:
    """Classify a definition change for the cost model."""
    if old.window_size != new.window_size:
        return ChangeClass.WINDOW_WIDTH
    changed = len(old.weights.delta(new.weights))
    if changed == 0:
        return ChangeClass.NO_CHANGE
    if changed == 1:
        return ChangeClass.SINGLE_DIMENSION
    return ChangeClass.FULL_REWEIGHT


# ============================================================
# OUTPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class DerivedScore:
    """One row of a strategy's top-k answer."""

    record_id: int
    score: float
    as_of: int
    university: Optional[str] = None

    def as_pair(self) -> tuple:
        return (self.record_id, self.score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "score": self.score,
            "as_of": self.as_of,
            "university": self.university,
        }


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of apply_definition_change."""

    elapsed_ms: float
    rows_affected: int
    definition_version: int
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elapsed_ms": self.elapsed_ms,
            "rows_affected": self.rows_affected,
            "definition_version": self.definition_version,
            "details": self.details,
        }


def scores_match(left: float, right: float, tolerance: float = SCORE_TOLERANCE) -> bool:
    """Compare two derived scores within floating-point tolerance."""
    return math.isclose(left, right, rel_tol=tolerance, abs_tol=tolerance)
