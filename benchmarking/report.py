"""
Benchmarking - Reports.

Translates BenchmarkSample into the presentation format:

    { title, refreshLatencyMs, averageReadLatencyMs,
      complexityClass, sampleRows, error }

A failed run reports "N/A" latency next to the raw error
message, never a silent zero.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from view_maintenance.registry import strategy_class
from .harness import BenchmarkSample


NOT_AVAILABLE = "N/A"


def format_latency(value: Optional[float]) -> str:
    """Render a latency in ms, or N/A when absent."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.2f}"


@dataclass(frozen=True)
class StrategyReport:
    """Presentation view of one benchmark sample."""

    strategy_id: str
    title: str
    complexity_class: str
    refresh_latency_ms: Optional[float]
    average_read_latency_ms: Optional[float]
    completed_iterations: int
    iterations_requested: int
    sample_rows: List[Tuple[int, float]] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def from_sample(cls, sample: BenchmarkSample) -> "StrategyReport":
        """Build the report for a sample, successful or not."""
        strategy_cls = strategy_class(sample.strategy_id)
        failed = sample.error is not None
        return cls(
            strategy_id=sample.strategy_id.value,
            title=sample.strategy_title,
            complexity_class=strategy_cls.read_complexity.value,
            # A failed run has no trustworthy aggregate
            refresh_latency_ms=sample.refresh_latency_ms,
            average_read_latency_ms=None if failed else sample.average_read_latency_ms,
            completed_iterations=sample.completed_iterations,
            iterations_requested=sample.iterations_requested,
            sample_rows=list(sample.sample_rows),
            error=sample.error.message if failed else None,
            error_type=sample.error.error_type if failed else None,
        )

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the presentation layer's field names."""
        return {
            "strategyId": self.strategy_id,
            "title": self.title,
            "refreshLatencyMs": format_latency(self.refresh_latency_ms),
            "averageReadLatencyMs": format_latency(self.average_read_latency_ms),
            "complexityClass": self.complexity_class,
            "sampleRows": [
                {"recordId": record_id, "score": score}
                for record_id, score in self.sample_rows
            ],
            "completedIterations": self.completed_iterations,
            "iterationsRequested": self.iterations_requested,
            "error": self.error,
            "errorType": self.error_type,
        }

    def render_text(self) -> str:
        lines = [
            self.title,
            "-" * len(self.title),
            f"  Complexity:      {self.complexity_class}",
            f"  Refresh latency: {format_latency(self.refresh_latency_ms)} ms",
            f"  Avg read:        {format_latency(self.average_read_latency_ms)} ms "
            f"({self.completed_iterations}/{self.iterations_requested} reads)",
        ]
        if self.error:
            lines.append(f"  Error:           [{self.error_type}] {self.error}")
        for record_id, score in self.sample_rows:
            lines.append(f"    #{record_id:<8d} {score:.4f}")
        return "\n".join(lines)


def build_reports(samples: Iterable[BenchmarkSample]) -> List[StrategyReport]:
    return [StrategyReport.from_sample(sample) for sample in samples]


def render_reports(reports: Iterable[StrategyReport]) -> str:
    return "\n\n".join(report.render_text() for report in reports)
