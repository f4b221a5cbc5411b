"""
Core Module - Benchmark Clock.

============================================================
RESPONSIBILITY
============================================================
Provides a testable monotonic clock for latency measurement.

- All latency measurements MUST use this clock
- Enables deterministic harness tests
- Wall-clock UTC only for report timestamps

============================================================
DESIGN PRINCIPLES
============================================================
- Monotonic: never affected by system time adjustments
- Milliseconds as the unit for every latency
- Mockable for testing
- Thread-safe

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, List, Optional
import threading
import time


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for the benchmark clock."""

    @abstractmethod
    def monotonic_ms(self) -> float:
        """Get a monotonic reading in milliseconds."""
        pass

    def now(self) -> datetime:
        """Get current UTC datetime."""
        return datetime.now(timezone.utc)

    def elapsed_ms(self, started_ms: float) -> float:
        """Milliseconds elapsed since a previous monotonic reading."""
        return self.monotonic_ms() - started_ms


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock backed by time.perf_counter."""

    def monotonic_ms(self) -> float:
        return time.perf_counter() * 1000.0


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Every reading advances the clock by `step_ms` unless a
    scripted sequence of readings is supplied.
    """

    def __init__(
        self,
        start_ms: float = 0.0,
        step_ms: float = 0.0,
        readings: Optional[List[float]] = None,
    ):
        """
        Initialize mock clock.

        Args:
            start_ms: Starting reading
            step_ms: Auto-advance applied after each reading
            readings: Explicit readings returned in order
        """
        self._current = start_ms
        self._step = step_ms
        self._readings = list(readings) if readings else []
        self._lock = threading.Lock()

    def monotonic_ms(self) -> float:
        with self._lock:
            if self._readings:
                self._current = self._readings.pop(0)
                return self._current
            value = self._current
            self._current += self._step
            return value

    def advance(self, ms: float) -> None:
        """Advance the clock by `ms` milliseconds."""
        with self._lock:
            self._current += ms


# ============================================================
# TIMING UTILITIES
# ============================================================

class Stopwatch:
    """Holds one measured interval."""

    def __init__(self, clock: ClockProtocol):
        self._clock = clock
        self.started_ms: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    def start(self) -> None:
        self.started_ms = self._clock.monotonic_ms()

    def stop(self) -> float:
        if self.started_ms is None:
            raise RuntimeError("Stopwatch stopped before it was started")
        self.elapsed_ms = self._clock.elapsed_ms(self.started_ms)
        return self.elapsed_ms


@contextmanager
def measure(clock: Optional[ClockProtocol] = None) -> Generator[Stopwatch, None, None]:
    """
    Time a block; the elapsed time is set even if the block raises.

    Usage:
        with measure(clock) as sw:
            strategy.read_top_k(5)
        latency = sw.elapsed_ms
    """
    stopwatch = Stopwatch(clock or SystemClock())
    stopwatch.start()
    try:
        yield stopwatch
    finally:
        stopwatch.stop()


def now_utc() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "Stopwatch",
    "measure",
    "now_utc",
]
