"""
View Maintenance - Base Strategy.

============================================================
PURPOSE
============================================================
Abstract base class for all maintenance strategies.

Provides the shared contract:
- apply_definition_change(old_def, new_def) -> RefreshResult
- read_top_k(k) -> list[DerivedScore]
- teardown()

and the common machinery around it:
- serialized definition changes (one writer per instance)
- reader fencing against an in-flight change
- refresh timing and logging
- guaranteed release of auxiliary storage

============================================================
SUBCLASSES MUST IMPLEMENT
============================================================
- kind, title, read_complexity, refresh_complexity
- _apply(old_def, new_def) -> (rows_affected, details)
- _read(k, definition) -> list of row mappings
  with keys id, university, score

Optional hooks:
- check_compatibility(old_def, new_def)
- prepare(baseline_def): one-time setup outside refresh timing
- _release(): drop auxiliary storage

============================================================
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from core.clock import ClockProtocol, SystemClock
from core.exceptions import ComputeError, StoreUnavailable, ViewMaintenanceError
from database.engine import StoreSession
from view_maintenance.types import (
    ComplexityClass,
    DerivedScore,
    MetricDefinition,
    RefreshResult,
    StrategyKind,
)

logger = logging.getLogger(__name__)


class ReadFence(str, Enum):
    """How reads behave while a definition change is in flight."""

    NONE = "none"            # no mutable state to protect
    BLOCK = "block"          # wait for the change, then read post-change state
    FAIL_FAST = "fail_fast"  # raise StoreUnavailable until the change returns


class ReadWriteFence:
    """
    Many concurrent readers or one writer.

    Writers are preferred: once a writer is waiting, new
    readers queue behind it.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self, blocking: bool = True) -> bool:
        with self._cond:
            if not blocking and (self._writer or self._writers_waiting):
                return False
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
            return True

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @property
    def write_in_progress(self) -> bool:
        with self._cond:
            return self._writer


class MaintenanceStrategy(ABC):
    """
    Abstract base class for derived-score maintenance strategies.

    A strategy is bound to one StoreSession for its lifetime
    and owns every auxiliary table it creates. Use it as a
    context manager to guarantee teardown.
    """

    kind: StrategyKind
    title: str
    description: str = ""
    read_complexity: ComplexityClass
    refresh_complexity: ComplexityClass
    read_fence: ReadFence = ReadFence.NONE
    supports_windowing: bool = True

    def __init__(self, session: StoreSession, clock: Optional[ClockProtocol] = None):
        """
        Args:
            session: Scoped session handle for the backing store
            clock: Monotonic clock for refresh timing
        """
        self._session = session
        self._clock = clock or SystemClock()
        self._writer_lock = threading.Lock()
        self._fence = ReadWriteFence()
        self._live: Optional[MetricDefinition] = None
        self._torn_down = False

    # --------------------------------------------------------
    # PUBLIC CONTRACT
    # --------------------------------------------------------

    @property
    def live_definition(self) -> Optional[MetricDefinition]:
        """Definition currently reflected by read_top_k."""
        return self._live

    @property
    def session(self) -> StoreSession:
        return self._session

    def check_compatibility(self, old_def: MetricDefinition, new_def: MetricDefinition) -> None:
        """Raise DefinitionIncompatible if the change cannot be absorbed."""

    def prepare(self, baseline: MetricDefinition) -> None:
        """One-time setup under a baseline definition; default no-op."""

    def apply_definition_change(
        self,
        old_def: MetricDefinition,
        new_def: MetricDefinition,
    ) -> RefreshResult:
        """
        Make read_top_k reflect `new_def`.

        Serialized per instance. Readers are fenced for the
        duration of the change. Repeating a successful call
        with the same arguments leaves state unchanged.
        """
        with self._writer_lock:
            self._ensure_open()
            self.check_compatibility(old_def, new_def)

            self._fence.acquire_write()
            try:
                started = self._clock.monotonic_ms()
                rows_affected, details = self._apply(old_def, new_def)
                elapsed = self._clock.elapsed_ms(started)
                self._live = new_def
            finally:
                self._fence.release_write()

        logger.info(
            f"{self.kind.value}: definition v{old_def.version} -> v{new_def.version} "
            f"applied in {elapsed:.2f} ms ({rows_affected} rows)"
        )
        return RefreshResult(
            elapsed_ms=elapsed,
            rows_affected=rows_affected,
            definition_version=new_def.version,
            details=details,
        )

    def read_top_k(self, k: int) -> List[DerivedScore]:
        """
        Top-k derived scores under the live definition.

        Ordered by descending score, ties by ascending record id.
        Never mutates state.
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self._ensure_open()

        with self._reader_fence():
            definition = self._live
            if definition is None:
                raise self._not_ready_error()
            rows = self._read(k, definition)

        return [self._to_derived(row, definition) for row in rows]

    def teardown(self) -> None:
        """
        Release auxiliary storage.

        Safe to call more than once and after failures.
        """
        with self._writer_lock:
            if self._torn_down:
                return
            self._torn_down = True
            try:
                if not self._session.closed:
                    self._release()
            finally:
                logger.debug(f"{self.kind.value}: torn down")

    def __enter__(self) -> "MaintenanceStrategy":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()

    # --------------------------------------------------------
    # SUBCLASS HOOKS
    # --------------------------------------------------------

    @abstractmethod
    def _apply(
        self,
        old_def: MetricDefinition,
        new_def: MetricDefinition,
    ) -> Tuple[int, Dict[str, Any]]:
        """Do the refresh work; return (rows_affected, details)."""

    @abstractmethod
    def _read(self, k: int, definition: MetricDefinition) -> Sequence[Mapping[str, Any]]:
        """Fetch the top-k rows as mappings with id, university, score."""

    def _release(self) -> None:
        """Drop auxiliary storage; default has none."""

    def _not_ready_error(self) -> ViewMaintenanceError:
        """Error raised by read_top_k before any definition is live."""
        return ComputeError(
            f"{self.title}: no metric definition applied yet",
            operation="read_top_k",
        )

    # --------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._torn_down:
            raise StoreUnavailable(
                f"{self.title}: strategy has been torn down",
                store=self.kind.value,
            )

    @contextmanager
    def _reader_fence(self) -> Iterator[None]:
        if self.read_fence is ReadFence.NONE:
            yield
            return

        blocking = self.read_fence is ReadFence.BLOCK
        if not self._fence.acquire_read(blocking=blocking):
            raise StoreUnavailable(
                f"{self.title}: refresh in progress, derived view not readable",
                store=self.kind.value,
            )
        try:
            yield
        finally:
            self._fence.release_read()

    def _execute(self, sql: str, params: Optional[Mapping[str, Any]] = None, operation: str = "execute"):
        return self._session.execute(sql, params, operation=f"{self.kind.value}.{operation}")

    @staticmethod
    def _to_derived(row: Mapping[str, Any], definition: MetricDefinition) -> DerivedScore:
        return DerivedScore(
            record_id=int(row["id"]),
            score=float(row["score"]),
            as_of=definition.version,
            university=row.get("university"),
        )

    def __repr__(self) -> str:
        live = self._live.version if self._live else None
        return f"{type(self).__name__}(kind={self.kind.value}, live_version={live})"
