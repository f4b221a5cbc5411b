"""
Database Persistence Layer - Record Store.

============================================================
PURPOSE
============================================================
Read and bulk-load access to the authoritative record table.

From the maintenance engine's point of view the store is
read-only. Only the ingestion layer writes, and it replaces
the whole table in one transaction.

============================================================
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, insert, select

from core.exceptions import EmptyRecordStore
from .engine import StoreSession
from .models import RECORD_TABLE, StudentHealthRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Record:
    """Immutable view of one stored record."""

    id: int
    university: str
    anxiety_score: int
    stress_score: int
    depression_score: int
    age: Optional[str] = None
    gender: Optional[str] = None
    department: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Dict[str, Any]) -> "Record":
        return cls(
            id=int(row["id"]),
            university=row["university"],
            anxiety_score=int(row["anxiety_score"]),
            stress_score=int(row["stress_score"]),
            depression_score=int(row["depression_score"]),
            age=row.get("age"),
            gender=row.get("gender"),
            department=row.get("department"),
        )


class RecordStore:
    """
    Repository for the record table.

    ============================================================
    METHODS
    ============================================================
    - count_records: number of stored rows
    - ensure_populated: raise EmptyRecordStore on an empty table
    - fetch_records: every record, ordered by id
    - replace_all: truncate-and-load in one transaction

    ============================================================
    """

    table_name = RECORD_TABLE

    def __init__(self, session: StoreSession):
        """
        Initialize the store with a session handle.

        Args:
            session: Scoped StoreSession
        """
        self._session = session

    # --------------------------------------------------------
    # READ OPERATIONS
    # --------------------------------------------------------

    def count_records(self) -> int:
        stmt = select(func.count()).select_from(StudentHealthRecord)
        result = self._session.execute(stmt, operation="count_records")
        return int(result.scalar() or 0)

    def ensure_populated(self) -> int:
        """
        Check the precondition that records were loaded.

        Returns:
            Row count

        Raises:
            EmptyRecordStore if the table has no rows
        """
        count = self.count_records()
        if count == 0:
            raise EmptyRecordStore(self.table_name)
        return count

    def fetch_records(self) -> List[Record]:
        stmt = select(
            StudentHealthRecord.id,
            StudentHealthRecord.university,
            StudentHealthRecord.anxiety_score,
            StudentHealthRecord.stress_score,
            StudentHealthRecord.depression_score,
            StudentHealthRecord.age,
            StudentHealthRecord.gender,
            StudentHealthRecord.department,
        ).order_by(StudentHealthRecord.id)
        rows = self._session.execute(stmt, operation="fetch_records").mappings().all()
        return [Record.from_mapping(dict(row)) for row in rows]

    # --------------------------------------------------------
    # WRITE OPERATIONS (ingestion only)
    # --------------------------------------------------------

    def replace_all(self, rows: Iterable[Dict[str, Any]]) -> int:
        """
        Replace the table contents atomically.

        Args:
            rows: Column-name mappings for StudentHealthRecord

        Returns:
            Number of inserted rows
        """
        payload = list(rows)
        with self._session.transaction(operation="replace_records") as session:
            session.execute(delete(StudentHealthRecord), operation="truncate_records")
            if payload:
                session.execute(insert(StudentHealthRecord), payload, operation="insert_records")
        logger.info(f"Record store replaced with {len(payload)} rows")
        return len(payload)
