"""
Data Ingestion - Type Definitions.

============================================================
PURPOSE
============================================================
Shared types for the record ingestion layer.

- Survey CSV column mapping
- Ingestion result type

============================================================
DESIGN PRINCIPLES
============================================================
- Clear typing for all fields
- No business logic
- Serializable for logging

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4


# =============================================================
# ENUMS
# =============================================================

class IngestionStatus(str, Enum):
    """Status of an ingestion operation."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


# =============================================================
# SURVEY CSV LAYOUT
# =============================================================

# Survey export header -> record store column
SURVEY_COLUMNS: Dict[str, str] = {
    "1. Age": "age",
    "2. Gender": "gender",
    "3. University": "university",
    "4. Department": "department",
    "5. Academic Year": "academic_year",
    "6. Current CGPA": "cgpa",
    "7. Did you receive a waiver or scholarship at your university?": "scholarship",
    "Anxiety Value": "anxiety_score",
    "Anxiety Label": "anxiety_label",
    "Stress Value": "stress_score",
    "Stress Label": "stress_label",
    "Depression Value": "depression_score",
    "Depression Label": "depression_label",
}

# A row missing any of these is skipped, never inserted partially
MANDATORY_TEXT_FIELDS = ("age", "gender", "university")
SCORE_FIELDS = ("anxiety_score", "stress_score", "depression_score")


# =============================================================
# INGESTION RESULT TYPES
# =============================================================

@dataclass
class IngestionResult:
    """Result of a single ingestion operation."""
    batch_id: UUID = field(default_factory=uuid4)
    source: str = ""
    status: IngestionStatus = IngestionStatus.SUCCESS

    # Counts
    records_read: int = 0
    records_stored: int = 0
    records_skipped: int = 0

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    # Line number -> reason, for skipped rows
    skipped: Dict[int, str] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def mark_complete(self, completed_at: datetime) -> None:
        """Mark the ingestion as complete and calculate duration."""
        self.completed_at = completed_at
        if self.started_at:
            delta = completed_at - self.started_at
            self.duration_seconds = delta.total_seconds()

    def add_skipped(self, line_number: int, reason: str) -> None:
        self.skipped[line_number] = reason
        self.records_skipped += 1
        if self.status == IngestionStatus.SUCCESS:
            self.status = IngestionStatus.PARTIAL

    def mark_failed(self, error: str) -> None:
        """Mark the ingestion as failed."""
        self.status = IngestionStatus.FAILED
        self.errors.append(error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "batch_id": str(self.batch_id),
            "source": self.source,
            "status": self.status.value,
            "records_read": self.records_read,
            "records_stored": self.records_stored,
            "records_skipped": self.records_skipped,
            "duration_seconds": self.duration_seconds,
            "skipped_sample": dict(list(self.skipped.items())[:5]),  # Limit for logging
            "errors": self.errors[:5],
        }
