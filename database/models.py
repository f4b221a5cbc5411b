"""
Database Persistence Layer - ORM Models.

============================================================
PURPOSE
============================================================
ORM model for the authoritative record store.

============================================================
MODELS
============================================================
1. StudentHealthRecord: one survey response with the three
   raw sub-scores (anxiety, stress, depression) and the
   categorical dimensions used for partitioning.

Rows are immutable once loaded. Derived scores are never
stored here; strategies keep their own auxiliary tables.

============================================================
"""

from typing import Optional

from sqlalchemy import Integer, String, Index
from sqlalchemy.orm import Mapped, mapped_column

from .engine import Base


RECORD_TABLE = "student_health_records"


class StudentHealthRecord(Base):
    """
    One row of the record store.

    ============================================================
    RAW ATTRIBUTES
    ============================================================
    - anxiety_score, stress_score, depression_score: integer
      sub-scores feeding the derived risk score
    - university: partition key for rolling aggregation

    ============================================================
    """

    __tablename__ = RECORD_TABLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Categorical dimensions
    age: Mapped[str] = mapped_column(String(50), nullable=False)
    gender: Mapped[str] = mapped_column(String(50), nullable=False)
    university: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    academic_year: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    cgpa: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    scholarship: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Raw sub-scores
    anxiety_score: Mapped[int] = mapped_column(Integer, nullable=False)
    anxiety_label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    stress_score: Mapped[int] = mapped_column(Integer, nullable=False)
    stress_label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    depression_score: Mapped[int] = mapped_column(Integer, nullable=False)
    depression_label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_student_health_records_university_id", "university", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"StudentHealthRecord("
            f"id={self.id}, "
            f"university={self.university!r}, "
            f"scores=({self.anxiety_score}, {self.stress_score}, {self.depression_score}))"
        )
