"""
Shared fixtures for the metric drift lab tests.

Every test gets its own SQLite file store under tmp_path,
so auxiliary tables and record sets never leak between
tests.
"""

from typing import Callable, Dict, List

import pytest

from database.engine import create_all_tables, create_store_engine, session_scope
from database.record_store import RecordStore
from view_maintenance.types import MetricDefinition


UNIVERSITIES = [
    "North State University",
    "Riverside Institute of Technology",
    "Eastern Medical College",
]


def record_row(
    record_id: int,
    anxiety: int,
    stress: int,
    depression: int,
    university: str = UNIVERSITIES[0],
) -> Dict[str, object]:
    """Column mapping for one StudentHealthRecord."""
    return {
        "id": record_id,
        "age": "18-22",
        "gender": "Female" if record_id % 2 else "Male",
        "university": university,
        "department": "Engineering - CS / CSE / CSC / Similar to CS",
        "academic_year": "Second Year or Equivalent",
        "cgpa": "3.00 - 3.39",
        "scholarship": "No",
        "anxiety_score": anxiety,
        "anxiety_label": None,
        "stress_score": stress,
        "stress_label": None,
        "depression_score": depression,
        "depression_label": None,
    }


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def engine(tmp_path):
    """Fresh file-backed SQLite store with the record table."""
    store_engine = create_store_engine(f"sqlite:///{tmp_path / 'drift_lab.db'}")
    create_all_tables(store_engine)
    yield store_engine
    store_engine.dispose()


@pytest.fixture
def seed(engine) -> Callable[[List[Dict[str, object]]], int]:
    """Replace the record store contents with the given rows."""
    def _seed(rows: List[Dict[str, object]]) -> int:
        with session_scope(engine, label="seed") as session:
            return RecordStore(session).replace_all(rows)
    return _seed


@pytest.fixture
def make_row():
    """Factory for record column mappings."""
    return record_row


@pytest.fixture
def trio_rows():
    """Three records: (10,5,2), (2,8,9), (7,7,7)."""
    return [
        record_row(1, 10, 5, 2),
        record_row(2, 2, 8, 9),
        record_row(3, 7, 7, 7),
    ]


@pytest.fixture
def cohort_rows():
    """Forty deterministic records spread over three universities."""
    return [
        record_row(
            i,
            anxiety=(i * 7) % 22,
            stress=(i * 5 + 3) % 28,
            depression=(i * 11 + 1) % 28,
            university=UNIVERSITIES[i % len(UNIVERSITIES)],
        )
        for i in range(1, 41)
    ]


@pytest.fixture
def trio_engine(engine, seed, trio_rows):
    seed(trio_rows)
    return engine


@pytest.fixture
def cohort_engine(engine, seed, cohort_rows):
    seed(cohort_rows)
    return engine


@pytest.fixture
def session(engine):
    """Scoped session on the test store."""
    with session_scope(engine, label="test") as store_session:
        yield store_session


@pytest.fixture
def baseline():
    return MetricDefinition.of(0.4, 0.3, 0.3, version=1)
