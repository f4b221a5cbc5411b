"""
Data Ingestion Module.

Loads the student health survey export into the record
store. Rows missing a mandatory attribute are skipped.
"""

from .types import IngestionResult, IngestionStatus, SURVEY_COLUMNS
from .csv_loader import CsvRecordLoader, parse_row, parse_score

__all__ = [
    "IngestionResult",
    "IngestionStatus",
    "SURVEY_COLUMNS",
    "CsvRecordLoader",
    "parse_row",
    "parse_score",
]
