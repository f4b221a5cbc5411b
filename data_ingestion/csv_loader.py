"""
Data Ingestion - Survey CSV Loader.

============================================================
PURPOSE
============================================================
Bulk-loads the student health survey export into the
record store before any strategy runs.

- Maps survey headers to record store columns
- Skips rows missing a mandatory attribute
- Replaces the table contents in one transaction

============================================================
VALIDATION
============================================================
Mandatory: age, gender, university and the three integer
sub-scores. Anything else may be blank. Scores written as
"3.0" are accepted; non-integral values are not.

============================================================
"""

import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.engine import Engine

from core.clock import now_utc
from core.exceptions import IngestionError
from database.engine import session_scope
from database.record_store import RecordStore
from .types import (
    MANDATORY_TEXT_FIELDS,
    SCORE_FIELDS,
    SURVEY_COLUMNS,
    IngestionResult,
)

logger = logging.getLogger(__name__)


def parse_score(raw: Optional[str]) -> Optional[int]:
    """Integer sub-score, or None when blank or non-integral."""
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    return int(value) if value.is_integer() else None


def parse_row(row: Dict[str, Optional[str]]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Map one survey row to record store columns.

    Returns:
        (record, None) for a valid row, (None, reason) otherwise
    """
    record: Dict[str, Any] = {}
    for header, column in SURVEY_COLUMNS.items():
        value = row.get(header)
        record[column] = value.strip() if isinstance(value, str) else value

    for column in MANDATORY_TEXT_FIELDS:
        if not record.get(column):
            return None, f"missing {column}"

    for column in SCORE_FIELDS:
        score = parse_score(row.get(_header_for(column)))
        if score is None:
            return None, f"missing or invalid {column}"
        record[column] = score

    # Blank optional text is stored as NULL
    for column, value in record.items():
        if value == "":
            record[column] = None

    return record, None


def _header_for(column: str) -> str:
    for header, mapped in SURVEY_COLUMNS.items():
        if mapped == column:
            return header
    raise KeyError(column)


class CsvRecordLoader:
    """
    Loads survey CSV exports into the record store.

    Usage:
        loader = CsvRecordLoader(engine)
        result = loader.load("Raw Data.csv")
    """

    def __init__(self, engine: Engine, encoding: str = "utf-8-sig"):
        """
        Args:
            engine: Store engine; a session is scoped per load
            encoding: CSV encoding (BOM tolerated by default)
        """
        self._engine = engine
        self._encoding = encoding

    def load(self, path: Union[str, Path]) -> IngestionResult:
        """
        Replace the record store with the rows of a CSV file.

        Raises:
            IngestionError: unreadable file or missing columns
        """
        path = Path(path)
        if not path.is_file():
            raise IngestionError(f"CSV file not found: {path}", source=str(path))

        try:
            with path.open(newline="", encoding=self._encoding) as handle:
                reader = csv.DictReader(handle)
                self._check_headers(reader.fieldnames, str(path))
                rows = [{(key or "").strip(): value for key, value in row.items()} for row in reader]
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise IngestionError(f"Cannot read {path}: {e}", source=str(path), cause=e) from e

        logger.info(f"Parsed {len(rows)} rows from {path}")
        return self.load_rows(rows, source=str(path))

    def load_rows(self, rows: Iterable[Dict[str, Optional[str]]], source: str = "rows") -> IngestionResult:
        """Validate survey rows and replace the record store with them."""
        result = IngestionResult(source=source, started_at=now_utc())

        valid: List[Dict[str, Any]] = []
        # Line 1 is the header
        for line_number, row in enumerate(rows, start=2):
            result.records_read += 1
            record, reason = parse_row(row)
            if record is None:
                result.add_skipped(line_number, reason)
                continue
            valid.append(record)

        with session_scope(self._engine, label="csv-ingestion") as session:
            result.records_stored = RecordStore(session).replace_all(valid)

        result.mark_complete(now_utc())
        if result.records_skipped:
            logger.warning(f"Skipped {result.records_skipped} incomplete rows from {source}")
        logger.info(f"Ingestion complete: {result.to_dict()}")
        return result

    @staticmethod
    def _check_headers(fieldnames: Optional[List[str]], source: str) -> None:
        if not fieldnames:
            raise IngestionError("CSV has no header row", source=source)
        present = {name.strip() for name in fieldnames}
        required = [
            header for header, column in SURVEY_COLUMNS.items()
            if column in MANDATORY_TEXT_FIELDS or column in SCORE_FIELDS
        ]
        missing = [h for h in required if h not in present]
        if missing:
            raise IngestionError(
                f"CSV is missing required columns: {', '.join(missing)}",
                source=source,
            )
