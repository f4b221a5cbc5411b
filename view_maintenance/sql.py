"""
View Maintenance - SQL Builders.

Shared SQL fragments for the derived score. Every strategy
evaluates the same expression so that their answers agree
to floating-point tolerance.

Weights are bound as parameters and cast to double
precision; identifiers and the window frame width are
validated integers/names rendered into the statement.
"""

import re
import uuid
from typing import Any, Dict

from database.models import RECORD_TABLE
from .types import MetricDefinition, ScoreDimension


_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


def weight_param(dimension: ScoreDimension) -> str:
    return f"w_{dimension.value}"


def delta_param(dimension: ScoreDimension) -> str:
    return f"d_{dimension.value}"


def score_expression(alias: str = "r") -> str:
    """Weighted sum of the raw attributes of `alias`."""
    terms = [
        f"{alias}.{dimension.column} * CAST(:{weight_param(dimension)} AS DOUBLE PRECISION)"
        for dimension in ScoreDimension.all_dimensions()
    ]
    return "(" + " + ".join(terms) + ")"


def score_params(definition: MetricDefinition) -> Dict[str, Any]:
    return {
        weight_param(dimension): definition.weights.get(dimension)
        for dimension in ScoreDimension.all_dimensions()
    }


def instantaneous_scores_sql() -> str:
    """One row per record with its weighted score."""
    return (
        f"SELECT r.id AS id, r.university AS university, {score_expression('r')} AS score "
        f"FROM {RECORD_TABLE} r"
    )


def rolling_scores_sql(definition: MetricDefinition) -> str:
    """
    One row per record with the rolling mean of its score.

    Frame: `frame_preceding` rows before the current row plus
    the current row, within the same university, ordered by id.
    """
    preceding = int(definition.frame_preceding)
    return (
        f"SELECT r.id AS id, r.university AS university, "
        f"AVG({score_expression('r')}) OVER ("
        f"PARTITION BY r.university ORDER BY r.id "
        f"ROWS BETWEEN {preceding} PRECEDING AND CURRENT ROW"
        f") AS score "
        f"FROM {RECORD_TABLE} r"
    )


def top_k_sql(source_sql: str) -> str:
    """Top-k over a scored row source; ties broken by ascending id."""
    return (
        f"SELECT scored.id AS id, scored.university AS university, scored.score AS score "
        f"FROM ({source_sql}) scored "
        f"ORDER BY scored.score DESC, scored.id ASC "
        f"LIMIT :k"
    )


def table_top_k_sql(table: str) -> str:
    """Top-k over a maintained score table."""
    ensure_identifier(table)
    return (
        f"SELECT id, university, score FROM {table} "
        f"ORDER BY score DESC, id ASC "
        f"LIMIT :k"
    )


# ------------------------------------------------------------
# MAINTAINED SCORE TABLES
# ------------------------------------------------------------


def drop_table_sql(table: str) -> str:
    return f"DROP TABLE IF EXISTS {ensure_identifier(table)}"


def create_score_table_sql(table: str) -> str:
    ensure_identifier(table)
    return (
        f"CREATE TABLE {table} ("
        f"id INTEGER PRIMARY KEY, "
        f"university VARCHAR(255), "
        f"score DOUBLE PRECISION NOT NULL"
        f")"
    )


def populate_score_table_sql(table: str) -> str:
    """Fill a score table from the record store under bound weights."""
    ensure_identifier(table)
    return f"INSERT INTO {table} (id, university, score) {instantaneous_scores_sql()}"


def score_index_sql(table: str) -> str:
    ensure_identifier(table)
    return f"CREATE INDEX {ensure_identifier(table + '_score_idx')} ON {table} (score DESC, id)"


def delta_update_sql(table: str, dimensions) -> str:
    """
    Add `raw_k * delta_k` for the given dimensions only.

    Dimensions absent from `dimensions` never appear in the
    statement.
    """
    ensure_identifier(table)
    terms = [
        f"r.{dimension.column} * CAST(:{delta_param(dimension)} AS DOUBLE PRECISION)"
        for dimension in dimensions
    ]
    if not terms:
        raise ValueError("delta_update_sql needs at least one dimension")
    return (
        f"UPDATE {table} SET score = {table}.score + ({' + '.join(terms)}) "
        f"FROM {RECORD_TABLE} r WHERE {table}.id = r.id"
    )


def ensure_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Unsafe SQL identifier: {name!r}")
    return name


def auxiliary_table_name(prefix: str) -> str:
    """
    Unique auxiliary table name for one strategy instance.

    Concurrent runs against one store get distinct tables.
    """
    return ensure_identifier(f"{prefix}_{uuid.uuid4().hex[:12]}")
