"""
View Maintenance - Correctness Oracle.

Pure-Python evaluation of the derived score. Every strategy
must agree with these functions to within SCORE_TOLERANCE;
the harness uses them to spot-check sample rows.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from database.record_store import Record
from .types import DerivedScore, MetricDefinition, ScoreDimension, scores_match


def compute_score(record: Record, definition: MetricDefinition) -> float:
    """Weighted sum of one record's raw attributes."""
    weights = definition.weights
    return (
        record.anxiety_score * weights.get(ScoreDimension.ANXIETY)
        + record.stress_score * weights.get(ScoreDimension.STRESS)
        + record.depression_score * weights.get(ScoreDimension.DEPRESSION)
    )


def compute_derived_scores(
    records: Iterable[Record],
    definition: MetricDefinition,
) -> List[DerivedScore]:
    """
    Derived score for every record, in record id order.

    Windowed definitions average the score over the preceding
    `window_size` records of the same university plus the
    current one.
    """
    ordered = sorted(records, key=lambda r: r.id)
    if not definition.is_windowed:
        return [
            DerivedScore(
                record_id=r.id,
                score=compute_score(r, definition),
                as_of=definition.version,
                university=r.university,
            )
            for r in ordered
        ]

    preceding = definition.frame_preceding
    history: Dict[str, List[float]] = defaultdict(list)
    derived = []
    for r in ordered:
        partition = history[r.university]
        partition.append(compute_score(r, definition))
        frame = partition[-(preceding + 1):]
        derived.append(
            DerivedScore(
                record_id=r.id,
                score=sum(frame) / len(frame),
                as_of=definition.version,
                university=r.university,
            )
        )
    return derived


def expected_top_k(
    records: Iterable[Record],
    definition: MetricDefinition,
    k: int,
) -> List[DerivedScore]:
    """Reference top-k: descending score, ascending id on ties."""
    derived = compute_derived_scores(records, definition)
    derived.sort(key=lambda d: (-d.score, d.record_id))
    return derived[:k]


def find_mismatches(
    rows: Sequence[Tuple[int, float]],
    records: Iterable[Record],
    definition: MetricDefinition,
) -> List[Tuple[int, float, float]]:
    """
    Compare (record_id, score) pairs against the oracle.

    Returns:
        (record_id, expected, actual) for every disagreeing row;
        unknown record ids are reported with expected = nan.
    """
    expected = {d.record_id: d.score for d in compute_derived_scores(records, definition)}
    mismatches = []
    for record_id, actual in rows:
        want = expected.get(record_id)
        if want is None:
            mismatches.append((record_id, float("nan"), actual))
        elif not scores_match(want, actual):
            mismatches.append((record_id, want, actual))
    return mismatches
