import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import pandas as pd

from correlab.core.schemas import (
    BooleanStats, ColumnStatistics, ColumnType, Dataset, DateStats, EmptyStats,
    NumericStats, RawRow, StringStats, TopValue, NUMERIC_TYPES
)
from correlab.core.performance import track_performance
from correlab.services.schema_inference import infer_types
from correlab.services.values import as_text, is_missing, is_truthy, is_boolean_literal, to_datetime, to_number

logger = logging.getLogger(__name__)

TOP_VALUES_LIMIT = 5
MAX_VALUE_LENGTH = 50


def _round(value: float, digits: int = 2) -> float:
    return round(float(value), digits)


def _truncate(text: str) -> str:
    if len(text) > MAX_VALUE_LENGTH:
        return text[:MAX_VALUE_LENGTH - 3] + "..."
    return text


def numeric_stats(values: List[Any], column_type: ColumnType, row_count: int) -> ColumnStatistics:
    """Summary of the finite numbers in a column; anything else counts as null."""
    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    if not numbers:
        return EmptyStats(type=column_type, null_count=row_count)

    series = pd.Series(numbers, dtype='float64')
    return NumericStats(
        type=column_type,
        count=len(numbers),
        null_count=row_count - len(numbers),
        min=_round(series.min()),
        max=_round(series.max()),
        mean=_round(series.mean()),
        median=_round(series.median()),
        std_dev=_round(series.std(ddof=0)),
        sum=_round(series.sum()),
        unique_count=int(series.nunique())
    )


def string_stats(values: List[Any], row_count: int) -> ColumnStatistics:
    texts = [as_text(v) for v in values if not is_missing(v)]
    if not texts:
        return EmptyStats(type='string', null_count=row_count)

    # most_common keeps first-seen order between equal counts
    counts = Counter(texts)
    top_values = [
        TopValue(value=_truncate(text), count=count, percentage=_round(count / len(texts) * 100, 1))
        for text, count in counts.most_common(TOP_VALUES_LIMIT)
    ]
    lengths = [len(t) for t in texts]

    return StringStats(
        count=len(texts),
        null_count=row_count - len(texts),
        unique_count=len(counts),
        max_length=max(lengths),
        min_length=min(lengths),
        top_values=top_values
    )


def date_stats(values: List[Any], row_count: int) -> ColumnStatistics:
    """Unparsable dates are counted as null."""
    dates = [d for d in (to_datetime(v) for v in values) if d is not None]
    if not dates:
        return EmptyStats(type='date', null_count=row_count)

    return DateStats(
        count=len(dates),
        null_count=row_count - len(dates),
        earliest=min(dates),
        latest=max(dates),
        unique_count=len({d.date() for d in dates})
    )


def boolean_stats(values: List[Any], row_count: int) -> ColumnStatistics:
    flags = [is_truthy(v) for v in values if not is_missing(v) and is_boolean_literal(v)]
    if not flags:
        return EmptyStats(type='boolean', null_count=row_count)

    true_count = sum(flags)
    return BooleanStats(
        count=len(flags),
        null_count=row_count - len(flags),
        true_count=true_count,
        false_count=len(flags) - true_count,
        true_percentage=_round(true_count / len(flags) * 100, 1)
    )


def column_stats(values: List[Any], column_type: ColumnType, row_count: int) -> ColumnStatistics:
    if column_type in NUMERIC_TYPES:
        return numeric_stats(values, column_type, row_count)
    if column_type == 'date':
        return date_stats(values, row_count)
    if column_type == 'boolean':
        return boolean_stats(values, row_count)
    return string_stats(values, row_count)


@track_performance("compute_stats")
def compute_stats(
    rows: List[RawRow],
    columns: List[str],
    types: Dict[str, ColumnType]
) -> Dict[str, ColumnStatistics]:
    """
    Compute a statistical summary for every column.

    Every summary satisfies count + null_count == len(rows). Numbers are
    rounded to 2 decimals (percentages to 1) so that repeated runs on the
    same rows give identical results.
    """
    row_count = len(rows)
    stats: Dict[str, ColumnStatistics] = {}

    for column in columns:
        values = [row.get(column) for row in rows]
        stats[column] = column_stats(values, types.get(column, 'string'), row_count)

    return stats


def resolve_columns(rows: List[RawRow], columns: Optional[List[str]] = None) -> List[str]:
    """Explicit column names, or every key seen in the rows in first-seen order."""
    if columns:
        return list(columns)

    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


@track_performance("profile_dataset")
def profile_dataset(rows: List[RawRow], columns: Optional[List[str]] = None) -> Dataset:
    """
    Build a typed Dataset from parsed rows.

    Runs type inference, then statistics, on the same rows.
    """
    columns = resolve_columns(rows, columns)
    types = infer_types(rows, columns)
    stats = compute_stats(rows, columns, types)

    logger.info(f"Profiled dataset: {len(rows)} rows, {len(columns)} columns")
    return Dataset(rows=rows, columns=columns, types=types, stats=stats, row_count=len(rows))
