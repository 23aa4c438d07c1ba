"""
In-memory dataset queries: pagination, aggregation and time series bucketing.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from correlab.core.schemas import Dataset, PaginatedData, RawRow, NUMERIC_TYPES
from correlab.core.performance import track_performance
from correlab.services.values import as_text, is_missing, to_datetime, to_number

logger = logging.getLogger(__name__)

AGGREGATIONS = ('sum', 'avg', 'count', 'min', 'max')
INTERVALS = ('day', 'week', 'month', 'year')


def _require_columns(dataset: Dataset, columns: List[str]) -> None:
    unknown = [c for c in columns if c not in dataset.columns]
    if unknown:
        raise ValueError(f"Unknown column(s): {', '.join(unknown)}")


def _sorted_rows(rows: List[RawRow], sort_by: str, descending: bool) -> List[RawRow]:
    """Sort on one column; missing values always go last."""
    present = [r for r in rows if not is_missing(r.get(sort_by))]
    missing = [r for r in rows if is_missing(r.get(sort_by))]

    if all(to_number(r[sort_by]) is not None and not isinstance(r[sort_by], str) for r in present):
        key = lambda r: float(r[sort_by])
    else:
        key = lambda r: as_text(r[sort_by])

    return sorted(present, key=key, reverse=descending) + missing


@track_performance("paginate")
def paginate(
    dataset: Dataset,
    columns: Optional[List[str]] = None,
    limit: int = 100,
    offset: int = 0,
    sort_by: Optional[str] = None,
    sort_order: str = 'asc',
    filters: Optional[Dict[str, Any]] = None
) -> PaginatedData:
    """
    Filter, sort and slice a dataset's rows.

    Filters are equality matches; a None filter value matches everything.
    """
    if sort_by is not None:
        _require_columns(dataset, [sort_by])

    rows = dataset.rows
    active_filters = {k: v for k, v in (filters or {}).items() if v is not None}
    if active_filters:
        rows = [r for r in rows if all(r.get(k) == v for k, v in active_filters.items())]

    if sort_by:
        rows = _sorted_rows(rows, sort_by, sort_order == 'desc')

    page = rows[offset:offset + limit]
    if columns:
        page = [{c: row[c] for c in columns if c in row} for row in page]

    return PaginatedData(
        data=page,
        total=len(rows),
        limit=limit,
        offset=offset,
        has_more=offset + limit < len(rows)
    )


def reduce_values(values: List[Any], aggregation: str) -> float:
    """Reduce the numeric values of a column; 0 when there are none."""
    series = pd.Series([to_number(v) for v in values], dtype='float64').dropna()
    if series.empty:
        return 0
    if aggregation == 'count':
        return int(series.count())
    if aggregation == 'sum':
        return float(series.sum())
    if aggregation == 'avg':
        return float(series.mean())
    if aggregation == 'min':
        return float(series.min())
    if aggregation == 'max':
        return float(series.max())
    raise ValueError(f"Unsupported aggregation: {aggregation}")


def _group_key(value: Any) -> Any:
    """Cells are grouped by value; lists and objects from JSON rows by their text."""
    try:
        hash(value)
    except TypeError:
        return as_text(value)
    return value


@track_performance("aggregate")
def aggregate(
    dataset: Dataset,
    aggregation: str,
    group_by: Optional[str] = None,
    columns: Optional[List[str]] = None
):
    """
    Aggregate numeric columns over the whole dataset or per group.

    Args:
        dataset: Profiled dataset
        aggregation: One of sum, avg, count, min, max
        group_by: Optional grouping column; groups keep first-seen order
        columns: Columns to reduce (defaults to every integer/float column)

    Returns:
        {column: value} without grouping, else a list of
        {group_by: key, column: value, ...} rows
    """
    if aggregation not in AGGREGATIONS:
        raise ValueError(f"Unsupported aggregation: {aggregation}")

    if columns is None:
        columns = [c for c in dataset.columns if dataset.types.get(c) in NUMERIC_TYPES]
    _require_columns(dataset, columns + ([group_by] if group_by else []))

    if not group_by:
        return {c: reduce_values([r.get(c) for r in dataset.rows], aggregation) for c in columns}

    groups: Dict[Any, List[RawRow]] = {}
    for row in dataset.rows:
        groups.setdefault(_group_key(row.get(group_by)), []).append(row)

    logger.debug(f"Aggregating {len(columns)} columns over {len(groups)} groups of {group_by}")
    result = []
    for key, rows in groups.items():
        entry = {group_by: key}
        for c in columns:
            entry[c] = reduce_values([r.get(c) for r in rows], aggregation)
        result.append(entry)
    return result


def bucket_key(moment: datetime, interval: str) -> str:
    if interval == 'day':
        return moment.date().isoformat()
    if interval == 'week':
        # Weeks start on Sunday
        start = moment.date() - timedelta(days=(moment.weekday() + 1) % 7)
        return start.isoformat()
    if interval == 'month':
        return f"{moment.year:04d}-{moment.month:02d}"
    if interval == 'year':
        return f"{moment.year:04d}"
    raise ValueError(f"Unsupported interval: {interval}")


@track_performance("time_series")
def time_series(
    dataset: Dataset,
    date_column: str,
    value_columns: List[str],
    interval: str = 'day'
) -> List[Dict[str, Any]]:
    """
    Average value columns per time bucket.

    Rows with an unparsable date are skipped. Buckets are returned in
    chronological order as {"date": key, column: mean, ...}.
    """
    _require_columns(dataset, [date_column] + list(value_columns))
    if dataset.types.get(date_column) != 'date':
        raise ValueError(f"Column {date_column} is not a date column")
    if interval not in INTERVALS:
        raise ValueError(f"Unsupported interval: {interval}")

    buckets: Dict[str, List[RawRow]] = {}
    for row in dataset.rows:
        moment = to_datetime(row.get(date_column))
        if moment is None:
            continue
        buckets.setdefault(bucket_key(moment, interval), []).append(row)

    series = []
    for key in sorted(buckets):
        entry: Dict[str, Any] = {"date": key}
        for c in value_columns:
            entry[c] = reduce_values([r.get(c) for r in buckets[key]], 'avg')
        series.append(entry)
    return series
