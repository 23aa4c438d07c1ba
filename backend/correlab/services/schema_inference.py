import logging
from typing import Any, Dict, List, Optional

from correlab.core.config import get_settings
from correlab.core.schemas import ColumnType, RawRow
from correlab.services.values import (
    is_missing, is_boolean_literal, looks_like_date, to_number, is_fractional
)

logger = logging.getLogger(__name__)


def sample_values(rows: List[RawRow], column: str, sample_size: int) -> List[Any]:
    """First `sample_size` non-empty values of a column, in row order."""
    samples = []
    for row in rows:
        value = row.get(column)
        if is_missing(value):
            continue
        samples.append(value)
        if len(samples) >= sample_size:
            break
    return samples


def infer_column_type(samples: List[Any]) -> ColumnType:
    """
    Classify a column from its sampled values.

    Checks run boolean, date, numeric, string; boolean goes first so a
    column of 0/1 flags is not reported as integer.
    """
    if not samples:
        return 'string'

    if all(is_boolean_literal(v) for v in samples):
        return 'boolean'

    if all(looks_like_date(v) for v in samples):
        return 'date'

    if all(to_number(v) is not None for v in samples):
        if any(is_fractional(v) for v in samples):
            return 'float'
        return 'integer'

    return 'string'


def infer_types(
    rows: List[RawRow],
    columns: List[str],
    sample_size: Optional[int] = None
) -> Dict[str, ColumnType]:
    """
    Assign one semantic type to every column.

    Args:
        rows: Parsed rows
        columns: Column names, in display order
        sample_size: Non-empty values inspected per column
            (defaults to INFERENCE_SAMPLE_SIZE)

    Returns:
        Mapping of column name to 'integer' | 'float' | 'string' | 'date' | 'boolean'
    """
    if sample_size is None:
        sample_size = get_settings().inference_sample_size

    types: Dict[str, ColumnType] = {}
    for column in columns:
        types[column] = infer_column_type(sample_values(rows, column, sample_size))

    logger.debug(f"Inferred types for {len(columns)} columns: {types}")
    return types
