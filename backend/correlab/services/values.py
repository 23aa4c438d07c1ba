"""
Cell value coercion shared by every analysis engine.

A raw cell is one of None, bool, int, float, str or datetime/date. These
helpers are the only place cells are interpreted, so the schema
inferencer, the statistics engine and the correlation engine always agree
on what a value means.
"""
import math
from datetime import date, datetime, timezone
from typing import Any, Optional

import numpy as np
import pandas as pd

BOOLEAN_LITERALS = {'true', 'false', '0', '1', 'yes', 'no', 'y', 'n'}
TRUTHY_LITERALS = {'true', '1', 'yes', 'y'}


def is_missing(value: Any) -> bool:
    """None, NaN/NaT or a blank string."""
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def as_text(value: Any) -> str:
    """Display text of a cell (booleans lowercase, integral floats without '.0')."""
    if is_missing(value):
        return ""
    if isinstance(value, (bool, np.bool_)):
        return 'true' if value else 'false'
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a cell to a finite float.

    Numeric strings are accepted; booleans are not numbers.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None

    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or '_' in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    return number if math.isfinite(number) else None


def is_fractional(value: Any) -> bool:
    number = to_number(value)
    return number is not None and not number.is_integer()


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Coerce a cell to a naive datetime.

    Aware values are converted to UTC first. Numbers are never treated as
    dates here; serial dates are resolved when the file is parsed.
    """
    if is_missing(value) or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            stamp = pd.to_datetime(value.strip())
        except (ValueError, TypeError, OverflowError):
            return None
        if stamp is pd.NaT:
            return None
        parsed = stamp.to_pydatetime()
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if isinstance(parsed, pd.Timestamp):
        parsed = parsed.to_pydatetime()
    return parsed


def looks_like_date(value: Any) -> bool:
    """Datetime cells, or text with a '-' or '/' that parses as a date and is not a plain number."""
    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str):
        return False

    text = value.strip()
    if ('-' not in text and '/' not in text) or to_number(text) is not None:
        return False
    return to_datetime(text) is not None


def is_boolean_literal(value: Any) -> bool:
    return as_text(value).strip().lower() in BOOLEAN_LITERALS


def is_truthy(value: Any) -> bool:
    return as_text(value).strip().lower() in TRUTHY_LITERALS
