"""
Unit tests for cell value coercion.
"""
import math
import pytest
from datetime import date, datetime, timezone, timedelta
from correlab.services.values import (
    as_text, is_boolean_literal, is_fractional, is_missing, is_truthy,
    looks_like_date, to_datetime, to_number
)


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, "", "   ", float("nan")])
def test_is_missing(value):
    assert is_missing(value)


@pytest.mark.unit
@pytest.mark.parametrize("value", [0, False, "0", "text"])
def test_is_not_missing(value):
    assert not is_missing(value)


@pytest.mark.unit
def test_as_text():
    assert as_text(True) == "true"
    assert as_text(False) == "false"
    assert as_text(3.0) == "3"
    assert as_text(2.5) == "2.5"
    assert as_text(datetime(2024, 1, 2, 3, 4)) == "2024-01-02T03:04:00"
    assert as_text(None) == ""


@pytest.mark.unit
def test_to_number():
    assert to_number(5) == 5.0
    assert to_number(" 2.5 ") == 2.5
    assert to_number("-3") == -3.0
    assert to_number(True) is None
    assert to_number("abc") is None
    assert to_number("inf") is None
    assert to_number(float("nan")) is None
    assert to_number("1_000") is None
    assert to_number(None) is None


@pytest.mark.unit
def test_is_fractional():
    assert is_fractional("1.5")
    assert is_fractional(0.25)
    assert not is_fractional("2.0")
    assert not is_fractional(7)
    assert not is_fractional("abc")


@pytest.mark.unit
def test_to_datetime_parses_text_and_dates():
    assert to_datetime("2024-03-15") == datetime(2024, 3, 15)
    assert to_datetime(date(2024, 3, 15)) == datetime(2024, 3, 15)
    assert to_datetime("not a date") is None
    assert to_datetime(None) is None
    assert to_datetime(42) is None


@pytest.mark.unit
def test_to_datetime_normalizes_timezones_to_utc():
    aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_datetime(aware) == datetime(2024, 1, 1, 10, 0)
    assert to_datetime(aware).tzinfo is None


@pytest.mark.unit
def test_looks_like_date():
    assert looks_like_date("2024-01-01")
    assert looks_like_date("01/15/2024")
    assert looks_like_date(datetime(2024, 1, 1))
    # Plain numbers never look like dates, even with a sign
    assert not looks_like_date("20240101")
    assert not looks_like_date("-5")
    assert not looks_like_date(45000)
    assert not looks_like_date("red-blue")


@pytest.mark.unit
def test_boolean_literals():
    for value in ("true", "FALSE", "Yes", "n", "0", "1", True, 1):
        assert is_boolean_literal(value)
    assert not is_boolean_literal("maybe")
    assert not is_boolean_literal(2)

    assert is_truthy("YES")
    assert is_truthy(1)
    assert is_truthy(True)
    assert not is_truthy("no")
    assert not is_truthy(0)
