"""
Unit tests for dataset queries: pagination, aggregation and time series.
"""
from datetime import datetime

import pytest
from correlab.services.aggregation import aggregate, bucket_key, paginate, reduce_values, time_series
from correlab.services.profiler import profile_dataset


@pytest.fixture
def sales():
    return profile_dataset([
        {"date": "2024-01-01", "region": "North", "revenue": 100, "units": 1},
        {"date": "2024-01-01", "region": "South", "revenue": 300, "units": 3},
        {"date": "2024-01-09", "region": "North", "revenue": 200, "units": None},
        {"date": "2024-02-15", "region": "East", "revenue": None, "units": 5},
        {"date": "2025-03-01", "region": "South", "revenue": 500, "units": 2},
    ])


@pytest.mark.unit
def test_paginate_slices(sales):
    page = paginate(sales, limit=2, offset=1)

    assert page.total == 5
    assert page.limit == 2
    assert page.offset == 1
    assert page.has_more is True
    assert [r["revenue"] for r in page.data] == [300, 200]


@pytest.mark.unit
def test_paginate_last_page(sales):
    page = paginate(sales, limit=2, offset=4)

    assert len(page.data) == 1
    assert page.has_more is False


@pytest.mark.unit
def test_paginate_sorts_missing_last(sales):
    ascending = paginate(sales, sort_by="revenue")
    descending = paginate(sales, sort_by="revenue", sort_order="desc")

    assert [r["revenue"] for r in ascending.data] == [100, 200, 300, 500, None]
    assert [r["revenue"] for r in descending.data] == [500, 300, 200, 100, None]


@pytest.mark.unit
def test_paginate_filters_and_projects(sales):
    page = paginate(sales, columns=["revenue"], filters={"region": "South", "units": None})

    assert page.total == 2
    assert page.data == [{"revenue": 300}, {"revenue": 500}]


@pytest.mark.unit
def test_paginate_unknown_sort_column(sales):
    with pytest.raises(ValueError, match="Unknown column"):
        paginate(sales, sort_by="profit")


@pytest.mark.unit
def test_reduce_values():
    assert reduce_values([1, None, "3", "n/a"], "sum") == 4.0
    assert reduce_values([1, None, "3"], "count") == 2
    assert reduce_values([2, 4], "avg") == 3.0
    assert reduce_values([2, 4], "min") == 2.0
    assert reduce_values([2, 4], "max") == 4.0
    assert reduce_values([None, "x"], "avg") == 0


@pytest.mark.unit
def test_aggregate_whole_dataset(sales):
    assert aggregate(sales, "sum") == {"revenue": 1100.0, "units": 11.0}
    assert aggregate(sales, "count", columns=["revenue"]) == {"revenue": 4}


@pytest.mark.unit
def test_aggregate_grouped_keeps_first_seen_order(sales):
    result = aggregate(sales, "avg", group_by="region", columns=["revenue"])

    assert result == [
        {"region": "North", "revenue": 150.0},
        {"region": "South", "revenue": 400.0},
        {"region": "East", "revenue": 0},
    ]


@pytest.mark.unit
def test_aggregate_rejects_bad_input(sales):
    with pytest.raises(ValueError):
        aggregate(sales, "median")
    with pytest.raises(ValueError, match="Unknown column"):
        aggregate(sales, "sum", group_by="country")


@pytest.mark.unit
@pytest.mark.parametrize("interval,expected", [
    ("day", "2024-01-10"),
    ("week", "2024-01-07"),
    ("month", "2024-01"),
    ("year", "2024"),
])
def test_bucket_key(interval, expected):
    # 2024-01-10 is a Wednesday
    assert bucket_key(datetime(2024, 1, 10, 15, 30), interval) == expected


@pytest.mark.unit
def test_bucket_key_sunday_starts_its_week():
    assert bucket_key(datetime(2024, 1, 7), "week") == "2024-01-07"


@pytest.mark.unit
def test_time_series_by_month(sales):
    series = time_series(sales, "date", ["revenue"], interval="month")

    assert series == [
        {"date": "2024-01", "revenue": 200.0},
        {"date": "2024-02", "revenue": 0},
        {"date": "2025-03", "revenue": 500.0},
    ]


@pytest.mark.unit
def test_time_series_by_day(sales):
    series = time_series(sales, "date", ["revenue", "units"])

    assert series[0] == {"date": "2024-01-01", "revenue": 200.0, "units": 2.0}
    assert len(series) == 4


@pytest.mark.unit
def test_time_series_requires_date_column(sales):
    with pytest.raises(ValueError, match="not a date column"):
        time_series(sales, "region", ["revenue"])


@pytest.mark.unit
def test_aggregate_groups_unhashable_cells_by_text():
    dataset = profile_dataset([
        {"tags": ["a", "b"], "value": 1},
        {"tags": ["a", "b"], "value": 3},
        {"tags": {"k": 1}, "value": 5},
    ])

    result = aggregate(dataset, "sum", group_by="tags", columns=["value"])

    assert result == [
        {"tags": "['a', 'b']", "value": 4.0},
        {"tags": "{'k': 1}", "value": 5.0},
    ]
