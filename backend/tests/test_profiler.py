"""
Unit tests for the statistics engine and dataset profiling.
"""
import pytest
from datetime import datetime
from pydantic import ValidationError
from correlab.core.performance import PerformanceMonitor
from correlab.core.schemas import (
    BooleanStats, Dataset, DateStats, EmptyStats, NumericStats, StringStats
)
from correlab.services.profiler import compute_stats, profile_dataset, resolve_columns


@pytest.mark.unit
def test_numeric_stats():
    rows = [{"v": v} for v in [1, 2, 3, 4, 5]]

    stats = compute_stats(rows, ["v"], {"v": "integer"})["v"]

    assert isinstance(stats, NumericStats)
    assert stats.type == "integer"
    assert stats.count == 5
    assert stats.null_count == 0
    assert stats.mean == 3
    assert stats.median == 3
    assert stats.std_dev == 1.41  # population, not sample
    assert stats.sum == 15
    assert stats.min == 1
    assert stats.max == 5
    assert stats.unique_count == 5


@pytest.mark.unit
def test_median_of_even_count_averages_middle_values():
    rows = [{"v": v} for v in [4, 1, 3, 2]]

    stats = compute_stats(rows, ["v"], {"v": "float"})["v"]

    assert stats.median == 2.5
    assert stats.mean == 2.5


@pytest.mark.unit
def test_numeric_results_are_rounded():
    rows = [{"v": v} for v in [1, 2, 2]]

    stats = compute_stats(rows, ["v"], {"v": "integer"})["v"]

    assert stats.mean == 1.67
    assert stats.std_dev == 0.47


@pytest.mark.unit
def test_count_plus_null_count_equals_row_count():
    rows = [
        {"n": 1, "s": "a", "d": "2024-01-01", "b": "yes"},
        {"n": None, "s": None, "d": "nonsense", "b": None},
        {"n": "oops", "s": "", "d": None, "b": "maybe"},
        {"n": 4.5, "s": "b", "d": "2024-02-01", "b": "no"},
    ]
    types = {"n": "float", "s": "string", "d": "date", "b": "boolean"}

    stats = compute_stats(rows, list(types), types)

    for column, column_stats in stats.items():
        assert column_stats.count + column_stats.null_count == len(rows), column
    assert stats["n"].null_count == 2
    assert stats["d"].null_count == 2


@pytest.mark.unit
def test_string_top_values_ranked_with_first_seen_ties():
    values = ["a", "b", "a", "c", "b", "d", "e", "f"]
    rows = [{"s": v} for v in values]

    stats = compute_stats(rows, ["s"], {"s": "string"})["s"]

    assert isinstance(stats, StringStats)
    assert [t.value for t in stats.top_values] == ["a", "b", "c", "d", "e"]
    assert stats.top_values[0].count == 2
    assert stats.top_values[0].percentage == 25.0
    assert stats.unique_count == 6
    assert stats.min_length == 1
    assert stats.max_length == 1


@pytest.mark.unit
def test_long_top_values_are_truncated():
    rows = [{"s": "x" * 60}, {"s": "short"}]

    stats = compute_stats(rows, ["s"], {"s": "string"})["s"]

    assert stats.top_values[0].value == "x" * 47 + "..."
    assert stats.max_length == 60


@pytest.mark.unit
def test_date_stats():
    rows = [{"d": v} for v in ["2024-01-01", "2024-01-01T10:00:00", "2024-01-05", "garbage", None]]

    stats = compute_stats(rows, ["d"], {"d": "date"})["d"]

    assert isinstance(stats, DateStats)
    assert stats.count == 3
    assert stats.null_count == 2
    assert stats.earliest == datetime(2024, 1, 1)
    assert stats.latest == datetime(2024, 1, 5)
    assert stats.unique_count == 2  # distinct days


@pytest.mark.unit
def test_boolean_stats():
    rows = [{"b": v} for v in ["yes", "no", "Y", "true", None]]

    stats = compute_stats(rows, ["b"], {"b": "boolean"})["b"]

    assert isinstance(stats, BooleanStats)
    assert stats.count == 4
    assert stats.null_count == 1
    assert stats.true_count == 3
    assert stats.false_count == 1
    assert stats.true_percentage == 75.0


@pytest.mark.unit
def test_all_null_numeric_column_yields_empty_stats():
    rows = [{"n": None}, {"n": None}, {"n": ""}]

    stats = compute_stats(rows, ["n"], {"n": "integer"})["n"]

    assert isinstance(stats, EmptyStats)
    assert stats.count == 0
    assert stats.null_count == 3


@pytest.mark.unit
def test_statistics_are_idempotent():
    rows = [{"s": v, "n": i * 1.1} for i, v in enumerate("abcabcxyzzy")]
    types = {"s": "string", "n": "float"}

    first = compute_stats(rows, ["s", "n"], types)
    second = compute_stats(rows, ["s", "n"], types)

    assert {k: v.model_dump_json() for k, v in first.items()} == \
        {k: v.model_dump_json() for k, v in second.items()}


@pytest.mark.unit
def test_profile_dataset():
    rows = [
        {"name": "Alice", "age": 25, "score": 85.5},
        {"name": "Bob", "age": 30, "score": 90.0},
        {"name": "Charlie", "age": 35, "score": 88.5},
    ]

    dataset = profile_dataset(rows)

    assert isinstance(dataset, Dataset)
    assert dataset.row_count == 3
    assert dataset.columns == ["name", "age", "score"]
    assert dataset.types == {"name": "string", "age": "integer", "score": "float"}
    assert dataset.stats["age"].mean == 30
    assert PerformanceMonitor.get_stats("profile_dataset")["count"] == 1


@pytest.mark.unit
def test_dataset_is_immutable():
    dataset = profile_dataset([{"a": 1}])

    with pytest.raises(ValidationError):
        dataset.row_count = 10


@pytest.mark.unit
def test_resolve_columns_keeps_first_seen_order():
    rows = [{"b": 1, "a": 2}, {"c": 3, "a": 4}]

    assert resolve_columns(rows) == ["b", "a", "c"]
    assert resolve_columns(rows, ["a"]) == ["a"]
