"""
Unit tests for column type inference.
"""
import pytest
from correlab.services.schema_inference import infer_types, infer_column_type, sample_values


@pytest.mark.unit
def test_infer_types_basic():
    rows = [
        {"name": "Alice", "age": 25, "score": 85.5, "joined": "2024-01-01", "active": "yes"},
        {"name": "Bob", "age": 30, "score": 90.0, "joined": "2024-02-01", "active": "no"},
    ]

    types = infer_types(rows, ["name", "age", "score", "joined", "active"])

    assert types == {
        "name": "string",
        "age": "integer",
        "score": "float",
        "joined": "date",
        "active": "boolean",
    }


@pytest.mark.unit
def test_boolean_takes_precedence_over_integer():
    rows = [{"flag": v} for v in ["0", "1", "1", "0"]]

    assert infer_types(rows, ["flag"]) == {"flag": "boolean"}


@pytest.mark.unit
def test_inference_is_deterministic():
    rows = [{"v": v} for v in ["1", "2", "3.5", None, ""]]

    first = infer_types(rows, ["v"])
    for _ in range(3):
        assert infer_types(rows, ["v"]) == first
    assert first == {"v": "float"}


@pytest.mark.unit
def test_empty_column_defaults_to_string():
    rows = [{"empty": None}, {"empty": ""}, {}]

    assert infer_types(rows, ["empty"]) == {"empty": "string"}


@pytest.mark.unit
def test_integral_decimals_stay_integer():
    assert infer_column_type(["2.0", "3.0", 4]) == "integer"


@pytest.mark.unit
def test_plain_numbers_are_not_dates():
    assert infer_column_type(["20240101", "20240102"]) == "integer"


@pytest.mark.unit
def test_mixed_values_fall_back_to_string():
    assert infer_column_type(["12", "twelve"]) == "string"
    assert infer_column_type(["2024-01-01", "soon"]) == "string"


@pytest.mark.unit
def test_sampling_skips_blanks_and_respects_limit():
    rows = [{"c": None}, {"c": ""}] + [{"c": i} for i in range(10)]

    assert sample_values(rows, "c", 3) == [0, 1, 2]


@pytest.mark.unit
def test_only_sampled_values_decide_the_type():
    rows = [{"c": "1"}, {"c": "0"}, {"c": "oops"}]

    assert infer_types(rows, ["c"], sample_size=2) == {"c": "boolean"}
    assert infer_types(rows, ["c"], sample_size=3) == {"c": "string"}
