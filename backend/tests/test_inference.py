"""
Unit tests for the chart recommendation service.
"""
import pytest
from correlab.core.schemas import BooleanStats, ChartConfigDraft, ColumnMetadata
from correlab.core.performance import PerformanceMonitor
from correlab.services.inference import (
    CHART_RULES, ChartRule, analyze_columns, calculate_bin_count, generate_config,
    get_chart_type_info, pick_category_column, recommend_charts, suggest_aggregation,
    validate_config
)


@pytest.fixture
def time_series_columns():
    """A date column with two numeric metrics."""
    return [
        ColumnMetadata(name="date", type="date", unique_count=30),
        ColumnMetadata(name="revenue", type="float", unique_count=30, mean=1500.0),
        ColumnMetadata(name="orders", type="integer", unique_count=20, mean=42.0),
    ]


@pytest.fixture
def categorical_columns():
    """A low-cardinality category with one numeric column."""
    return [
        ColumnMetadata(name="region", type="string", unique_count=4),
        ColumnMetadata(name="sales", type="integer", unique_count=50, mean=300.0),
    ]


@pytest.mark.unit
def test_time_series_comes_first(time_series_columns):
    recommendations = recommend_charts(time_series_columns, "sales.csv", 100)

    top = recommendations[0]
    assert top.priority == 5
    assert top.config.type == "line"
    assert top.config.x_axis == "date"
    assert top.config.y_axis == ["revenue"]
    assert top.config.curved is True
    assert top.config.show_legend is True
    assert top.config.confidence == 0.95


@pytest.mark.unit
def test_time_series_multi_metric(time_series_columns):
    recommendations = recommend_charts(time_series_columns, "sales.csv", 100)

    multi = [r for r in recommendations if r.config.title == "Multi-Metric Trends Over Time"]
    assert len(multi) == 1
    assert multi[0].priority == 4
    assert multi[0].config.y_axis == ["revenue", "orders"]
    assert multi[0].config.color_theme == "categorical"


@pytest.mark.unit
def test_two_numeric_columns_give_scatter():
    columns = [
        ColumnMetadata(name="age", type="integer", unique_count=40),
        ColumnMetadata(name="spend", type="float", unique_count=90),
    ]

    recommendations = recommend_charts(columns, "people.csv", 100)

    assert recommendations[0].config.type == "scatter"
    assert recommendations[0].priority == 4
    assert recommendations[0].config.x_axis == "age"
    assert recommendations[0].config.y_axis == ["spend"]
    assert recommendations[0].config.title == "spend vs age"


@pytest.mark.unit
def test_category_comparison(categorical_columns):
    recommendations = recommend_charts(categorical_columns, "regions.csv", 100)

    bar = recommendations[0]
    assert bar.config.type == "bar"
    assert bar.priority == 5
    assert bar.config.x_axis == "region"
    assert bar.config.aggregation == "sum"
    assert bar.config.show_labels is True


@pytest.mark.unit
def test_bar_without_repeated_categories_is_not_aggregated(categorical_columns):
    recommendations = recommend_charts(categorical_columns, "regions.csv", 4)

    assert recommendations[0].config.aggregation == "none"


@pytest.mark.unit
def test_pie_and_donut(categorical_columns):
    recommendations = recommend_charts(categorical_columns, "regions.csv", 100)

    pies = [r for r in recommendations if r.config.type == "pie"]
    assert [p.config.donut for p in pies] == [False, True]
    assert [p.priority for p in pies] == [3, 2]
    assert pies[0].config.y_axis == ["sales"]
    assert pies[0].config.show_grid is False


@pytest.mark.unit
def test_pie_without_numeric_column_counts():
    columns = [ColumnMetadata(name="status", type="string", unique_count=3)]

    recommendations = recommend_charts(columns, "status.csv", 30)

    assert len(recommendations) == 2
    assert recommendations[0].config.y_axis == []
    assert recommendations[0].config.aggregation == "count"


@pytest.mark.unit
def test_single_numeric_column_gives_histogram():
    columns = [ColumnMetadata(name="latency", type="float", unique_count=80)]

    recommendations = recommend_charts(columns, "latency.csv", 100)

    assert len(recommendations) == 1
    assert recommendations[0].config.type == "histogram"
    assert recommendations[0].config.aggregation == "count"
    assert recommendations[0].priority == 2


@pytest.mark.unit
def test_no_rule_applies():
    columns = [ColumnMetadata(name="comment", type="string", unique_count=100)]

    assert recommend_charts(columns, "comments.csv", 100) == []


@pytest.mark.unit
def test_recommendations_are_ranked(time_series_columns):
    columns = time_series_columns + [ColumnMetadata(name="region", type="string", unique_count=4)]

    recommendations = recommend_charts(columns, "sales.csv", 100)

    keys = [(r.priority, r.config.confidence) for r in recommendations]
    assert keys == sorted(keys, reverse=True)
    assert PerformanceMonitor.get_stats("recommend_charts")["count"] == 1


@pytest.mark.unit
def test_custom_rules():
    calls = []
    rule = ChartRule("spy", lambda groups, row_count: calls.append((groups, row_count)) or [])

    recommend_charts([ColumnMetadata(name="x", type="integer")], "x.csv", 7, rules=[rule])

    assert calls[0][1] == 7
    assert [c.name for c in calls[0][0].numeric] == ["x"]
    assert [r.name for r in CHART_RULES] == [
        "time_series", "category_comparison", "proportions", "relationship", "distribution"
    ]


@pytest.mark.unit
def test_pick_category_column_prefers_small_cardinality():
    columns = [
        ColumnMetadata(name="city", type="string", unique_count=25),
        ColumnMetadata(name="tier", type="string", unique_count=3),
    ]

    assert pick_category_column(columns).name == "tier"
    assert pick_category_column(columns[:1]).name == "city"
    assert pick_category_column([ColumnMetadata(name="id", type="string", unique_count=500)]) is None


@pytest.mark.unit
def test_analyze_columns_projects_stats():
    stats = {
        "active": BooleanStats(count=10, null_count=0, true_count=10, false_count=0, true_percentage=100.0),
    }

    metadata = analyze_columns(["active", "name"], {"active": "boolean", "name": "string"}, stats)

    assert metadata[0].unique_count == 1
    assert metadata[1].type == "string"
    assert metadata[1].unique_count is None


@pytest.mark.unit
def test_generate_config(time_series_columns):
    line = generate_config("line", time_series_columns)
    assert line.title == "Line Chart"
    assert line.x_axis == "date"
    assert line.y_axis == ["revenue", "orders"]

    scatter = generate_config("scatter", time_series_columns, title="Revenue vs Orders")
    assert scatter.title == "Revenue vs Orders"
    assert scatter.x_axis == "revenue"
    assert scatter.y_axis == ["orders"]

    pie = generate_config("pie", [ColumnMetadata(name="status", type="string", unique_count=3)])
    assert pie.aggregation == "count"
    assert pie.y_axis == []


@pytest.mark.unit
def test_validate_config_reports_all_problems(categorical_columns):
    result = validate_config(ChartConfigDraft(x_axis="month", y_axis=["sales", "profit"]), categorical_columns)

    assert result.valid is False
    assert result.errors == [
        "Chart type is required",
        'X-axis column "month" does not exist in dataset',
        'Y-axis column "profit" does not exist in dataset',
    ]


@pytest.mark.unit
def test_validate_config(categorical_columns):
    assert validate_config(ChartConfigDraft(type="pie", x_axis="region"), categorical_columns).valid is True

    result = validate_config(ChartConfigDraft(type="bar", x_axis="region"), categorical_columns)
    assert result.errors == ["At least one Y-axis column is required"]

    result = validate_config(ChartConfigDraft(type="bar", y_axis=["sales"]), categorical_columns)
    assert result.errors == ["X-axis column is required"]


@pytest.mark.unit
def test_suggest_aggregation():
    region = ColumnMetadata(name="region", type="string", unique_count=4)
    revenue = ColumnMetadata(name="revenue", type="float", mean=5000.0)
    rating = ColumnMetadata(name="rating", type="float", mean=4.2)
    label = ColumnMetadata(name="label", type="string")

    assert suggest_aggregation(region, [revenue], 100) == "sum"
    assert suggest_aggregation(region, [rating], 100) == "avg"
    assert suggest_aggregation(region, [label], 100) == "count"
    assert suggest_aggregation(region, [revenue], 4) == "none"


@pytest.mark.unit
@pytest.mark.parametrize("size,bins", [(0, 1), (1, 1), (8, 4), (100, 8), (1000, 11)])
def test_calculate_bin_count(size, bins):
    assert calculate_bin_count(size) == bins


@pytest.mark.unit
def test_chart_type_info():
    assert get_chart_type_info("scatter").name == "Scatter Plot"
    assert get_chart_type_info("radar").name == "radar"
