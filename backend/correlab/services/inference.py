"""
Chart recommendation service.

This module turns column metadata into ranked chart configurations using
an ordered list of independent rules. Every rule that applies contributes
its recommendations; the combined list is then sorted by priority and
confidence.
"""
import math
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from correlab.core.schemas import (
    AggregationType, ChartConfig, ChartConfigDraft, ChartRecommendation, ChartType,
    ChartTypeInfo, ColumnMetadata, ColumnStatistics, ColumnType, ValidationResult,
    BooleanStats, CATEGORICAL_TYPES, NUMERIC_TYPES
)
from correlab.core.performance import track_performance

logger = logging.getLogger(__name__)

MAX_SERIES = 3
PREFERRED_MAX_CATEGORIES = 15
MAX_CATEGORIES = 30
LABELED_MAX_CATEGORIES = 10
PIE_MIN_CATEGORIES = 2
PIE_MAX_CATEGORIES = 8
LARGE_MEAN = 1000


@dataclass
class ColumnGroups:
    numeric: List[ColumnMetadata]
    categorical: List[ColumnMetadata]
    date: List[ColumnMetadata]

    @classmethod
    def of(cls, columns: List[ColumnMetadata]) -> "ColumnGroups":
        return cls(
            numeric=[c for c in columns if c.type in NUMERIC_TYPES],
            categorical=[c for c in columns if c.type in CATEGORICAL_TYPES],
            date=[c for c in columns if c.type == 'date'],
        )


@dataclass(frozen=True)
class ChartRule:
    """One recommendation heuristic: (columns, row_count) -> recommendations."""
    name: str
    build: Callable[[ColumnGroups, int], List[ChartRecommendation]]

    def __call__(self, columns: List[ColumnMetadata], row_count: int) -> List[ChartRecommendation]:
        return self.build(ColumnGroups.of(columns), row_count)


def _names(columns: List[ColumnMetadata]) -> List[str]:
    return [c.name for c in columns]


def _time_series(groups: ColumnGroups, row_count: int) -> List[ChartRecommendation]:
    if not groups.date or not groups.numeric:
        return []

    date_col = groups.date[0]
    value_col = groups.numeric[0]
    recommendations = [ChartRecommendation(
        config=ChartConfig(
            type='line',
            title=f"{value_col.name} Over Time",
            description=f"Trend of {value_col.name} across {date_col.name}",
            x_axis=date_col.name,
            y_axis=[value_col.name],
            aggregation='none',
            color_theme='primary',
            show_legend=len(groups.numeric) > 1,
            curved=True,
            confidence=0.95,
            reasoning=(
                f"Time series data detected with {date_col.name} and {value_col.name}. "
                f"Line charts excel at showing trends over time."
            )
        ),
        priority=5,
        reasoning="Time series data is best visualized with line charts to show trends and patterns"
    )]

    if len(groups.numeric) > 1:
        series = _names(groups.numeric[:MAX_SERIES])
        recommendations.append(ChartRecommendation(
            config=ChartConfig(
                type='line',
                title="Multi-Metric Trends Over Time",
                description=f"Compare {', '.join(series)} over time",
                x_axis=date_col.name,
                y_axis=series,
                aggregation='none',
                color_theme='categorical',
                show_legend=True,
                curved=True,
                confidence=0.9,
                reasoning=f"Multiple metrics ({len(groups.numeric)}) can be compared over time to identify correlations"
            ),
            priority=4,
            reasoning="Compare multiple metrics simultaneously to find patterns"
        ))

    return recommendations


def pick_category_column(columns: List[ColumnMetadata]) -> Optional[ColumnMetadata]:
    """First column with at most 15 distinct values, else the first with at most 30."""
    for limit in (PREFERRED_MAX_CATEGORIES, MAX_CATEGORIES):
        for column in columns:
            if column.unique_count and column.unique_count <= limit:
                return column
    return None


def _category_comparison(groups: ColumnGroups, row_count: int) -> List[ChartRecommendation]:
    if not groups.categorical or not groups.numeric:
        return []

    cat_col = pick_category_column(groups.categorical)
    if cat_col is None:
        return []

    value_col = groups.numeric[0]
    aggregation: AggregationType = 'sum' if cat_col.unique_count < row_count else 'none'
    recommendations = [ChartRecommendation(
        config=ChartConfig(
            type='bar',
            title=f"{value_col.name} by {cat_col.name}",
            description=f"Compare {value_col.name} across different {cat_col.name} categories",
            x_axis=cat_col.name,
            y_axis=[value_col.name],
            aggregation=aggregation,
            color_theme='categorical',
            show_labels=cat_col.unique_count <= LABELED_MAX_CATEGORIES,
            stacked=False,
            confidence=0.9,
            reasoning=(
                f"Categorical data ({cat_col.unique_count} categories) with numeric values. "
                f"Bar charts are ideal for category comparison."
            )
        ),
        priority=5,
        reasoning="Bar charts excel at comparing values across categories"
    )]

    if len(groups.numeric) > 1:
        series = _names(groups.numeric[:MAX_SERIES])
        recommendations.append(ChartRecommendation(
            config=ChartConfig(
                type='bar',
                title=f"Stacked Comparison by {cat_col.name}",
                description=f"See composition of {', '.join(series)}",
                x_axis=cat_col.name,
                y_axis=series,
                aggregation=aggregation,
                color_theme='categorical',
                show_legend=True,
                stacked=True,
                confidence=0.85,
                reasoning="Multiple metrics can be stacked to show both total and composition"
            ),
            priority=3,
            reasoning="Stacked bars show part-to-whole relationships"
        ))

    return recommendations


def _proportions(groups: ColumnGroups, row_count: int) -> List[ChartRecommendation]:
    cat_col = next(
        (c for c in groups.categorical
         if c.unique_count and PIE_MIN_CATEGORIES <= c.unique_count <= PIE_MAX_CATEGORIES),
        None
    )
    if cat_col is None:
        return []

    y_axis = [groups.numeric[0].name] if groups.numeric else []
    aggregation: AggregationType = 'sum' if groups.numeric else 'count'

    def pie(title, description, donut, confidence, reasoning):
        return ChartConfig(
            type='pie',
            title=title,
            description=description,
            x_axis=cat_col.name,
            y_axis=y_axis,
            aggregation=aggregation,
            color_theme='categorical',
            show_grid=False,
            show_legend=True,
            show_labels=True,
            donut=donut,
            confidence=confidence,
            reasoning=reasoning
        )

    return [
        ChartRecommendation(
            config=pie(
                f"Distribution of {cat_col.name}",
                f"Breakdown by {cat_col.name} category",
                False,
                0.8,
                f"{cat_col.name} has {cat_col.unique_count} categories - perfect for showing proportions in a pie chart"
            ),
            priority=3,
            reasoning="Pie charts effectively show part-to-whole relationships for 2-8 categories"
        ),
        ChartRecommendation(
            config=pie(
                f"{cat_col.name} Breakdown (Donut)",
                f"Proportional view of {cat_col.name}",
                True,
                0.75,
                "Donut charts provide a modern take on pie charts with space for central summary"
            ),
            priority=2,
            reasoning="Donut variant provides cleaner visualization"
        ),
    ]


def _relationship(groups: ColumnGroups, row_count: int) -> List[ChartRecommendation]:
    if len(groups.numeric) < 2:
        return []

    x_col, y_col = groups.numeric[0], groups.numeric[1]
    return [ChartRecommendation(
        config=ChartConfig(
            type='scatter',
            title=f"{y_col.name} vs {x_col.name}",
            description=f"Correlation analysis between {x_col.name} and {y_col.name}",
            x_axis=x_col.name,
            y_axis=[y_col.name],
            aggregation='none',
            color_theme='primary',
            confidence=0.85,
            reasoning=(
                f"Two numeric variables detected. Scatter plots reveal correlations and outliers "
                f"between {x_col.name} and {y_col.name}."
            )
        ),
        priority=4,
        reasoning="Scatter plots are essential for identifying correlations between variables"
    )]


def _distribution(groups: ColumnGroups, row_count: int) -> List[ChartRecommendation]:
    if not groups.numeric or groups.categorical or groups.date:
        return []

    num_col = groups.numeric[0]
    return [ChartRecommendation(
        config=ChartConfig(
            type='histogram',
            title=f"Distribution of {num_col.name}",
            description=f"Frequency distribution of {num_col.name} values",
            x_axis=num_col.name,
            y_axis=[num_col.name],
            aggregation='count',
            color_theme='sequential',
            confidence=0.7,
            reasoning="Single numeric column - histogram shows value distribution and identifies patterns"
        ),
        priority=2,
        reasoning="Understand data distribution and identify outliers"
    )]


CHART_RULES: List[ChartRule] = [
    ChartRule("time_series", _time_series),
    ChartRule("category_comparison", _category_comparison),
    ChartRule("proportions", _proportions),
    ChartRule("relationship", _relationship),
    ChartRule("distribution", _distribution),
]


def rank_recommendations(recommendations: List[ChartRecommendation]) -> List[ChartRecommendation]:
    """Highest priority first, then highest confidence; stable for full ties."""
    return sorted(recommendations, key=lambda r: (-r.priority, -r.config.confidence))


@track_performance("recommend_charts")
def recommend_charts(
    columns: List[ColumnMetadata],
    dataset_name: str,
    row_count: int,
    rules: Optional[List[ChartRule]] = None
) -> List[ChartRecommendation]:
    """
    Recommend chart configurations for a dataset.

    Args:
        columns: Column metadata (see analyze_columns)
        dataset_name: Dataset label, used for logging
        row_count: Number of rows in the dataset
        rules: Rules to apply (defaults to CHART_RULES)

    Returns:
        Recommendations sorted by priority, then confidence (highest first)
    """
    recommendations: List[ChartRecommendation] = []
    for rule in rules if rules is not None else CHART_RULES:
        produced = rule(columns, row_count)
        if produced:
            logger.debug(f"Rule {rule.name} produced {len(produced)} recommendation(s)")
        recommendations.extend(produced)

    ranked = rank_recommendations(recommendations)
    logger.info(f"Recommended {len(ranked)} charts for {dataset_name}")
    return ranked


def analyze_columns(
    columns: List[str],
    types: Dict[str, ColumnType],
    stats: Optional[Dict[str, ColumnStatistics]] = None
) -> List[ColumnMetadata]:
    """
    Project column statistics into recommendation metadata.

    Boolean columns report their number of distinct values (1 or 2) as
    unique_count.
    """
    stats = stats or {}
    metadata = []
    for name in columns:
        column_stats = stats.get(name)
        fields = {}
        if column_stats is not None:
            for field in ('unique_count', 'min', 'max', 'mean', 'median', 'null_count'):
                value = getattr(column_stats, field, None)
                if isinstance(value, (int, float)):
                    fields[field] = value
            if isinstance(column_stats, BooleanStats):
                fields['unique_count'] = int(column_stats.true_count > 0) + int(column_stats.false_count > 0)
        metadata.append(ColumnMetadata(name=name, type=types.get(name, 'string'), **fields))
    return metadata


def _first_name(*candidates: List[ColumnMetadata]) -> Optional[str]:
    for columns in candidates:
        if columns:
            return columns[0].name
    return None


def generate_config(chart_type: ChartType, columns: List[ColumnMetadata], title: Optional[str] = None) -> ChartConfigDraft:
    """Draft configuration for a chart type, with axes chosen from the column kinds."""
    groups = ColumnGroups.of(columns)
    first = columns[0].name if columns else None

    config = ChartConfigDraft(
        type=chart_type,
        title=title or f"{chart_type.capitalize()} Chart",
        animated=True,
        show_grid=True,
        show_legend=True,
        show_labels=False
    )

    if chart_type == 'line':
        config.x_axis = _first_name(groups.date, groups.categorical) or first
        config.y_axis = _names(groups.numeric[:MAX_SERIES])
        config.curved = True
        config.aggregation = 'none'
        config.color_theme = 'primary'
    elif chart_type == 'bar':
        config.x_axis = _first_name(groups.categorical, groups.date) or first
        config.y_axis = _names(groups.numeric[:1])
        config.stacked = False
        config.aggregation = 'sum'
        config.color_theme = 'categorical'
    elif chart_type == 'pie':
        config.x_axis = _first_name(groups.categorical) or first
        config.y_axis = _names(groups.numeric[:1])
        config.donut = False
        config.aggregation = 'sum' if groups.numeric else 'count'
        config.color_theme = 'categorical'
        config.show_grid = False
    elif chart_type == 'scatter':
        config.x_axis = _first_name(groups.numeric) or first
        config.y_axis = _names(groups.numeric[1:2])
        config.aggregation = 'none'
        config.color_theme = 'primary'

    return config


def validate_config(config: ChartConfigDraft, columns: List[ColumnMetadata]) -> ValidationResult:
    """
    Check a chart configuration against the dataset's columns.

    Problems are reported, not raised.
    """
    errors: List[str] = []
    column_names = set(_names(columns))

    if not config.type:
        errors.append("Chart type is required")

    if not config.x_axis:
        errors.append("X-axis column is required")
    elif config.x_axis not in column_names:
        errors.append(f'X-axis column "{config.x_axis}" does not exist in dataset')

    if config.type != 'pie' and not config.y_axis:
        errors.append("At least one Y-axis column is required")

    for column in config.y_axis or []:
        if column not in column_names:
            errors.append(f'Y-axis column "{column}" does not exist in dataset')

    return ValidationResult(valid=not errors, errors=errors)


def suggest_aggregation(x_column: ColumnMetadata, y_columns: List[ColumnMetadata], row_count: int) -> AggregationType:
    # Repeated x values need a reduction; large means look like totals
    if not x_column.unique_count or x_column.unique_count >= row_count:
        return 'none'

    if any(c.type in NUMERIC_TYPES for c in y_columns):
        y_mean = y_columns[0].mean if y_columns else None
        if y_mean and y_mean > LARGE_MEAN:
            return 'sum'
        return 'avg'

    return 'count'


def calculate_bin_count(data_size: int) -> int:
    """Histogram bin count by Sturges' rule."""
    if data_size < 1:
        return 1
    return math.ceil(math.log2(data_size) + 1)


CHART_TYPE_INFO: Dict[str, ChartTypeInfo] = {
    'line': ChartTypeInfo(
        name='Line Chart',
        description='Shows trends and changes over time',
        best_for='Time series data, trends, continuous data'
    ),
    'bar': ChartTypeInfo(
        name='Bar Chart',
        description='Compares values across categories',
        best_for='Categorical comparisons, rankings, distributions'
    ),
    'pie': ChartTypeInfo(
        name='Pie Chart',
        description='Shows proportions of a whole',
        best_for='Part-to-whole relationships, percentages (2-8 categories)'
    ),
    'scatter': ChartTypeInfo(
        name='Scatter Plot',
        description='Reveals correlations between variables',
        best_for='Correlation analysis, outlier detection, clustering'
    ),
    'area': ChartTypeInfo(
        name='Area Chart',
        description='Shows cumulative trends over time',
        best_for='Stacked metrics, cumulative values'
    ),
    'histogram': ChartTypeInfo(
        name='Histogram',
        description='Shows frequency distribution',
        best_for='Data distribution, identifying patterns and outliers'
    ),
}


def get_chart_type_info(chart_type: str) -> ChartTypeInfo:
    return CHART_TYPE_INFO.get(chart_type) or ChartTypeInfo(name=chart_type, description='', best_for='')
