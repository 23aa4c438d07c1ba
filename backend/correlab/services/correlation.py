"""
Correlation detection between dataset columns and document signals.

Three independent passes produce Correlation records:
- numeric: Pearson r for every pair of numeric columns
- thematic: how often a document theme's keywords occur in a text column
- sentiment: whether rating-like columns agree with the document sentiment
"""
import math
import logging
from typing import Iterable, List, Optional, Sequence

import numpy as np

from correlab.core.schemas import (
    CorrelationAnalysis, Correlation, Dataset, Document, EmptyStats, Strength, NUMERIC_TYPES
)
from correlab.core.performance import track_performance
from correlab.services.insights import generate_insights
from correlab.services.schema_inference import sample_values
from correlab.services.values import as_text, is_missing, to_number

logger = logging.getLogger(__name__)

NOISE_THRESHOLD = 0.3
MIN_PAIRED_OBSERVATIONS = 3

THEMATIC_MIN_MATCH_PERCENT = 10
TEXT_COLUMN_MIN_LENGTH = 10
TEXT_COLUMN_SAMPLE_SIZE = 100

SENTIMENT_COLUMN_KEYWORDS = ('rating', 'score', 'satisfaction', 'nps')
# Column means are read on a 0-10 scale
POSITIVE_MEAN_ABOVE = 7
NEGATIVE_MEAN_BELOW = 4


def pearson_correlation(x: Sequence[Optional[float]], y: Sequence[Optional[float]]) -> Optional[float]:
    """
    Pearson correlation coefficient over the pairs where both values are finite.

    Returns None with fewer than three usable pairs or when either side is
    constant. Raises ValueError when the sequences differ in length.
    """
    if len(x) != len(y):
        raise ValueError(f"Cannot correlate sequences of different length ({len(x)} and {len(y)})")

    pairs = [
        (a, b) for a, b in zip(x, y)
        if a is not None and b is not None and math.isfinite(a) and math.isfinite(b)
    ]
    if len(pairs) < MIN_PAIRED_OBSERVATIONS:
        return None

    xs = np.array([p[0] for p in pairs], dtype='float64')
    ys = np.array([p[1] for p in pairs], dtype='float64')
    if np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return None

    # Scaled to unit magnitude before and after centring, so large values neither cancel nor overflow
    with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
        xs = xs / np.abs(xs).max()
        ys = ys / np.abs(ys).max()
        dx = xs - xs.mean()
        dy = ys - ys.mean()
        dx = dx / np.abs(dx).max()
        dy = dy / np.abs(dy).max()
        r = float((dx * dy).sum() / np.sqrt((dx * dx).sum() * (dy * dy).sum()))

    if not math.isfinite(r):
        return None
    return max(-1.0, min(1.0, r))


def numeric_strength(coefficient: float) -> Strength:
    magnitude = abs(coefficient)
    if magnitude > 0.7:
        return 'strong'
    if magnitude > 0.5:
        return 'moderate'
    return 'weak'


def thematic_strength(match_percentage: float) -> Strength:
    if match_percentage > 50:
        return 'strong'
    if match_percentage > 25:
        return 'moderate'
    return 'weak'


def numeric_columns(dataset: Dataset) -> List[str]:
    """Integer/float columns that have at least one number."""
    return [
        column for column in dataset.columns
        if dataset.types.get(column) in NUMERIC_TYPES
        and not isinstance(dataset.stats.get(column), EmptyStats)
    ]


def text_columns(dataset: Dataset) -> List[str]:
    """String columns whose sampled values average more than 10 characters."""
    columns = []
    for column in dataset.columns:
        if dataset.types.get(column) != 'string':
            continue
        samples = sample_values(dataset.rows, column, TEXT_COLUMN_SAMPLE_SIZE)
        if samples and sum(len(as_text(v)) for v in samples) / len(samples) > TEXT_COLUMN_MIN_LENGTH:
            columns.append(column)
    return columns


def analyze_numeric_correlations(dataset: Dataset) -> List[Correlation]:
    columns = numeric_columns(dataset)
    values = {c: [to_number(row.get(c)) for row in dataset.rows] for c in columns}
    correlations = []

    for i, column1 in enumerate(columns):
        for column2 in columns[i + 1:]:
            coefficient = pearson_correlation(values[column1], values[column2])
            if coefficient is None or abs(coefficient) <= NOISE_THRESHOLD:
                continue

            strength = numeric_strength(coefficient)
            direction = 'positive' if coefficient > 0 else 'negative'
            correlations.append(Correlation(
                type='numeric',
                column1=column1,
                column2=column2,
                coefficient=coefficient,
                strength=strength,
                direction=direction,
                description=(
                    f"{strength} {direction} correlation between {column1} and {column2} "
                    f"(r={coefficient:.2f})"
                )
            ))

    logger.debug(f"Numeric correlation pass: {len(columns)} columns, {len(correlations)} correlations")
    return correlations


def _keywords(theme_name: str) -> List[str]:
    return [token for token in theme_name.lower().split() if token]


def _mentions(cell, keywords: Iterable[str]) -> bool:
    if is_missing(cell):
        return False
    text = as_text(cell).lower()
    return any(keyword in text for keyword in keywords)


def analyze_thematic_correlations(dataset: Dataset, document: Document) -> List[Correlation]:
    if not dataset.rows or not document.themes:
        return []

    columns = text_columns(dataset)
    correlations = []

    for theme in document.themes:
        keywords = _keywords(theme.name)
        if not keywords:
            continue

        for column in columns:
            matching = sum(1 for row in dataset.rows if _mentions(row.get(column), keywords))
            match_percentage = matching / dataset.row_count * 100
            if match_percentage <= THEMATIC_MIN_MATCH_PERCENT:
                continue

            correlations.append(Correlation(
                type='thematic',
                theme=theme.name,
                column1=column,
                match_percentage=round(match_percentage, 1),
                strength=thematic_strength(match_percentage),
                description=f'Theme "{theme.name}" appears in {match_percentage:.1f}% of {column} entries'
            ))

    return correlations


def sentiment_columns(dataset: Dataset) -> List[str]:
    return [
        column for column in dataset.columns
        if any(keyword in column.lower() for keyword in SENTIMENT_COLUMN_KEYWORDS)
    ]


def classify_mean(mean: float) -> str:
    if mean > POSITIVE_MEAN_ABOVE:
        return 'positive'
    if mean < NEGATIVE_MEAN_BELOW:
        return 'negative'
    return 'neutral'


def analyze_sentiment_correlations(dataset: Dataset, document: Document) -> List[Correlation]:
    sentiment = document.sentiment
    if sentiment is None or not dataset.rows:
        return []

    correlations = []
    for column in sentiment_columns(dataset):
        numbers = [n for n in (to_number(row.get(column)) for row in dataset.rows) if n is not None]
        if not numbers:
            continue

        mean = sum(numbers) / len(numbers)
        if classify_mean(mean) != sentiment.overall:
            continue

        correlations.append(Correlation(
            type='sentiment',
            column1=column,
            strength='moderate',
            direction='positive',
            alignment='aligned',
            description=f"Document sentiment ({sentiment.overall}) aligns with {column} (avg: {mean:.1f})"
        ))

    return correlations


@track_performance("correlation_analysis")
def analyze(dataset: Dataset, document: Optional[Document] = None) -> CorrelationAnalysis:
    """
    Detect correlations in a dataset, optionally against a document.

    Without a document only numeric correlations are computed. Insights are
    derived from the combined correlation list.
    """
    correlations = analyze_numeric_correlations(dataset)

    if document is not None:
        correlations.extend(analyze_thematic_correlations(dataset, document))
        correlations.extend(analyze_sentiment_correlations(dataset, document))

    insights = generate_insights(correlations)
    logger.info(f"Correlation analysis found {len(correlations)} correlations and {len(insights)} insights")
    return CorrelationAnalysis(correlations=correlations, insights=insights)
