"""
Rule-based insights derived from a list of correlations.

Each rule looks at the whole correlation list and fires independently;
output order is always pattern, opportunity, risk.
"""
import logging
from typing import List

from correlab.core.schemas import Correlation, Insight

logger = logging.getLogger(__name__)


def _indices(correlations: List[Correlation], predicate) -> List[int]:
    return [i for i, c in enumerate(correlations) if predicate(c)]


def generate_insights(correlations: List[Correlation]) -> List[Insight]:
    """
    Summarize correlations into insights.

    Returns:
        List of Insight, each listing the indices of the correlations behind it
    """
    insights: List[Insight] = []

    strong = _indices(correlations, lambda c: c.strength == 'strong')
    if strong:
        insights.append(Insight(
            type='pattern',
            title='Strong Relationships Identified',
            description=f"Found {len(strong)} strong correlation(s) in your data that warrant attention.",
            confidence=0.8,
            related_correlations=strong
        ))

    thematic = _indices(correlations, lambda c: c.type == 'thematic')
    if thematic:
        insights.append(Insight(
            type='opportunity',
            title='Qualitative Themes Match Data Patterns',
            description=(
                f"Discovered {len(thematic)} theme(s) from your text data that correlate "
                f"with quantitative metrics."
            ),
            confidence=0.7,
            related_correlations=thematic
        ))

    negative = _indices(correlations, lambda c: c.direction == 'negative')
    if negative:
        insights.append(Insight(
            type='risk',
            title='Inverse Relationships Detected',
            description=f"Found {len(negative)} negative correlation(s) indicating opposing trends.",
            confidence=0.75,
            related_correlations=negative
        ))

    logger.debug(f"Generated {len(insights)} insights from {len(correlations)} correlations")
    return insights
