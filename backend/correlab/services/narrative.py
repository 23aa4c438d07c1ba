import logging
from typing import List

from correlab.core.schemas import Correlation, Insight
from correlab.services import ai_client

logger = logging.getLogger(__name__)

FALLBACK_NARRATIVE = "Analysis completed. Review the correlations and insights above for detailed findings."
KEY_CORRELATION_LIMIT = 5
DESCRIPTION_MAX_LENGTH = 200

NARRATIVE_SYSTEM_PROMPT = "You are a data analyst. Write in clear, business-friendly language."


def render_summary(correlations: List[Correlation], insights: List[Insight], has_document: bool) -> str:
    """Plain-text digest of an analysis, used as the narrative prompt."""
    strong = sum(1 for c in correlations if c.strength == 'strong')
    moderate = sum(1 for c in correlations if c.strength == 'moderate')
    # Descriptions embed user column and theme names
    key_correlations = '\n'.join(
        f"- {ai_client.sanitize_for_prompt(c.description, max_length=DESCRIPTION_MAX_LENGTH)}"
        for c in correlations[:KEY_CORRELATION_LIMIT]
    )
    key_insights = '\n'.join(f"- {i.title}: {i.description}" for i in insights)

    if has_document:
        scope = "This analysis combines quantitative dataset with qualitative document insights."
    else:
        scope = "This analysis focuses on quantitative correlations within the dataset."

    return f"""Generate a concise 2-3 paragraph narrative explaining the following correlation analysis results:

Correlations found: {len(correlations)}
- Strong correlations: {strong}
- Moderate correlations: {moderate}

Key correlations:
{key_correlations}

Key insights:
{key_insights}

{scope}

Provide:
1. Summary of what was analyzed
2. Key findings and their implications
3. Actionable recommendations

Be specific and actionable."""


def generate_narrative(correlations: List[Correlation], insights: List[Insight], has_document: bool = False) -> str:
    """Narrative prose from the AI chain, or a fixed sentence when it is unavailable."""
    if not ai_client.is_configured():
        logger.debug("No AI providers configured, using fallback narrative")
        return FALLBACK_NARRATIVE

    prompt = render_summary(correlations, insights, has_document)
    response = ai_client.call_ai_with_fallback(prompt, NARRATIVE_SYSTEM_PROMPT, max_tokens=500)
    if not response:
        logger.warning("Narrative generation failed, using fallback narrative")
        return FALLBACK_NARRATIVE

    return ai_client.format_ai_response(response)
