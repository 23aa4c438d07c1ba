"""
Theme, sentiment and keyword extraction for uploaded text documents.

Two interchangeable strategies implement DocumentAnalyzer: one asks the
AI provider chain, the other uses local word statistics. Callers go
through analyze_document(), which falls back to the local strategy so an
analysis result is always produced.
"""
import re
import logging
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Dict, List, Optional

from correlab.core.schemas import DocumentAnalysis, Sentiment, SentimentBreakdown, Theme
from correlab.core.performance import track_performance
from correlab.services import ai_client

logger = logging.getLogger(__name__)

MAX_DOCUMENT_TOKENS = 3000
MAX_SUMMARY_CHARS = 300
KEYWORD_LIMIT = 10
NO_SUMMARY = "No summary available"

_WORD_PATTERN = re.compile(r'\b[a-z]{4,}\b')
_SENTENCE_PATTERN = re.compile(r'[^.!?]+[.!?]+')

ANALYSIS_SYSTEM_PROMPT = """You are an expert qualitative data analyst. Analyze the provided text and extract:
1. Main themes (3-5 key themes with descriptions and relevance scores 0-1)
2. Sentiment analysis (overall sentiment and breakdown percentages that sum to 1.0)
3. Keywords (10-15 most important keywords or phrases)
4. A concise summary (2-3 sentences that capture the main points and key findings, not just the first lines)

Return ONLY valid JSON with NO markdown formatting. Use this exact structure:
{
  "themes": [{"name": "Theme Name", "description": "Brief description", "relevance": 0.95}],
  "sentiment": {
    "overall": "positive",
    "score": 0.7,
    "breakdown": {"positive": 0.7, "neutral": 0.2, "negative": 0.1}
  },
  "keywords": ["keyword1", "keyword2"],
  "summary": "2-3 sentence summary of main points"
}"""


class DocumentAnalysisError(RuntimeError):
    """An analyzer could not produce a result."""


class DocumentAnalyzer(ABC):
    """Strategy for turning document text into themes, sentiment and keywords."""

    name = "base"

    @abstractmethod
    def analyze(self, content: str) -> DocumentAnalysis:
        ...


class HeuristicDocumentAnalyzer(DocumentAnalyzer):
    """
    Local analysis from word frequencies.

    Keywords are the most frequent words of four or more letters; the
    summary joins the first sentence with the middle one. Sentiment is
    always neutral.
    """

    name = "heuristic"

    def analyze(self, content: str) -> DocumentAnalysis:
        return DocumentAnalysis(
            themes=[Theme(
                name="General Content",
                description="Document contains general text content",
                relevance=1.0
            )],
            sentiment=Sentiment(
                overall='neutral',
                score=0,
                breakdown=SentimentBreakdown(positive=0.33, neutral=0.34, negative=0.33)
            ),
            keywords=self.extract_keywords(content),
            summary=self.summarize(content)
        )

    @staticmethod
    def extract_keywords(content: str, limit: int = KEYWORD_LIMIT) -> List[str]:
        words = _WORD_PATTERN.findall((content or "").lower())
        return [word for word, _ in Counter(words).most_common(limit)]

    @staticmethod
    def summarize(content: str) -> str:
        sentences = [s.strip() for s in _SENTENCE_PATTERN.findall(content or "")]
        if not sentences:
            return NO_SUMMARY

        first = sentences[0]
        if len(sentences) > 2:
            return f"{first} {sentences[len(sentences) // 2]}"[:MAX_SUMMARY_CHARS]
        return first[:MAX_SUMMARY_CHARS]


def _clamp(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return min(max(number, 0.0), 1.0)


def normalize_analysis(parsed: Dict[str, Any]) -> DocumentAnalysis:
    """Coerce a provider's JSON reply into a DocumentAnalysis."""
    themes = []
    for item in parsed.get('themes') or []:
        if not isinstance(item, dict) or not str(item.get('name') or '').strip():
            continue
        themes.append(Theme(
            name=str(item['name']).strip(),
            description=str(item.get('description') or ''),
            relevance=_clamp(item.get('relevance'), 0.0)
        ))

    sentiment = parsed.get('sentiment') or {}
    if not isinstance(sentiment, dict):
        sentiment = {}
    overall = str(sentiment.get('overall') or 'neutral').lower()
    if overall not in ('positive', 'negative', 'neutral'):
        overall = 'neutral'
    breakdown = sentiment.get('breakdown') or {}
    if not isinstance(breakdown, dict):
        breakdown = {}

    try:
        score = float(sentiment.get('score') or 0)
    except (TypeError, ValueError):
        score = 0.0

    return DocumentAnalysis(
        themes=themes,
        sentiment=Sentiment(
            overall=overall,
            score=score,
            breakdown=SentimentBreakdown(
                positive=_clamp(breakdown.get('positive') or 0, 0.0),
                neutral=_clamp(breakdown.get('neutral') or 1, 1.0),
                negative=_clamp(breakdown.get('negative') or 0, 0.0)
            )
        ),
        keywords=[str(k) for k in parsed.get('keywords') or [] if str(k).strip()],
        summary=str(parsed.get('summary') or NO_SUMMARY)
    )


class AIDocumentAnalyzer(DocumentAnalyzer):
    """Analysis by the Groq / Gemini provider chain."""

    name = "ai"

    def analyze(self, content: str) -> DocumentAnalysis:
        if not ai_client.is_configured():
            raise DocumentAnalysisError("No AI provider configured (set GROQ_API_KEY or GEMINI_API_KEY)")

        if ai_client.estimate_tokens(content) > MAX_DOCUMENT_TOKENS:
            logger.info(f"Document of ~{ai_client.estimate_tokens(content)} tokens cut to {MAX_DOCUMENT_TOKENS} for analysis")
            content = content[:MAX_DOCUMENT_TOKENS * ai_client.CHARS_PER_TOKEN]

        prompt = f"Analyze this document:\n\n{content}"
        response = ai_client.call_ai_with_fallback(prompt, ANALYSIS_SYSTEM_PROMPT, max_tokens=1200)
        if not response:
            raise DocumentAnalysisError("AI providers returned no response")

        parsed = ai_client.parse_json_response(response)
        if not isinstance(parsed, dict):
            raise DocumentAnalysisError("AI response was not a JSON object")

        analysis = normalize_analysis(parsed)
        logger.info(f"AI document analysis found {len(analysis.themes)} themes")
        return analysis


@track_performance("analyze_document")
def analyze_document(content: str, analyzer: Optional[DocumentAnalyzer] = None) -> DocumentAnalysis:
    """
    Analyze a document, falling back to the heuristic analyzer on failure.

    Args:
        content: Document text
        analyzer: Strategy to try first (defaults to AIDocumentAnalyzer)

    Returns:
        DocumentAnalysis; never raises because of the chosen analyzer
    """
    analyzer = analyzer or AIDocumentAnalyzer()
    fallback = HeuristicDocumentAnalyzer()

    if isinstance(analyzer, HeuristicDocumentAnalyzer):
        return analyzer.analyze(content)

    try:
        return analyzer.analyze(content)
    except Exception as e:
        logger.warning(f"{analyzer.name} document analysis failed, using heuristic fallback: {e}")
        return fallback.analyze(content)
