"""
AI provider chain using Groq (primary) and Gemini (fallback).

Used by document analysis and narrative generation. Callers always get
either text or None; provider errors never propagate.
"""
import os
import json
import logging
from typing import Any, Optional
from groq import Groq
from correlab.core.config import get_settings

logger = logging.getLogger(__name__)

# Provider clients (singletons)
_groq_client: Optional[Groq] = None
_gemini_model = None  # Lazy loaded to avoid import if not needed

CHARS_PER_TOKEN = 4


def sanitize_for_prompt(text: str, max_length: int = 100) -> str:
    """
    Sanitize user-provided text before including it in a prompt.

    Removes control characters and newlines, limits length and
    neutralizes instruction-like markers.
    """
    if not text:
        return ""

    sanitized = ''.join(char for char in text if char.isprintable() and char not in '\n\r\t')

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    dangerous_patterns = ['SYSTEM:', 'USER:', 'ASSISTANT:', 'IGNORE', 'FORGET', 'NEW INSTRUCTION']
    for pattern in dangerous_patterns:
        sanitized = sanitized.replace(pattern, f'[{pattern}]')

    return sanitized


def estimate_tokens(text: str) -> int:
    """Rough token count (about 4 characters per token)."""
    if not text:
        return 0
    return -(-len(text) // CHARS_PER_TOKEN)


def get_groq_client() -> Optional[Groq]:
    """Get or create Groq client singleton."""
    global _groq_client
    if _groq_client is None:
        api_key = os.getenv("GROQ_API_KEY")
        if api_key:
            _groq_client = Groq(api_key=api_key)
            logger.info("Groq AI client initialized")
    return _groq_client


def get_gemini_model():
    """Get or create Gemini model singleton."""
    global _gemini_model
    if _gemini_model is None:
        api_key = os.getenv("GEMINI_API_KEY")
        if api_key:
            try:
                import google.generativeai as genai
                genai.configure(api_key=api_key)
                settings = get_settings()
                _gemini_model = genai.GenerativeModel(settings.gemini_model)
                logger.info(f"Gemini AI fallback initialized with model: {settings.gemini_model}")
            except Exception as e:
                logger.warning(f"Gemini initialization failed: {e}")
    return _gemini_model


def reset_clients() -> None:
    """Forget cached provider clients (API keys changed, or tests)."""
    global _groq_client, _gemini_model
    _groq_client = None
    _gemini_model = None


def is_configured() -> bool:
    """True when at least one provider has an API key."""
    return get_groq_client() is not None or get_gemini_model() is not None


def _call_groq(prompt: str, system_prompt: str, max_tokens: int = 300) -> Optional[str]:
    client = get_groq_client()
    if not client:
        return None

    settings = get_settings()
    response = client.chat.completions.create(
        model=settings.groq_model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt}
        ],
        max_tokens=max_tokens,
        temperature=0.3,
        timeout=settings.ai_timeout_seconds
    )
    return response.choices[0].message.content


def _call_gemini(prompt: str, system_prompt: str) -> Optional[str]:
    model = get_gemini_model()
    if not model:
        return None

    full_prompt = f"{system_prompt}\n\n{prompt}"
    response = model.generate_content(
        full_prompt,
        request_options={"timeout": get_settings().ai_timeout_seconds}
    )
    return response.text


def call_ai_with_fallback(prompt: str, system_prompt: str, max_tokens: int = 300) -> Optional[str]:
    """
    Call AI with automatic fallback.

    Order: Groq -> Gemini -> None
    """
    try:
        result = _call_groq(prompt, system_prompt, max_tokens)
        if result:
            logger.debug("AI response from Groq")
            return result
    except Exception as e:
        error_str = str(e).lower()
        if "rate" in error_str or "limit" in error_str or "429" in error_str:
            logger.warning(f"Groq rate limited, trying Gemini fallback: {e}")
        else:
            logger.warning(f"Groq error, trying fallback: {e}")

    try:
        result = _call_gemini(prompt, system_prompt)
        if result:
            logger.info("AI response from Gemini (fallback)")
            return result
    except Exception as e:
        logger.error(f"Gemini fallback also failed: {e}")

    return None


def format_ai_response(text: Optional[str]) -> Optional[str]:
    """Strip markdown emphasis and blank-line runs from prose."""
    if not text:
        return text

    clean_text = text.replace('**', '').replace('__', '')

    paragraphs = []
    current = []
    for line in clean_text.split('\n'):
        if line.strip():
            current.append(line.strip())
        elif current:
            paragraphs.append(' '.join(current))
            current = []
    if current:
        paragraphs.append(' '.join(current))

    return '\n\n'.join(paragraphs)


def parse_json_response(text: Optional[str]) -> Optional[Any]:
    """Decode a JSON reply, tolerating markdown code fences. None if it isn't JSON."""
    if not text:
        return None

    json_str = text.replace('```json', '').replace('```', '').strip()
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse AI JSON response: {e}")
        return None
