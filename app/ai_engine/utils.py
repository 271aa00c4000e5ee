"""
app/ai_engine/utils.py — Model factory and helpers for reading model output.

  - llm_available()         : is an API key configured
  - build_llm()             : ChatOpenAI client for the configured endpoint
  - parse_json_safely()     : first JSON value found in free-form model text
  - truncate_for_context()  : cap prompt inputs at a character budget
  - response_text()         : text of a chat message or plain string
"""

import json
import logging
import re
from typing import Any

from langchain_openai import ChatOpenAI

from app.config import settings

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_DECODER = json.JSONDecoder()


def llm_available() -> bool:
    """True when an API key is configured; callers fall back to templates otherwise."""
    return bool(settings.openai_api_key)


def build_llm(temperature: float = 0.3) -> ChatOpenAI:
    """
    Chat model for the configured OpenAI-compatible endpoint.

    Keep temperature low (0.1–0.3) where JSON is expected and higher
    (0.6–0.8) for prose. Calls are single attempts.
    """
    return ChatOpenAI(
        model=settings.llm_model,
        api_key=settings.openai_api_key,
        base_url=settings.llm_base_url,
        temperature=temperature,
        max_tokens=1000,
        max_retries=0,
    )


def parse_json_safely(text: str) -> dict[str, Any] | list[Any] | None:
    """
    Return the first JSON object or array in `text`, or None.

    Code fences are unwrapped first; any prose before or after the value
    is ignored.
    """
    if not text:
        return None

    cleaned = _FENCE.sub(r"\1", text).strip()
    for start, char in enumerate(cleaned):
        if char not in "{[":
            continue
        try:
            value, _ = _DECODER.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            continue
        return value

    logger.warning("No JSON found in model output: %s", text[:200])
    return None


def truncate_for_context(text: str, max_chars: int = 2000) -> str:
    if not text:
        return ""
    return text if len(text) <= max_chars else f"{text[:max_chars]}..."


def response_text(response: Any) -> str:
    return response.content if hasattr(response, "content") else str(response)
