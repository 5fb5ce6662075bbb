"""Sentiment and priority analysis of a conversation batch.

The adapter never raises: a slow, failing or unparseable model reply yields
``AnalysisResult.fallback()`` so the flush pipeline can always persist and deliver.
"""

import asyncio
import re
from typing import Optional

from agent_relay.logging_config import get_logger
from agent_relay.schemas.events import (
    DEFAULT_EMOJI,
    DEFAULT_EMOTION,
    DEFAULT_PRIORITY,
    DEFAULT_TONE,
    AnalysisResult,
)
from agent_relay.services.llm import LLMProvider

logger = get_logger("analysis_service")

SYSTEM_PROMPT = """
You are a professional and helpful assistant who can analyze the user's message and determine the following information:
1. The emotional state the message contains or represents (e.g. angry, sad, happy, etc.).
2. Understanding the tone of the user (e.g. positive, negative, neutral).
3. Determine the urgency and priority level of the message (e.g. urgent, less urgent, no priority).

Provide the results in the following format so that I can easily process them:
*State of Emotion:* [State of Emotion]
*User Tone:* [Tone]
*Priority Level:* [Priority Level]
*Emoji Suggestion:* [Emoji]

Please return the answer in a clear, concise and structured way.
""".strip()

_FIELD_PATTERNS = {
    "state_of_emotion": re.compile(r"\*State of Emotion:\*\s*(.+)"),
    "user_tone": re.compile(r"\*User Tone:\*\s*(.+)"),
    "priority_level": re.compile(r"\*Priority Level:\*\s*(.+)"),
    "emoji_suggestion": re.compile(r"\*Emoji Suggestion:\*\s*(.+)"),
}

_DEFAULTS = {
    "state_of_emotion": DEFAULT_EMOTION,
    "user_tone": DEFAULT_TONE,
    "priority_level": DEFAULT_PRIORITY,
    "emoji_suggestion": DEFAULT_EMOJI,
}


def parse_analysis(content: Optional[str]) -> AnalysisResult:
    """Parse the starred-label reply format; missing labels keep their default."""
    values = dict(_DEFAULTS)
    for field, pattern in _FIELD_PATTERNS.items():
        match = pattern.search(content or "")
        if match and match.group(1).strip():
            values[field] = match.group(1).strip()
    return AnalysisResult(**values)


class AnalysisAdapter:
    def __init__(self, provider: LLMProvider, timeout_seconds: float = 20.0, model: Optional[str] = None):
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.model = model

    def _generate(self, text: str) -> str:
        response = self.provider.generate(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            model=self.model,
            timeout_seconds=self.timeout_seconds,
        )
        return response.content

    async def analyze(self, text: str) -> AnalysisResult:
        if not text or not text.strip():
            return AnalysisResult.fallback()

        try:
            content = await asyncio.wait_for(
                asyncio.to_thread(self._generate, text),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Analysis timed out, using fallback",
                extra={"context": {"timeout_seconds": self.timeout_seconds, "chars": len(text)}},
            )
            return AnalysisResult.fallback()
        except Exception as e:
            logger.warning(f"Analysis failed, using fallback: {e}")
            return AnalysisResult.fallback()

        return parse_analysis(content)
