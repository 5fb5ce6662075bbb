from typing import List, Optional

import httpx

from agent_relay.logging_config import get_logger
from agent_relay.services.llm.base import LLMProvider, LLMResponse

logger = get_logger("llm.openai")

DEFAULT_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class LLMProviderError(Exception):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"LLM API error: {status_code} - {body[:200]}")


class OpenAIProvider(LLMProvider):
    """OpenAI-compatible chat-completions provider (OpenAI, Gemini and DeepSeek gateways)."""

    def __init__(self, api_key: str, default_model: str = "gpt-4o-mini", base_url: str = DEFAULT_CHAT_URL):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = base_url

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 300,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        timeout = timeout_seconds if timeout_seconds is not None else 60.0

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(f"LLM request: model={model}, messages_count={len(messages)}")

        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )

        if response.status_code != 200:
            logger.error(f"LLM error: {response.status_code}")
            raise LLMProviderError(response.status_code, response.text)

        data = response.json()
        content = ""
        choices = data.get("choices") or []
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""
        logger.debug(f"LLM content: {content[:100] if content else 'EMPTY'}")

        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
        )
