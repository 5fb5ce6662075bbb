from agent_relay.services.llm.base import LLMProvider, LLMResponse
from agent_relay.services.llm.openai_provider import LLMProviderError, OpenAIProvider

__all__ = ["LLMProvider", "LLMProviderError", "LLMResponse", "OpenAIProvider"]
