from relay_api.services.llm.base import LLMProvider, LLMProviderError, LLMResponse
from relay_api.services.llm.openai_provider import OpenAIProvider

__all__ = ["LLMProvider", "LLMProviderError", "LLMResponse", "OpenAIProvider"]
