from typing import AsyncIterator, List, Optional

from relay_api.logging_config import get_logger
from relay_api.services.alert_service import alert_error
from relay_api.services.llm import LLMProvider, LLMProviderError
from relay_api.services.result import AI_ERROR, Result

logger = get_logger("completion_service")

MSG_AI_UNAVAILABLE = "Sorry, I could not process your message."
MSG_AI_ERROR = "Sorry, something went wrong."


def build_messages(system_prompt: str, history: List[dict]) -> List[dict]:
    return [{"role": "system", "content": system_prompt}, *history]


class CompletionService:
    """Wraps the completion provider; failures become apology text, never exceptions."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ):
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(self, system_prompt: str, history: List[dict]) -> Result[str]:
        messages = build_messages(system_prompt, history)
        try:
            response = await self.provider.generate(
                messages,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except LLMProviderError as e:
            logger.error(f"Completion failed: {e}")
            await alert_error("Completion failed", {"error": str(e)[:200]})
            return Result.failure(MSG_AI_UNAVAILABLE, AI_ERROR)
        except Exception as e:
            logger.error(f"Completion error: {e}", exc_info=True)
            await alert_error("Completion error", {"error": str(e)[:200]})
            return Result.failure(MSG_AI_ERROR, AI_ERROR)
        return Result.success(response.content)

    async def reply(self, system_prompt: str, history: List[dict]) -> str:
        result = await self.complete(system_prompt, history)
        return result.unwrap_or(result.error or MSG_AI_ERROR)

    async def stream(self, system_prompt: str, history: List[dict]) -> AsyncIterator[str]:
        """Yield reply fragments. A failure ends the stream with the apology text."""
        messages = build_messages(system_prompt, history)
        produced = False
        try:
            async for fragment in self.provider.stream(
                messages,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            ):
                produced = True
                yield fragment
        except Exception as e:
            logger.error(f"Completion stream failed: {e}", exc_info=True)
            await alert_error("Completion stream failed", {"error": str(e)[:200]})
            yield MSG_AI_ERROR
            return
        if not produced:
            yield MSG_AI_UNAVAILABLE
