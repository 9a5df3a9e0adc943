import json
from typing import AsyncIterator, List, Optional

import httpx

from relay_api.logging_config import get_logger
from relay_api.services.llm.base import LLMProvider, LLMProviderError, LLMResponse

logger = get_logger("llm.openai")

STREAM_DONE = "[DONE]"


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions API provider."""

    def __init__(
        self,
        api_key: Optional[str],
        default_model: str = "gpt-4o-mini",
        timeout_seconds: float = 60.0,
        base_url: str = "https://api.openai.com/v1/chat/completions",
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url

    def _headers(self) -> dict:
        if not self.api_key:
            raise LLMProviderError("OPENAI_API_KEY is not configured")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: List[dict], model: Optional[str], temperature: float, max_tokens: int) -> dict:
        return {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> LLMResponse:
        headers = self._headers()
        payload = self._payload(messages, model, temperature, max_tokens)
        logger.debug(f"OpenAI request: model={payload['model']}, messages_count={len(messages)}")

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self.base_url, headers=headers, json=payload)

        logger.debug(f"OpenAI response status: {response.status_code}")
        if response.status_code != 200:
            logger.error(f"OpenAI error: {response.text}")
            raise LLMProviderError(f"OpenAI API error: {response.status_code} - {response.text[:200]}")

        data = response.json()
        choices = data.get("choices") or []
        content = ((choices[0].get("message") or {}).get("content") or "") if choices else ""
        if not content:
            logger.error("Unexpected OpenAI response", extra={"context": {"response": data}})
            raise LLMProviderError("OpenAI response has no content")

        return LLMResponse(
            content=content,
            model=data.get("model", payload["model"]),
            usage=data.get("usage"),
        )

    async def stream(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> AsyncIterator[str]:
        headers = self._headers()
        payload = self._payload(messages, model, temperature, max_tokens)
        payload["stream"] = True

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            async with client.stream("POST", self.base_url, headers=headers, json=payload) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise LLMProviderError(f"OpenAI API error: {response.status_code} - {body[:200]!r}")

                async for line in response.aiter_lines():
                    fragment = parse_stream_line(line)
                    if fragment is None:
                        continue
                    if fragment == STREAM_DONE:
                        break
                    yield fragment


def parse_stream_line(line: str) -> Optional[str]:
    """Extract the delta text from one SSE line of a completions stream.

    Returns ``STREAM_DONE`` for the terminator and None for keepalives,
    role-only deltas and anything unparseable.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None
    data = line[len("data:") :].strip()
    if data == STREAM_DONE:
        return STREAM_DONE
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        logger.warning("Skipping malformed stream chunk", extra={"context": {"line": line[:200]}})
        return None
    choices = chunk.get("choices") or []
    if not choices:
        return None
    content = (choices[0].get("delta") or {}).get("content")
    return content or None
