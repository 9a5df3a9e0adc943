import asyncio
from unittest.mock import AsyncMock, Mock, patch

from relay_api.services.completion_service import (
    MSG_AI_ERROR,
    MSG_AI_UNAVAILABLE,
    CompletionService,
    build_messages,
)
from relay_api.services.llm import LLMProvider, LLMProviderError, LLMResponse
from relay_api.services.result import AI_ERROR

HISTORY = [{"role": "user", "content": "Hi"}]


def _provider(**kwargs):
    provider = Mock(spec=LLMProvider)
    provider.generate = AsyncMock(**kwargs)
    return provider


def _collect(service):
    async def run():
        return [fragment async for fragment in service.stream("system", HISTORY)]

    return asyncio.run(run())


class TestBuildMessages:
    def test_system_prompt_first(self):
        assert build_messages("sys", HISTORY) == [{"role": "system", "content": "sys"}, *HISTORY]


class TestComplete:
    def test_success(self):
        provider = _provider(return_value=LLMResponse(content="Hello!", model="gpt-4o-mini"))
        service = CompletionService(provider, model="gpt-4o-mini", max_tokens=100)

        result = asyncio.run(service.complete("system", HISTORY))

        assert result.ok is True
        assert result.value == "Hello!"
        provider.generate.assert_awaited_once_with(
            [{"role": "system", "content": "system"}, *HISTORY],
            model="gpt-4o-mini",
            temperature=0.7,
            max_tokens=100,
        )

    @patch("relay_api.services.completion_service.alert_error", new_callable=AsyncMock)
    def test_provider_error_becomes_apology(self, mock_alert):
        service = CompletionService(_provider(side_effect=LLMProviderError("503")))

        result = asyncio.run(service.complete("system", HISTORY))

        assert result.ok is False
        assert result.error == MSG_AI_UNAVAILABLE
        assert result.error_code == AI_ERROR
        mock_alert.assert_awaited_once()

    @patch("relay_api.services.completion_service.alert_error", new_callable=AsyncMock)
    def test_unexpected_error_becomes_apology(self, mock_alert):
        service = CompletionService(_provider(side_effect=KeyError("choices")))
        assert asyncio.run(service.reply("system", HISTORY)) == MSG_AI_ERROR


class TestReply:
    def test_returns_text(self):
        service = CompletionService(_provider(return_value=LLMResponse(content="Hello!", model="m")))
        assert asyncio.run(service.reply("system", HISTORY)) == "Hello!"

    @patch("relay_api.services.completion_service.alert_error", new_callable=AsyncMock)
    def test_failure_returns_apology(self, mock_alert):
        service = CompletionService(_provider(side_effect=LLMProviderError("timeout")))
        assert asyncio.run(service.reply("system", HISTORY)) == MSG_AI_UNAVAILABLE


class TestStream:
    def test_passes_fragments_through(self):
        async def fragments(*args, **kwargs):
            for text in ("Hel", "lo"):
                yield text

        provider = Mock(spec=LLMProvider)
        provider.stream = Mock(side_effect=fragments)

        assert _collect(CompletionService(provider)) == ["Hel", "lo"]

    @patch("relay_api.services.completion_service.alert_error", new_callable=AsyncMock)
    def test_failure_mid_stream_appends_apology(self, mock_alert):
        async def fragments(*args, **kwargs):
            yield "Hel"
            raise LLMProviderError("connection reset")

        provider = Mock(spec=LLMProvider)
        provider.stream = Mock(side_effect=fragments)

        assert _collect(CompletionService(provider)) == ["Hel", MSG_AI_ERROR]
        mock_alert.assert_awaited_once()

    def test_empty_stream_yields_apology(self):
        async def fragments(*args, **kwargs):
            return
            yield

        provider = Mock(spec=LLMProvider)
        provider.stream = Mock(side_effect=fragments)

        assert _collect(CompletionService(provider)) == [MSG_AI_UNAVAILABLE]
