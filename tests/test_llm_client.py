"""Tests for the provider-agnostic LLM client."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest

from planchat.services import llm_client as llm_module
from planchat.services.llm_client import (
    AnthropicProvider,
    GeminiProvider,
    LLMClient,
    LLMProvider,
    LLMResponse,
    LLMUsageStats,
    OpenAIProvider,
    build_llm_client,
    get_llm_client,
)

# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeResponse:
    """Mock HTTP response."""

    def __init__(self, data: dict[str, Any], status_code: int = 200) -> None:
        self._data = data
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise Exception(f"HTTP {self.status_code}")

    def json(self) -> dict[str, Any]:
        return self._data


class FakeClient:
    """Mock HTTP client."""

    def __init__(self, response: dict[str, Any], status_code: int = 200) -> None:
        self.response = response
        self.status_code = status_code
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"url": url, **kwargs})
        return FakeResponse(self.response, self.status_code)

    def close(self) -> None:
        self.closed = True


def make_openai_response(text: str, input_tokens: int = 10, output_tokens: int = 20) -> dict:
    return {
        "choices": [{"message": {"content": text}}],
        "usage": {"prompt_tokens": input_tokens, "completion_tokens": output_tokens},
    }


def make_gemini_response(text: str, input_tokens: int = 10, output_tokens: int = 20) -> dict:
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}}],
        "usageMetadata": {
            "promptTokenCount": input_tokens,
            "candidatesTokenCount": output_tokens,
        },
    }


def make_anthropic_response(text: str, input_tokens: int = 10, output_tokens: int = 20) -> dict:
    return {
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


# ─────────────────────────────────────────────────────────────────────────────
# Test: Providers
# ─────────────────────────────────────────────────────────────────────────────


class TestOpenAIProvider:
    def test_complete(self) -> None:
        client = FakeClient(make_openai_response('  {"type": "task"}  ', 12, 7))
        provider = OpenAIProvider("sk-test", client=client)

        response = provider.complete("hi", system_prompt="sys", json_mode=True)

        assert response.text == '{"type": "task"}'
        assert response.provider == LLMProvider.OPENAI
        assert (response.tokens_input, response.tokens_output) == (12, 7)
        request = client.requests[0]
        assert request["url"] == OpenAIProvider.endpoint
        assert request["headers"]["Authorization"] == "Bearer sk-test"
        assert request["json"]["response_format"] == {"type": "json_object"}
        assert request["json"]["messages"][0] == {"role": "system", "content": "sys"}

    def test_plain_mode_has_no_response_format(self) -> None:
        client = FakeClient(make_openai_response("ok"))
        OpenAIProvider("sk-test", client=client).complete("hi")
        assert "response_format" not in client.requests[0]["json"]

    def test_http_error_raises(self) -> None:
        provider = OpenAIProvider("sk-test", client=FakeClient({}, status_code=500))
        with pytest.raises(Exception, match="HTTP 500"):
            provider.complete("hi")

    def test_injected_client_not_closed(self) -> None:
        client = FakeClient({})
        OpenAIProvider("sk-test", client=client).close()
        assert client.closed is False


class TestGeminiProvider:
    def test_complete(self) -> None:
        client = FakeClient(make_gemini_response("안녕"))
        provider = GeminiProvider("g-key", model="gemini-test", client=client)

        response = provider.complete("hi", system_prompt="sys", json_mode=True)

        assert response.text == "안녕"
        request = client.requests[0]
        assert "gemini-test:generateContent" in request["url"]
        assert request["params"] == {"key": "g-key"}
        assert request["json"]["systemInstruction"] == {"parts": [{"text": "sys"}]}
        assert request["json"]["generationConfig"]["response_mime_type"] == "application/json"

    def test_empty_candidates(self) -> None:
        provider = GeminiProvider("g-key", client=FakeClient({"candidates": []}))
        assert provider.complete("hi").text == ""


class TestAnthropicProvider:
    def test_complete(self) -> None:
        client = FakeClient(make_anthropic_response("{}"))
        provider = AnthropicProvider("a-key", client=client)

        response = provider.complete("hi", system_prompt="sys", json_mode=True)

        assert response.text == "{}"
        request = client.requests[0]
        assert request["headers"]["x-api-key"] == "a-key"
        assert request["json"]["system"] == "sys"
        assert request["json"]["messages"][0]["content"].endswith("JSON object only.")


# ─────────────────────────────────────────────────────────────────────────────
# Test: LLMClient
# ─────────────────────────────────────────────────────────────────────────────


class TestLLMClient:
    def test_no_providers(self) -> None:
        client = LLMClient()
        assert client.is_available is False
        with pytest.raises(RuntimeError, match="No LLM providers"):
            client.complete("hi")

    def test_default_order(self) -> None:
        client = LLMClient(
            providers=[
                AnthropicProvider("a", client=FakeClient({})),
                OpenAIProvider("o", client=FakeClient({})),
            ]
        )
        assert client.available_providers == [LLMProvider.OPENAI, LLMProvider.ANTHROPIC]

    def test_primary_provider_first(self) -> None:
        client = LLMClient(
            providers=[
                OpenAIProvider("o", client=FakeClient({})),
                GeminiProvider("g", client=FakeClient({})),
            ],
            primary_provider=LLMProvider.GEMINI,
        )
        assert client.available_providers[0] == LLMProvider.GEMINI

    def test_falls_back_on_failure(self) -> None:
        failing = FakeClient({}, status_code=503)
        working = FakeClient(make_gemini_response('{"type": "other"}'))
        client = LLMClient(
            providers=[
                OpenAIProvider("o", client=failing),
                GeminiProvider("g", client=working),
            ]
        )

        response = client.complete("hi")

        assert response.provider == LLMProvider.GEMINI
        stats = client.get_stats()
        assert stats["openai"]["errors"] == 1
        assert stats["gemini"]["requests"] == 1

    def test_all_fail(self) -> None:
        client = LLMClient(providers=[OpenAIProvider("o", client=FakeClient({}, 500))])
        with pytest.raises(RuntimeError, match="All LLM providers failed"):
            client.complete("hi")

    def test_temperature_forwarded(self) -> None:
        http = FakeClient(make_openai_response("ok"))
        LLMClient(providers=[OpenAIProvider("o", client=http)], temperature=0.7).complete("hi")
        assert http.requests[0]["json"]["temperature"] == 0.7


class TestDataclasses:
    def test_response_defaults(self) -> None:
        response = LLMResponse(text="x", provider=LLMProvider.OPENAI, model="m")
        assert response.tokens_input == 0
        assert response.raw_response == {}

    def test_avg_latency(self) -> None:
        assert LLMUsageStats().avg_latency_ms == 0.0
        assert LLMUsageStats(total_requests=2, total_latency_ms=300).avg_latency_ms == 150.0


class TestFactory:
    def test_build_from_settings(self) -> None:
        with patch("planchat.config.settings") as mock_settings:
            mock_settings.has_openai = False
            mock_settings.has_gemini = True
            mock_settings.has_anthropic = False
            mock_settings.gemini_api_key = "g-key"
            mock_settings.gemini_model = "gemini-test"
            mock_settings.llm_timeout_seconds = 5.0
            mock_settings.llm_temperature = 0.1

            client = build_llm_client()

        assert client.available_providers == [LLMProvider.GEMINI]
        assert client.temperature == 0.1
        client.close()

    def test_singleton(self) -> None:
        with patch.object(llm_module, "build_llm_client", return_value=LLMClient()) as build:
            assert get_llm_client() is get_llm_client()
        build.assert_called_once()
