"""Provider-agnostic chat-completion client with provider fallback."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


# Tried in this order when no primary provider is given
DEFAULT_PROVIDER_ORDER: tuple[LLMProvider, ...] = (
    LLMProvider.OPENAI,
    LLMProvider.GEMINI,
    LLMProvider.ANTHROPIC,
)


@dataclass
class LLMResponse:
    """Completion text plus the metadata every provider reports."""

    text: str
    provider: LLMProvider
    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    latency_ms: int = 0
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMUsageStats:
    total_requests: int = 0
    total_latency_ms: int = 0
    errors: int = 0
    last_request_at: datetime | None = None

    @property
    def avg_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_latency_ms / self.total_requests


class BaseLLMProvider(ABC):
    """One vendor endpoint; subclasses build the request and read the reply."""

    provider: LLMProvider
    default_model: str

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.model = model or self.default_model
        if client is None:
            import httpx

            self._client = httpx.Client(timeout=timeout)
            self._owns_client = True
        else:
            self._client = client
            self._owns_client = False

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def complete(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.2,
        json_mode: bool = False,
    ) -> LLMResponse:
        started = time.time()
        data = self._post(prompt, system_prompt, temperature, json_mode)
        text, tokens_input, tokens_output = self._read(data)
        return LLMResponse(
            text=text,
            provider=self.provider,
            model=self.model,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=int((time.time() - started) * 1000),
            raw_response=data,
        )

    @abstractmethod
    def _post(
        self, prompt: str, system_prompt: str | None, temperature: float, json_mode: bool
    ) -> dict[str, Any]:
        """Send the request and return the decoded JSON body."""
        ...

    @abstractmethod
    def _read(self, data: dict[str, Any]) -> tuple[str, int, int]:
        """Return (text, input tokens, output tokens) from a response body."""
        ...


class OpenAIProvider(BaseLLMProvider):
    provider = LLMProvider.OPENAI
    default_model = "gpt-4o-mini"
    endpoint = "https://api.openai.com/v1/chat/completions"

    def _post(
        self, prompt: str, system_prompt: str | None, temperature: float, json_mode: bool
    ) -> dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        response = self._client.post(
            self.endpoint,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json=body,
        )
        response.raise_for_status()
        return response.json()

    def _read(self, data: dict[str, Any]) -> tuple[str, int, int]:
        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""
        usage = data.get("usage", {})
        return text.strip(), usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0)


class GeminiProvider(BaseLLMProvider):
    provider = LLMProvider.GEMINI
    default_model = "gemini-2.0-flash"

    def _post(
        self, prompt: str, system_prompt: str | None, temperature: float, json_mode: bool
    ) -> dict[str, Any]:
        endpoint = (
            f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
        )
        generation_config: dict[str, Any] = {"temperature": temperature}
        if json_mode:
            generation_config["response_mime_type"] = "application/json"

        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        response = self._client.post(endpoint, params={"key": self.api_key}, json=body)
        response.raise_for_status()
        return response.json()

    def _read(self, data: dict[str, Any]) -> tuple[str, int, int]:
        text = ""
        candidates = data.get("candidates", [])
        if candidates:
            for part in candidates[0].get("content", {}).get("parts", []):
                if "text" in part:
                    text = part["text"]
                    break
        usage = data.get("usageMetadata", {})
        return (
            text.strip(),
            usage.get("promptTokenCount", 0),
            usage.get("candidatesTokenCount", 0),
        )


class AnthropicProvider(BaseLLMProvider):
    provider = LLMProvider.ANTHROPIC
    default_model = "claude-3-5-haiku-20241022"
    endpoint = "https://api.anthropic.com/v1/messages"

    def _post(
        self, prompt: str, system_prompt: str | None, temperature: float, json_mode: bool
    ) -> dict[str, Any]:
        content = prompt
        if json_mode:
            content = f"{prompt}\n\nRespond with a single JSON object only."

        body: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": 1024,
            "temperature": temperature,
        }
        if system_prompt:
            body["system"] = system_prompt

        response = self._client.post(
            self.endpoint,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
            },
            json=body,
        )
        response.raise_for_status()
        return response.json()

    def _read(self, data: dict[str, Any]) -> tuple[str, int, int]:
        text = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                text = block.get("text", "")
                break
        usage = data.get("usage", {})
        return text.strip(), usage.get("input_tokens", 0), usage.get("output_tokens", 0)


class LLMClient:
    """Send completions to the primary provider, falling back in order."""

    def __init__(
        self,
        *,
        providers: list[BaseLLMProvider] | None = None,
        primary_provider: LLMProvider | None = None,
        temperature: float = 0.2,
    ) -> None:
        self._providers: dict[LLMProvider, BaseLLMProvider] = {
            p.provider: p for p in (providers or [])
        }
        self._stats: dict[LLMProvider, LLMUsageStats] = defaultdict(LLMUsageStats)
        self.temperature = temperature

        order = [p for p in DEFAULT_PROVIDER_ORDER if p in self._providers]
        if primary_provider in self._providers:
            order.remove(primary_provider)
            order.insert(0, primary_provider)
        self._order = order

    @property
    def available_providers(self) -> list[LLMProvider]:
        return list(self._order)

    @property
    def is_available(self) -> bool:
        return bool(self._providers)

    def complete(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Complete with the first provider that answers.

        Raises:
            RuntimeError: If no provider is configured or all of them fail.
        """
        if not self.is_available:
            raise RuntimeError("No LLM providers configured")

        errors: list[tuple[LLMProvider, Exception]] = []
        for p in self._order:
            stats = self._stats[p]
            try:
                response = self._providers[p].complete(
                    prompt,
                    system_prompt=system_prompt,
                    temperature=self.temperature,
                    json_mode=json_mode,
                )
            except Exception as e:
                logger.warning("Provider %s failed: %s", p.value, e)
                stats.errors += 1
                errors.append((p, e))
                continue

            stats.total_requests += 1
            stats.total_latency_ms += response.latency_ms
            stats.last_request_at = datetime.now()
            logger.debug(
                "[LLM] %s/%s answered in %dms", p.value, response.model, response.latency_ms
            )
            return response

        error_summary = "; ".join(f"{p.value}: {e}" for p, e in errors)
        raise RuntimeError(f"All LLM providers failed: {error_summary}")

    def get_stats(self) -> dict[str, Any]:
        return {
            p.value: {
                "requests": s.total_requests,
                "errors": s.errors,
                "avg_latency_ms": round(s.avg_latency_ms, 1),
            }
            for p, s in self._stats.items()
        }

    def close(self) -> None:
        for provider in self._providers.values():
            provider.close()


_client: LLMClient | None = None


def build_llm_client() -> LLMClient:
    """Create a client with every provider that has an API key in settings."""
    from planchat.config import settings

    timeout = settings.llm_timeout_seconds
    providers: list[BaseLLMProvider] = []
    if settings.has_openai:
        providers.append(
            OpenAIProvider(settings.openai_api_key, model=settings.openai_model, timeout=timeout)
        )
    if settings.has_gemini:
        providers.append(
            GeminiProvider(settings.gemini_api_key, model=settings.gemini_model, timeout=timeout)
        )
    if settings.has_anthropic:
        providers.append(AnthropicProvider(settings.anthropic_api_key, timeout=timeout))
    return LLMClient(providers=providers, temperature=settings.llm_temperature)


def get_llm_client() -> LLMClient:
    """Get or create the singleton LLM client."""
    global _client
    if _client is None:
        _client = build_llm_client()
    return _client


def reset_llm_client() -> None:
    global _client
    if _client is not None:
        _client.close()
    _client = None
