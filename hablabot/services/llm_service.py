"""Chat completion client with retry and provider fallback."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from loguru import logger
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hablabot.config import settings


@dataclass
class LLMResult:
    """Structured response returned by the :class:`LLMService`."""

    provider: str
    model: str
    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    raw_response: Dict[str, Any]


class LLMProviderError(RuntimeError):
    """Raised when a provider returns an error response."""


class BaseLLMProvider(Protocol):
    """Protocol shared by provider implementations."""

    name: str

    def generate(self, messages: Sequence[Dict[str, str]], **kwargs: Any) -> LLMResult:  # pragma: no cover - interface definition
        """Generate a chat completion."""


def _retrying(max_attempts: int) -> Retrying:
    return Retrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((httpx.HTTPError, LLMProviderError)),
        before_sleep=before_sleep_log(logger, "WARNING"),
        reraise=True,
    )


@dataclass
class OpenAIProvider:
    """Generate chat completions using the OpenAI API."""

    api_key: str
    model: str
    base_url: str = "https://api.openai.com/v1"
    request_timeout: float = 10.0
    max_retries: int = 3

    name: str = "openai"

    def generate(self, messages: Sequence[Dict[str, str]], **kwargs: Any) -> LLMResult:
        return _retrying(self.max_retries)(self._request, messages, **kwargs)

    def _request(self, messages: Sequence[Dict[str, str]], **kwargs: Any) -> LLMResult:
        payload: Dict[str, Any] = {
            "model": kwargs.get("model", self.model),
            "messages": list(messages),
            "max_tokens": kwargs.get("max_tokens", 150),
            "temperature": kwargs.get("temperature", 0.7),
            "presence_penalty": 0.1,
            "frequency_penalty": 0.1,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        with httpx.Client(base_url=self.base_url, timeout=self.request_timeout) as client:
            response = client.post("/chat/completions", json=payload, headers=headers)

        if response.status_code >= 400:
            logger.error("OpenAI returned error", status=response.status_code, body=response.text)
            raise LLMProviderError(f"OpenAI error {response.status_code}: {response.text}")

        data = response.json()
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message", {}).get("content") or "").strip()
        if not content:
            raise LLMProviderError("OpenAI response did not include content")

        usage = data.get("usage", {})
        prompt_tokens = usage.get("prompt_tokens", 0)
        completion_tokens = usage.get("completion_tokens", 0)
        logger.info("OpenAI completion success", model=payload["model"], tokens=prompt_tokens + completion_tokens)
        return LLMResult(
            provider=self.name,
            model=payload["model"],
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=usage.get("total_tokens", prompt_tokens + completion_tokens),
            raw_response=data,
        )


@dataclass
class AnthropicProvider:
    """Generate chat completions using the Anthropic API."""

    api_key: str
    model: str
    base_url: str = "https://api.anthropic.com/v1"
    request_timeout: float = 10.0
    max_retries: int = 3

    name: str = "anthropic"

    def generate(self, messages: Sequence[Dict[str, str]], **kwargs: Any) -> LLMResult:
        return _retrying(self.max_retries)(self._request, messages, **kwargs)

    def _request(self, messages: Sequence[Dict[str, str]], **kwargs: Any) -> LLMResult:
        system_parts = [message["content"] for message in messages if message["role"] == "system"]
        payload: Dict[str, Any] = {
            "model": kwargs.get("model", self.model),
            "max_tokens": kwargs.get("max_tokens", 150),
            "temperature": kwargs.get("temperature", 0.7),
            "messages": [
                {"role": message["role"], "content": message["content"]}
                for message in messages
                if message["role"] != "system"
            ],
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

        with httpx.Client(base_url=self.base_url, timeout=self.request_timeout) as client:
            response = client.post("/messages", json=payload, headers=headers)

        if response.status_code >= 400:
            logger.error("Anthropic returned error", status=response.status_code, body=response.text)
            raise LLMProviderError(f"Anthropic error {response.status_code}: {response.text}")

        data = response.json()
        chunks = [chunk.get("text", "") for chunk in data.get("content", []) if chunk.get("type") == "text"]
        content = "\n".join(filter(None, chunks)).strip()
        if not content:
            raise LLMProviderError("Anthropic response did not include content")

        usage = data.get("usage", {})
        prompt_tokens = usage.get("input_tokens", 0)
        completion_tokens = usage.get("output_tokens", 0)
        logger.info("Anthropic completion success", model=payload["model"], tokens=prompt_tokens + completion_tokens)
        return LLMResult(
            provider=self.name,
            model=payload["model"],
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            raw_response=data,
        )


class LLMService:
    """Send chat requests to the configured providers in preference order."""

    def __init__(
        self,
        providers: Optional[Sequence[BaseLLMProvider]] = None,
        primary: Optional[str] = None,
        secondary: Optional[str] = None,
    ) -> None:
        self._providers = list(providers) if providers is not None else self._build_default_providers()
        if not self._providers:
            raise ValueError("LLMService requires at least one provider")

        order = [primary or settings.PRIMARY_LLM_PROVIDER, secondary or settings.SECONDARY_LLM_PROVIDER]
        by_name = {provider.name: provider for provider in self._providers}
        preferred = [by_name[name] for name in dict.fromkeys(order) if name in by_name]
        self._provider_order = preferred + [p for p in self._providers if p not in preferred]

    @staticmethod
    def _build_default_providers() -> List[BaseLLMProvider]:
        provider_list: List[BaseLLMProvider] = []
        if settings.OPENAI_API_KEY:
            provider_list.append(
                OpenAIProvider(
                    api_key=settings.OPENAI_API_KEY,
                    model=settings.OPENAI_MODEL,
                    base_url=str(settings.OPENAI_API_BASE or "https://api.openai.com/v1"),
                    request_timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
                    max_retries=settings.LLM_MAX_RETRIES,
                )
            )
        if settings.ANTHROPIC_API_KEY:
            provider_list.append(
                AnthropicProvider(
                    api_key=settings.ANTHROPIC_API_KEY,
                    model=settings.ANTHROPIC_MODEL,
                    base_url=str(settings.ANTHROPIC_API_BASE or "https://api.anthropic.com/v1"),
                    request_timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
                    max_retries=settings.LLM_MAX_RETRIES,
                )
            )
        return provider_list

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self._provider_order]

    def generate_chat_completion(
        self,
        messages: Sequence[Dict[str, str]],
        *,
        temperature: float = 0.7,
        max_tokens: int = 150,
    ) -> LLMResult:
        """Return the first successful completion across providers."""

        errors: List[str] = []
        for provider in self._provider_order:
            try:
                result = provider.generate(messages, temperature=temperature, max_tokens=max_tokens)
            except Exception as exc:
                logger.exception("LLM provider failure", provider=provider.name)
                errors.append(f"{provider.name}: {exc}")
                continue
            logger.debug("LLM provider success", provider=provider.name, tokens=result.total_tokens)
            return result
        raise LLMProviderError("; ".join(errors))


__all__ = [
    "AnthropicProvider",
    "BaseLLMProvider",
    "LLMProviderError",
    "LLMResult",
    "LLMService",
    "OpenAIProvider",
]
