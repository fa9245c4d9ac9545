"""LLM provider strategies.

Each provider turns one prompt into one HTTPS POST and returns the reply
text, or raises ProviderError. Four of the five providers speak the OpenAI
chat-completions schema; Anthropic has its own messages schema.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from iara.core.config import settings
from iara.core.logger import logger
from iara.utils.exceptions import ProviderError
from iara.utils.helpers import truncate_text

ANTHROPIC_VERSION = "2023-06-01"


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


@dataclass
class ProviderReply:
    text: str
    model: str
    provider: Optional[str] = None
    # Pre-structured result, set only by the synthetic strategies
    parsed: Optional[Dict[str, Any]] = None

    @property
    def synthetic(self) -> bool:
        return self.provider is None


@dataclass
class ChatProvider:
    """Base strategy: one configured provider + key + model."""

    name: str
    label: str
    api_key: str
    model: str
    url: str
    extra_headers: Dict[str, str] = field(default_factory=dict)
    # Per-user overrides; None means the configured defaults
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **self.extra_headers,
        }

    def payload(
        self,
        prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: float,
    ) -> Dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    def extract_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"] or ""

    def complete(
        self,
        client: httpx.Client,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ProviderReply:
        """Issue one request. Raises ProviderError on network errors, non-2xx or bad bodies."""
        body = self.payload(
            prompt,
            system_prompt,
            _first_set(max_tokens, self.max_tokens, settings.AI_MAX_TOKENS),
            _first_set(temperature, self.temperature, settings.AI_TEMPERATURE),
        )
        try:
            resp = client.post(self.url, json=body, headers=self.headers())
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code >= 400:
            raise ProviderError(
                self.name,
                f"HTTP {resp.status_code}: {truncate_text(resp.text, 200)}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
            text = self.extract_text(data)
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.name, f"Unexpected response body: {exc}") from exc

        return ProviderReply(text=text, model=data.get("model") or self.model, provider=self.name)


@dataclass
class AnthropicProvider(ChatProvider):

    def headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def payload(self, prompt, system_prompt, max_tokens, temperature):
        body = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt
        return body

    def extract_text(self, data: Dict[str, Any]) -> str:
        return data["content"][0].get("text", "")


PROVIDER_URLS = {
    "openai": "https://api.openai.com/v1/chat/completions",
    "anthropic": "https://api.anthropic.com/v1/messages",
    "openrouter": "https://openrouter.ai/api/v1/chat/completions",
    "deepseek": "https://api.deepseek.com/v1/chat/completions",
    "groq": "https://api.groq.com/openai/v1/chat/completions",
}

PROVIDER_LABELS = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "openrouter": "OpenRouter",
    "deepseek": "DeepSeek",
    "groq": "Groq",
}

SUPPORTED_PROVIDERS = tuple(PROVIDER_URLS)


def default_model(name: str) -> str:
    return {
        "openai": settings.OPENAI_MODEL,
        "anthropic": settings.ANTHROPIC_MODEL,
        "openrouter": settings.OPENROUTER_MODEL,
        "deepseek": settings.DEEPSEEK_MODEL,
        "groq": settings.GROQ_MODEL,
    }[name]


def env_api_key(name: str) -> str:
    return {
        "openai": settings.OPENAI_API_KEY,
        "anthropic": settings.ANTHROPIC_API_KEY,
        "openrouter": settings.OPENROUTER_API_KEY,
        "deepseek": settings.DEEPSEEK_API_KEY,
        "groq": settings.GROQ_API_KEY,
    }[name]


def build_provider(
    name: str,
    api_key: str,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> ChatProvider:
    """Raises KeyError for an unknown provider name."""
    url = PROVIDER_URLS[name]
    kwargs = dict(
        name=name,
        label=PROVIDER_LABELS[name],
        api_key=api_key,
        model=model or default_model(name),
        url=url,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    if name == "anthropic":
        return AnthropicProvider(**kwargs)
    if name == "openrouter":
        kwargs["extra_headers"] = {
            "HTTP-Referer": settings.OPENROUTER_REFERER,
            "X-Title": settings.APP_NAME,
        }
    return ChatProvider(**kwargs)


def providers_from_env() -> list[ChatProvider]:
    """Providers that have an API key, in AI_PROVIDER_ORDER."""
    providers = []
    for name in settings.ai_provider_order_list:
        if name not in PROVIDER_URLS:
            logger.warning("Ignoring unknown provider in AI_PROVIDER_ORDER: %s", name)
            continue
        key = (env_api_key(name) or "").strip()
        if key:
            providers.append(build_provider(name, key))
    return providers
