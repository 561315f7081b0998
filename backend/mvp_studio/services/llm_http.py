"""Raw HTTP callers for the supported hosted LLM providers.

Each provider is described by a ``ProviderSpec``: where to POST, which auth
headers to send, how to shape the body and where the answer text sits in
the response. ``call_provider()`` looks the spec up and makes exactly one
request; retries and fallbacks belong to the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from mvp_studio.services.http_client_manager import get_http_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    upstream: str                                  # pooled client name
    url: Callable[[str], str]                      # model -> endpoint
    headers: Callable[[str], dict]                 # api key -> headers
    body: Callable[[str, str, float, int], dict]   # prompt, model, temperature, max tokens
    extract: Callable[[dict], str]                 # response json -> text


# ── Request / response shapes ──────────────────────────────────────────

def _chat_body(prompt: str, model: str, temperature: float, max_tokens: int) -> dict:
    return {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }


def _chat_text(data: dict) -> str:
    return data["choices"][0]["message"]["content"]


def _gemini_body(prompt: str, model: str, temperature: float, max_tokens: int) -> dict:
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
    }


def _gemini_text(data: dict) -> str:
    return data["candidates"][0]["content"]["parts"][0]["text"]


def _anthropic_text(data: dict) -> str:
    return "".join(block.get("text", "") for block in data["content"] if block.get("type") == "text")


_GEMINI = ProviderSpec(
    upstream="gemini",
    url=lambda model: f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
    headers=lambda key: {"x-goog-api-key": key},
    body=_gemini_body,
    extract=_gemini_text,
)

PROVIDERS: dict[str, ProviderSpec] = {
    "openai": ProviderSpec(
        upstream="openai",
        url=lambda model: "https://api.openai.com/v1/chat/completions",
        headers=lambda key: {"Authorization": f"Bearer {key}"},
        body=_chat_body,
        extract=_chat_text,
    ),
    "anthropic": ProviderSpec(
        upstream="anthropic",
        url=lambda model: "https://api.anthropic.com/v1/messages",
        headers=lambda key: {"x-api-key": key, "anthropic-version": "2023-06-01"},
        body=_chat_body,
        extract=_anthropic_text,
    ),
    "gemini": _GEMINI,
    "google": _GEMINI,
    "openrouter": ProviderSpec(
        upstream="openrouter",
        url=lambda model: "https://openrouter.ai/api/v1/chat/completions",
        headers=lambda key: {"Authorization": f"Bearer {key}", "X-Title": "BuildTrix MVP Studio"},
        body=_chat_body,
        extract=_chat_text,
    ),
}

KNOWN_PROVIDERS = frozenset(PROVIDERS)


async def call_provider(
    prompt: str,
    provider: str,
    model: str,
    api_key: str,
    temperature: float = 0.7,
    max_tokens: int = 4096,
) -> str:
    """Send a prompt to a hosted LLM provider and return the raw text.

    Parameters
    ----------
    prompt : the full prompt text
    provider : a key of ``PROVIDERS``
    model : model name/ID as the provider spells it
    api_key : provider API key

    Raises
    ------
    ValueError : unknown provider or missing API key
    httpx.HTTPStatusError : HTTP errors from the provider
    httpx.TransportError : connection errors and timeouts
    KeyError, IndexError, TypeError : the provider answered with an unexpected body
    """
    spec = PROVIDERS.get(provider)
    if spec is None:
        raise ValueError(f"Unknown LLM provider: {provider}")
    if not api_key:
        raise ValueError(f"API key required for provider {provider}")

    resp = await get_http_client(spec.upstream).post(
        spec.url(model),
        headers=spec.headers(api_key),
        json=spec.body(prompt, model, temperature, max_tokens),
    )
    resp.raise_for_status()
    logger.debug("%s answered %d bytes for model %s", provider, len(resp.content), model)
    return spec.extract(resp.json())
