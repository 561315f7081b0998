"""LLM text generation for the studio stages.

``generate_text()`` makes a single attempt against the configured provider
and returns ``None`` on any failure, so every caller can drop to its
deterministic fallback. No retry or backoff is applied.
"""
from __future__ import annotations

import logging

import httpx

from mvp_studio.config import Settings, get_settings
from mvp_studio.services.llm_http import KNOWN_PROVIDERS, call_provider

logger = logging.getLogger(__name__)


def llm_configured(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.LLM_API_KEY) and settings.LLM_PROVIDER in KNOWN_PROVIDERS


async def generate_text(
    prompt: str,
    settings: Settings | None = None,
    temperature: float | None = None,
) -> str | None:
    """Send *prompt* to the configured LLM and return the text, or ``None``.

    ``None`` means "use the fallback": no API key configured, unknown
    provider, HTTP or transport failure, an unexpected response body, or an
    empty answer.
    """
    settings = settings or get_settings()
    provider = settings.LLM_PROVIDER

    if not llm_configured(settings):
        logger.debug("LLM not configured (provider=%s); skipping generation", provider)
        return None

    try:
        text = await call_provider(
            prompt,
            provider,
            settings.LLM_MODEL,
            api_key=settings.LLM_API_KEY,
            temperature=settings.LLM_TEMPERATURE if temperature is None else temperature,
            max_tokens=settings.LLM_MAX_TOKENS,
        )
    except httpx.HTTPStatusError as e:
        body_preview = e.response.text[:300] if e.response.text else "(empty)"
        logger.warning(
            "LLM HTTP %d from %s/%s: %s",
            e.response.status_code, provider, settings.LLM_MODEL, body_preview,
        )
        return None
    except httpx.TransportError as e:
        logger.warning("LLM connection issue (%s/%s): %s: %s", provider, settings.LLM_MODEL, type(e).__name__, e)
        return None
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.warning("Unexpected LLM response from %s (%s): %s", provider, type(e).__name__, e)
        return None

    if not text or not text.strip():
        logger.warning("LLM returned an empty response (%s/%s)", provider, settings.LLM_MODEL)
        return None
    return text
