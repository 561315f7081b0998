"""Pooled HTTP clients for outbound calls.

One ``httpx.AsyncClient`` per upstream (each LLM provider, the knowledge
search service), shared across requests and closed on application shutdown
via ``close_all_clients()``.
"""
from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

# ── Upstream-specific timeouts ─────────────────────────────────────────

_UPSTREAM_TIMEOUTS: dict[str, httpx.Timeout] = {
    "openai": httpx.Timeout(90.0, connect=10.0),
    "anthropic": httpx.Timeout(90.0, connect=10.0),
    "gemini": httpx.Timeout(90.0, connect=10.0),
    "openrouter": httpx.Timeout(90.0, connect=10.0),
    "knowledge": httpx.Timeout(10.0, connect=5.0),
}

_DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=10.0)

_CONNECTION_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=120,
)

# ── Client pool (module-level singletons) ──────────────────────────────

_clients: dict[str, httpx.AsyncClient] = {}
_client_loop_ids: dict[str, int] = {}


def get_http_client(upstream: str) -> httpx.AsyncClient:
    """Get or create the pooled client for *upstream*.

    The client is recreated when the running event loop changes (the test
    client starts a fresh loop per app instance).
    """
    loop_id = id(asyncio.get_running_loop())

    if (
        upstream not in _clients
        or _clients[upstream].is_closed
        or _client_loop_ids.get(upstream) != loop_id
    ):
        _clients[upstream] = httpx.AsyncClient(
            timeout=_UPSTREAM_TIMEOUTS.get(upstream, _DEFAULT_TIMEOUT),
            limits=_CONNECTION_LIMITS,
        )
        _client_loop_ids[upstream] = loop_id
        logger.debug("Created new HTTP client for '%s'", upstream)

    return _clients[upstream]


async def close_all_clients() -> None:
    """Close every pooled client (graceful shutdown)."""
    for name, client in list(_clients.items()):
        if client.is_closed:
            continue
        try:
            await client.aclose()
        except (httpx.HTTPError, RuntimeError) as exc:
            logger.warning("Error closing HTTP client '%s': %s", name, exc)
    _clients.clear()
    _client_loop_ids.clear()
    logger.info("All HTTP clients closed")
