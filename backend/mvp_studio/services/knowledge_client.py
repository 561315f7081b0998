"""Client for the external knowledge search service.

The service owns the knowledge documents and their embeddings; this module
only sends a query and reads back ranked snippets. Retrieval is best-effort
enrichment: every failure yields an empty list.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from mvp_studio.config import Settings, get_settings
from mvp_studio.services.http_client_manager import get_http_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnowledgeSnippet:
    id: str
    title: str
    content: str
    document_type: str = "best_practice"
    target_tools: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    similarity_score: float = 0.0

    @classmethod
    def from_row(cls, row: dict) -> "KnowledgeSnippet":
        return cls(
            id=str(row["id"]),
            title=str(row["title"]),
            content=str(row["content"]),
            document_type=str(row.get("document_type") or "best_practice"),
            target_tools=tuple(row.get("target_tools") or ()),
            categories=tuple(row.get("categories") or ()),
            similarity_score=float(row.get("similarity_score") or 0.0),
        )


def sort_snippets(snippets) -> list[KnowledgeSnippet]:
    """Stable presentation order: best match first, then title and id."""
    return sorted(snippets, key=lambda s: (-s.similarity_score, s.title, s.id))


async def search_knowledge(
    query: str,
    categories: list[str] | None = None,
    target_tools: list[str] | None = None,
    max_results: int | None = None,
    settings: Settings | None = None,
) -> list[KnowledgeSnippet]:
    """Search the knowledge service and return matching snippets.

    Returns ``[]`` when ``KNOWLEDGE_SEARCH_URL`` is unset, on any transport
    or HTTP error, and when the response body is not the expected shape.
    """
    settings = settings or get_settings()
    if not settings.KNOWLEDGE_SEARCH_URL:
        return []

    payload = {
        "query_text": query,
        "categories": categories or None,
        "target_tools": target_tools or None,
        "similarity_threshold": settings.KNOWLEDGE_SIMILARITY_THRESHOLD,
        "max_results": max_results or settings.KNOWLEDGE_MAX_RESULTS,
    }
    headers = {}
    if settings.KNOWLEDGE_SEARCH_API_KEY:
        headers["Authorization"] = f"Bearer {settings.KNOWLEDGE_SEARCH_API_KEY}"

    try:
        resp = await get_http_client("knowledge").post(
            settings.KNOWLEDGE_SEARCH_URL, json=payload, headers=headers,
        )
        resp.raise_for_status()
        body = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Knowledge search failed for %r: %s", query[:80], exc)
        return []

    rows = body.get("results") if isinstance(body, dict) else body
    if not isinstance(rows, list):
        logger.warning("Knowledge search returned an unexpected body type: %s", type(body).__name__)
        return []

    snippets: list[KnowledgeSnippet] = []
    for row in rows:
        try:
            snippets.append(KnowledgeSnippet.from_row(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed knowledge row: %s", exc)
    return snippets
