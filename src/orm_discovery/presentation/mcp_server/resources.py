"""
MCP Resources - research history

Resources:
- orm-mcp://history/recent                 latest 20 entries, summaries only
- orm-mcp://history/search/{keyword}       entries whose keywords contain the term
- orm-mcp://history/type/{entry_type}      search or question entries
- orm-mcp://history/{entry_id}             one entry, summary only
- orm-mcp://history/{entry_id}/full        one entry with its full response
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from orm_discovery.shared.exceptions import InvalidParameterError

from .tools._common import to_json

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from orm_discovery.application.history import HistoryStore
    from orm_discovery.domain.entities import ResearchEntry

logger = logging.getLogger(__name__)

RECENT_LIMIT = 20
SEARCH_LIMIT = 50


def _entries_payload(entries: list[ResearchEntry], **fields: Any) -> str:
    return to_json(
        {
            **fields,
            "count": len(entries),
            "entries": [entry.to_dict(include_full_response=False) for entry in entries],
        }
    )


def register_history_resources(mcp: FastMCP, store: HistoryStore) -> list[str]:
    """Register the research history resources."""

    @mcp.resource("orm-mcp://history/recent", mime_type="application/json")
    def recent_history() -> str:
        """The 20 most recent searches and questions (summaries only)."""
        entries = store.get_recent(RECENT_LIMIT)
        return _entries_payload(entries, stats=store.stats())

    @mcp.resource("orm-mcp://history/search/{keyword}", mime_type="application/json")
    def search_history(keyword: str) -> str:
        """Past searches and questions whose keywords include the given term."""
        entries = store.search(keyword=keyword, limit=SEARCH_LIMIT)
        return _entries_payload(entries, keyword=keyword)

    @mcp.resource("orm-mcp://history/type/{entry_type}", mime_type="application/json")
    def history_by_type(entry_type: str) -> str:
        """Past entries of one type: search or question."""
        try:
            entries = store.search(entry_type=entry_type, limit=SEARCH_LIMIT)
        except InvalidParameterError as e:
            return to_json(e.to_dict())
        return _entries_payload(entries, type=entry_type)

    @mcp.resource("orm-mcp://history/{entry_id}", mime_type="application/json")
    def history_entry(entry_id: str) -> str:
        """One research history entry without its full response."""
        entry = store.get_by_id(entry_id)
        if entry is None:
            return to_json({"error": f"entry not found: {entry_id}"})
        return to_json(entry.to_dict(include_full_response=False))

    @mcp.resource("orm-mcp://history/{entry_id}/full", mime_type="application/json")
    def history_full_response(entry_id: str) -> str:
        """The complete stored response of one research history entry."""
        entry = store.get_by_id(entry_id)
        if entry is None:
            return to_json({"error": f"entry not found: {entry_id}"})
        if entry.full_response is None:
            return to_json({"error": f"full response not available for entry: {entry_id}"})
        return to_json(
            {
                "id": entry.id,
                "query": entry.query,
                "type": entry.type.value,
                "full_response": entry.full_response,
            }
        )

    uris = [
        "orm-mcp://history/recent",
        "orm-mcp://history/search/{keyword}",
        "orm-mcp://history/type/{entry_type}",
        "orm-mcp://history/{entry_id}",
        "orm-mcp://history/{entry_id}/full",
    ]
    logger.info(f"Registered {len(uris)} history resources")
    return uris
