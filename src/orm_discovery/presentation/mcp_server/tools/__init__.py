"""
ORM Discovery MCP Tools

Content (4):
- search_content, get_book_details, get_book_toc, get_book_chapter_content

Answers (2):
- ask_question, get_question_answer

Usage:
    from .tools import register_all_tools
    register_all_tools(mcp, content_client)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .answers import register_answer_tools
from .content import register_content_tools

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from orm_discovery.infrastructure.oreilly import ContentClient

logger = logging.getLogger(__name__)


def register_all_tools(mcp: FastMCP, client: ContentClient) -> list[str]:
    """Register every tool and return their names."""
    names = register_content_tools(mcp, client) + register_answer_tools(mcp, client)
    logger.info(f"Registered {len(names)} tools: {', '.join(names)}")
    return names


__all__ = ["register_all_tools"]
