"""
Content Tools - search the catalogue and read books.

Tools:
- search_content: Search books, videos and articles
- get_book_details: Book metadata (authors, publisher, topics, pages)
- get_book_toc: Flat table of contents with chapter names
- get_book_chapter_content: Parsed chapter text, code blocks and links
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ._common import error_response, to_json

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from orm_discovery.infrastructure.oreilly import ContentClient

logger = logging.getLogger(__name__)


def register_content_tools(mcp: FastMCP, client: ContentClient) -> list[str]:
    """Register search and book reading tools."""

    @mcp.tool()
    async def search_content(
        query: str,
        rows: int = 100,
        tzOffset: int = -9,  # noqa: N803
        aia_only: bool = False,
        feature_flags: str = "improveSearchFilters",
        report: bool = True,
        isTopics: bool = False,  # noqa: N803
    ) -> str:
        """
        Search content on the O'Reilly Learning platform.

        Args:
            query: Search text (e.g., "kubernetes operators", "rust async").
            rows: Number of results to return (1-1000, default 100).
            tzOffset: Timezone offset sent with the query (default -9).
            aia_only: Only AI-assisted content (default false).
            feature_flags: Platform feature flags (default "improveSearchFilters").
            report: Include reporting data (default true).
            isTopics: Search topics only (default false).

        Returns:
            JSON with count and results (id, title, authors, content_type,
            description, url, publisher, published_date, source). Use a
            result's id with get_book_details or get_book_toc.
        """
        logger.info(f"search_content: query='{query}', rows={rows}")
        try:
            results = await client.search(
                query,
                rows,
                tz_offset=tzOffset,
                aia_only=aia_only,
                feature_flags=feature_flags,
                report=report,
                is_topics=isTopics,
            )
        except Exception as e:
            return error_response(e, tool_name="search_content")

        return to_json(
            {
                "count": len(results),
                "total": len(results),
                "results": [r.to_dict() for r in results],
            }
        )

    @mcp.tool()
    async def get_book_details(product_id: str) -> str:
        """
        Get detailed metadata for a book.

        Args:
            product_id: Book id or ISBN from search_content (e.g., "9781098166298").

        Returns:
            JSON with title, authors, publishers, description, ISBN, pages,
            rating, topics and URLs.
        """
        try:
            detail = await client.get_detail(product_id)
        except Exception as e:
            return error_response(e, tool_name="get_book_details")
        return to_json(detail.to_dict())

    @mcp.tool()
    async def get_book_toc(product_id: str) -> str:
        """
        Get the table of contents of a book.

        Args:
            product_id: Book id or ISBN from search_content.

        Returns:
            JSON with table_of_contents items (id, title, href, level, parent)
            and total_chapters. The file name in an item's href (without
            ".html") is the chapter_name for get_book_chapter_content.
        """
        try:
            toc = await client.get_substructure(product_id)
        except Exception as e:
            return error_response(e, tool_name="get_book_toc")
        return to_json(toc.to_dict())

    @mcp.tool()
    async def get_book_chapter_content(product_id: str, chapter_name: str) -> str:
        """
        Get the parsed content of one chapter.

        Args:
            product_id: Book id or ISBN from search_content.
            chapter_name: Chapter file name from get_book_toc (e.g., "ch01", "preface").

        Returns:
            JSON with chapter_title, sections (heading with its paragraphs and
            code blocks), headings, paragraphs, code_blocks, images, links and
            metadata (word_count, book_title, minutes_required).
        """
        try:
            chapter = await client.get_leaf_content(product_id, chapter_name)
        except Exception as e:
            return error_response(e, tool_name="get_book_chapter_content")
        return to_json(chapter.to_dict())

    return ["search_content", "get_book_details", "get_book_toc", "get_book_chapter_content"]
