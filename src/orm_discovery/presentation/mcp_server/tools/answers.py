"""
Answers Tools - natural-language questions answered from platform content.

Tools:
- ask_question: Submit a question and wait for the generated answer
- get_question_answer: Fetch a previously submitted question by id
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ._common import error_response, to_json

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from orm_discovery.infrastructure.oreilly import ContentClient

logger = logging.getLogger(__name__)


def register_answer_tools(mcp: FastMCP, client: ContentClient) -> list[str]:
    """Register O'Reilly Answers tools."""

    @mcp.tool()
    async def ask_question(question: str, max_wait_minutes: float = 5) -> str:
        """
        Ask O'Reilly Answers a technical question.

        The answer is generated from books, videos and articles on the
        platform and cites its sources. Generation usually takes under a
        minute.

        Args:
            question: The question in English (e.g., "How do I tune JVM garbage collection?").
            max_wait_minutes: How long to wait for the answer (default 5).

        Returns:
            JSON with question_id, answer (markdown), sources,
            related_resources and followup_questions. On timeout the error
            names the question_id to use with get_question_answer.
        """
        logger.info(f"ask_question: '{question}'")
        try:
            answer = await client.ask_question(question, max_wait=max_wait_minutes * 60)
        except Exception as e:
            return error_response(e, tool_name="ask_question")
        return to_json(answer.to_dict())

    @mcp.tool()
    async def get_question_answer(question_id: str) -> str:
        """
        Get the current answer for a question submitted earlier.

        Args:
            question_id: The question_id returned by ask_question.

        Returns:
            JSON answer; is_finished is false while generation is running.
        """
        try:
            answer = await client.get_answer(question_id)
        except Exception as e:
            return error_response(e, tool_name="get_question_answer")
        return to_json(answer.to_dict())

    return ["ask_question", "get_question_answer"]
