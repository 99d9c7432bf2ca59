"""
MCP Server Instructions - usage guide for AI agents.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
ORM Discovery MCP Server - research assistant for the O'Reilly Learning platform

## Finding content
1. search_content(query="...", rows=10) finds books, videos and articles.
   Each result has an id, content_type and url.
2. get_book_details(product_id=<id>) gives authors, publisher, topics and pages.
3. get_book_toc(product_id=<id>) lists chapters. The file name in an item's
   href (without ".html") is the chapter_name.
4. get_book_chapter_content(product_id=<id>, chapter_name="ch01") returns the
   chapter text split into sections, with code blocks and links.

## Asking questions
- ask_question(question="...") asks O'Reilly Answers and waits for the answer
  (usually under a minute). The answer cites its sources.
- If it times out, call get_question_answer(question_id=<id from the error>).

## Research history
Searches and questions are recorded automatically:
- orm-mcp://history/recent
- orm-mcp://history/search/{keyword}
- orm-mcp://history/type/{search|question}
- orm-mcp://history/{entry_id} and orm-mcp://history/{entry_id}/full

## Errors
Failed calls return JSON with "error", "error_type", "retryable" and often a
"suggestion". Authentication errors mean the account credentials need
attention; retrying will not help.
"""
