"""
O'Reilly - endpoint table, content client and chapter HTML parser.
"""

from .content_client import ContentClient
from .endpoints import LEARNING_BASE_URL, SEARCH_ENDPOINTS, SearchEndpoint
from .html_parser import parse_chapter_html

__all__ = [
    "LEARNING_BASE_URL",
    "SEARCH_ENDPOINTS",
    "ContentClient",
    "SearchEndpoint",
    "parse_chapter_html",
]
