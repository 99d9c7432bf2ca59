"""
Result Normalizer - pure mapping from upstream payloads to canonical records.
"""

from .detail_normalizer import normalize_answer, normalize_book_detail, normalize_toc, question_id_from
from .raw import RawPayload
from .result_normalizer import (
    extract_result_items,
    normalize_authors,
    normalize_content_type,
    normalize_search_response,
    normalize_search_result,
    normalize_url,
)
from .rules import FallbackChain, FieldRule

__all__ = [
    "FallbackChain",
    "FieldRule",
    "RawPayload",
    "extract_result_items",
    "normalize_answer",
    "normalize_authors",
    "normalize_book_detail",
    "normalize_content_type",
    "normalize_search_response",
    "normalize_search_result",
    "normalize_toc",
    "normalize_url",
    "question_id_from",
]
