"""
Domain Layer - Core records

Contains:
- entities: Content records and research history model
"""

from .entities import (
    Answer,
    BookDetail,
    CanonicalResult,
    ChapterContent,
    ContentType,
    EntryType,
    ResearchEntry,
    ResearchHistory,
    TableOfContents,
)

__all__ = [
    "Answer",
    "BookDetail",
    "CanonicalResult",
    "ChapterContent",
    "ContentType",
    "EntryType",
    "ResearchEntry",
    "ResearchHistory",
    "TableOfContents",
]
