"""
Domain Entities

Contains:
- content: Canonical search results, book detail, TOC, chapters, answers
- research: Research history entries and indices
"""

from .content import (
    Answer,
    AnswerReference,
    BookDetail,
    CanonicalResult,
    ChapterContent,
    CodeBlock,
    ContentType,
    Heading,
    ImageRef,
    LinkRef,
    ParsedChapter,
    Section,
    TableOfContents,
    TocItem,
    Topic,
)
from .research import (
    HISTORY_VERSION,
    EntryType,
    HistoryIndex,
    ResearchEntry,
    ResearchHistory,
    ResultSummary,
    TopResult,
)

__all__ = [
    "HISTORY_VERSION",
    "Answer",
    "AnswerReference",
    "BookDetail",
    "CanonicalResult",
    "ChapterContent",
    "CodeBlock",
    "ContentType",
    "EntryType",
    "Heading",
    "HistoryIndex",
    "ImageRef",
    "LinkRef",
    "ParsedChapter",
    "ResearchEntry",
    "ResearchHistory",
    "ResultSummary",
    "Section",
    "TableOfContents",
    "TocItem",
    "TopResult",
    "Topic",
]
