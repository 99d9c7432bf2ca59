"""
Content Entities - canonical records returned by the content client.

Key Entities:
    - CanonicalResult: Normalized search hit, stable across payload shapes
    - BookDetail: Book metadata from the book detail endpoint
    - TableOfContents / TocItem: Flattened table of contents
    - ChapterContent / ParsedChapter: Structured chapter HTML
    - Answer: O'Reilly Answers response with sources

Every field is a plain string, number or list of those; raw upstream
structures never appear here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ContentType(Enum):
    """Canonical content type."""

    BOOK = "book"
    VIDEO = "video"
    ARTICLE = "article"
    UNKNOWN = "unknown"


@dataclass
class CanonicalResult:
    """
    A normalized content record.

    Attributes:
        id: Stable identifier (product id, ourn or ISBN)
        title: Display title
        authors: Ordered author names, possibly empty
        content_type: Canonical type
        description: Plain description text
        url: Absolute URL on the learning platform
        publisher: Publisher name
        published_date: Date string as given upstream
        source: Extraction path that produced the record
    """

    id: str = ""
    title: str = ""
    authors: list[str] = field(default_factory=list)
    content_type: ContentType = ContentType.UNKNOWN
    description: str = ""
    url: str = ""
    publisher: str = ""
    published_date: str = ""
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "content_type": self.content_type.value,
            "description": self.description,
            "url": self.url,
            "publisher": self.publisher,
            "published_date": self.published_date,
            "source": self.source,
        }


@dataclass
class Topic:
    name: str = ""
    slug: str = ""
    score: float = 0.0


@dataclass
class BookDetail:
    """Book metadata from ``/api/v1/book/{id}/``."""

    id: str = ""
    title: str = ""
    description: str = ""
    url: str = ""
    web_url: str = ""
    authors: list[str] = field(default_factory=list)
    publishers: list[str] = field(default_factory=list)
    isbn: str = ""
    virtual_pages: int = 0
    average_rating: float = 0.0
    cover: str = ""
    issued: str = ""
    topics: list[Topic] = field(default_factory=list)
    language: str = ""
    source: str = ""

    def to_canonical(self) -> CanonicalResult:
        """Project onto the canonical result schema."""
        return CanonicalResult(
            id=self.id or self.isbn,
            title=self.title,
            authors=list(self.authors),
            content_type=ContentType.BOOK,
            description=self.description,
            url=self.web_url or self.url,
            publisher=self.publishers[0] if self.publishers else "",
            published_date=self.issued,
            source=self.source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "web_url": self.web_url,
            "authors": list(self.authors),
            "publishers": list(self.publishers),
            "isbn": self.isbn,
            "virtual_pages": self.virtual_pages,
            "average_rating": self.average_rating,
            "cover": self.cover,
            "issued": self.issued,
            "topics": [{"name": t.name, "slug": t.slug, "score": t.score} for t in self.topics],
            "language": self.language,
            "source": self.source,
        }


@dataclass
class TocItem:
    """One entry of a flattened table of contents."""

    id: str
    title: str
    href: str = ""
    level: int = 0
    parent: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def chapter_name(self) -> str:
        """File stem usable with ``get_leaf_content`` (``ch01.html#x`` -> ``ch01``)."""
        name = self.href.rsplit("/", 1)[-1].split("#", 1)[0]
        return name.removesuffix(".html").removesuffix(".xhtml")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "href": self.href,
            "level": self.level,
            "parent": self.parent,
            "chapter_name": self.chapter_name,
            "metadata": dict(self.metadata),
        }


@dataclass
class TableOfContents:
    """Flattened table of contents for a book."""

    book_id: str
    book_title: str = ""
    items: list[TocItem] = field(default_factory=list)
    extraction_method: str = ""

    @property
    def total_chapters(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "book_id": self.book_id,
            "book_title": self.book_title,
            "table_of_contents": [item.to_dict() for item in self.items],
            "total_chapters": self.total_chapters,
            "metadata": {"extraction_method": self.extraction_method},
        }


@dataclass
class Heading:
    level: int
    text: str
    id: str = ""


@dataclass
class CodeBlock:
    code: str
    language: str = ""
    caption: str = ""


@dataclass
class ImageRef:
    src: str
    alt: str = ""


@dataclass
class LinkRef:
    href: str
    text: str
    type: str = "internal"  # internal | external | anchor


@dataclass
class Section:
    """A heading with the paragraphs and code blocks that follow it."""

    heading: Heading
    paragraphs: list[str] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)


@dataclass
class ParsedChapter:
    """Structured view of a chapter's HTML."""

    title: str = ""
    sections: list[Section] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    paragraphs: list[str] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    images: list[ImageRef] = field(default_factory=list)
    links: list[LinkRef] = field(default_factory=list)

    @property
    def word_count(self) -> int:
        return sum(len(p.split()) for p in self.paragraphs)

    def to_dict(self) -> dict[str, Any]:
        def _code(block: CodeBlock) -> dict[str, str]:
            return {"code": block.code, "language": block.language, "caption": block.caption}

        return {
            "title": self.title,
            "sections": [
                {
                    "heading": vars(s.heading),
                    "paragraphs": list(s.paragraphs),
                    "code_blocks": [_code(c) for c in s.code_blocks],
                }
                for s in self.sections
            ],
            "headings": [vars(h) for h in self.headings],
            "paragraphs": list(self.paragraphs),
            "code_blocks": [_code(c) for c in self.code_blocks],
            "images": [vars(i) for i in self.images],
            "links": [vars(link) for link in self.links],
        }


@dataclass
class ChapterContent:
    """A parsed chapter with its provenance."""

    book_id: str
    chapter_name: str
    chapter_title: str
    content: ParsedChapter
    source_url: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "book_id": self.book_id,
            "chapter_name": self.chapter_name,
            "chapter_title": self.chapter_title,
            "content": self.content.to_dict(),
            "source_url": self.source_url,
            "metadata": dict(self.metadata),
        }


@dataclass
class AnswerReference:
    """A source, related resource or affiliated product cited by an answer."""

    title: str = ""
    url: str = ""
    authors: list[str] = field(default_factory=list)
    content_type: str = ""
    product_id: str = ""
    excerpt: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "url": self.url, "authors": list(self.authors)}
        if self.content_type:
            data["content_type"] = self.content_type
        if self.product_id:
            data["product_id"] = self.product_id
        if self.excerpt:
            data["excerpt"] = self.excerpt
        return data


@dataclass
class Answer:
    """O'Reilly Answers response."""

    question_id: str
    question: str = ""
    is_finished: bool = False
    answer: str = ""
    sources: list[AnswerReference] = field(default_factory=list)
    related_resources: list[AnswerReference] = field(default_factory=list)
    affiliation_products: list[AnswerReference] = field(default_factory=list)
    followup_questions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question": self.question,
            "is_finished": self.is_finished,
            "answer": self.answer,
            "sources": [s.to_dict() for s in self.sources],
            "related_resources": [r.to_dict() for r in self.related_resources],
            "affiliation_products": [p.to_dict() for p in self.affiliation_products],
            "followup_questions": list(self.followup_questions),
        }
