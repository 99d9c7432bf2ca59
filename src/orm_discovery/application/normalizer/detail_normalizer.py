"""
Detail Normalizer - book detail, table of contents and Answers payloads.
"""

from __future__ import annotations

from typing import Any

from orm_discovery.domain.entities import (
    Answer,
    AnswerReference,
    BookDetail,
    TableOfContents,
    TocItem,
    Topic,
)

from .raw import RawPayload, payload_items
from .result_normalizer import (
    AUTHORS_CHAIN,
    DESCRIPTION_CHAIN,
    PUBLISHED_DATE_CHAIN,
    TITLE_CHAIN,
    absolute_url,
)
from .rules import text_chain

BOOK_ID_CHAIN = text_chain("id", "identifier", "id", "product_id", "ourn", "isbn")
TOC_ITEM_TITLE_CHAIN = text_chain("title", "title", "label", "name")
TOC_ITEM_HREF_CHAIN = text_chain("href", "href", "url", "full_path")

_TOC_ITEM_FIELDS = frozenset({"id", "title", "label", "name", "href", "url", "full_path", "level", "depth", "parent"})


def normalize_book_detail(body: Any, *, source: str = "api_book_detail") -> BookDetail | None:
    """Book detail record, or ``None`` when the body is not an object."""
    payload = RawPayload(body)
    if not payload:
        return None
    return BookDetail(
        id=BOOK_ID_CHAIN.first(payload, ""),
        title=TITLE_CHAIN.first(payload, ""),
        description=DESCRIPTION_CHAIN.first(payload, ""),
        url=absolute_url(payload.text("url")),
        web_url=absolute_url(payload.text("web_url")),
        authors=list(AUTHORS_CHAIN.first(payload, [])),
        publishers=payload.names("publishers"),
        isbn=payload.text("isbn"),
        virtual_pages=payload.integer("virtual_pages"),
        average_rating=payload.number("average_rating") or 0.0,
        cover=payload.text("cover"),
        issued=PUBLISHED_DATE_CHAIN.first(payload, ""),
        topics=[
            Topic(name=t.text("name"), slug=t.text("slug"), score=t.number("score") or 0.0)
            for t in payload.objects("topics")
            if t.text("name")
        ],
        language=payload.text("language"),
        source=source,
    )


def _toc_item(payload: RawPayload, position: int) -> TocItem:
    parent = payload.text("parent") or payload.nested("parent").text("id")
    level = payload.integer("level", default=payload.integer("depth"))
    return TocItem(
        id=payload.text("id") or f"toc-item-{position}",
        title=TOC_ITEM_TITLE_CHAIN.first(payload, ""),
        href=TOC_ITEM_HREF_CHAIN.first(payload, ""),
        level=level,
        parent=parent,
        metadata=payload.scalars(exclude=_TOC_ITEM_FIELDS),
    )


def normalize_toc(book_id: str, body: Any) -> TableOfContents | None:
    """
    Table of contents from either response shape of the flat-toc endpoint:
    a bare array of items, or an object with ``toc_items``.
    """
    if isinstance(body, list):
        items = payload_items(body)
        return TableOfContents(
            book_id=book_id,
            items=[_toc_item(item, i + 1) for i, item in enumerate(items)],
            extraction_method="api_flat_toc_array",
        )

    payload = RawPayload(body)
    if not payload.is_list("toc_items"):
        return None
    return TableOfContents(
        book_id=payload.text("book_id") or book_id,
        book_title=payload.text("book_title") or payload.text("title"),
        items=[_toc_item(item, i + 1) for i, item in enumerate(payload.objects("toc_items"))],
        extraction_method="api_flat_toc",
    )


def _reference(payload: RawPayload) -> AnswerReference:
    return AnswerReference(
        title=payload.text("title"),
        url=absolute_url(payload.text("url")),
        authors=payload.names("authors"),
        content_type=payload.text("content_type"),
        product_id=payload.text("product_id"),
        excerpt=payload.text("excerpt"),
    )


def question_id_from(body: Any) -> str:
    """Question id from a question submission response."""
    payload = RawPayload(body)
    return payload.text("question_id") or payload.text("id")


def normalize_answer(body: Any, *, question: str = "") -> Answer | None:
    """Answer record, or ``None`` when the body carries no question id."""
    payload = RawPayload(body)
    question_id = question_id_from(body)
    if not question_id:
        return None
    data = payload.path("miso_response", "data")
    return Answer(
        question_id=question_id,
        question=question or payload.text("question"),
        is_finished=payload.flag("is_finished"),
        answer=data.text("answer"),
        sources=[_reference(s) for s in data.objects("sources")],
        related_resources=[_reference(r) for r in data.objects("related_resources")],
        affiliation_products=[_reference(p) for p in data.objects("affiliation_products")],
        followup_questions=data.texts("followup_questions"),
    )
