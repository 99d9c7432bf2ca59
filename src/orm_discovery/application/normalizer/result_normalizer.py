"""
Result Normalizer - map heterogeneous search payloads to CanonicalResult.

Each canonical field has an ordered fallback chain over the field-name
variants seen across the platform's search endpoints. The first variant
present and non-empty wins; otherwise the field stays empty. Functions here
are pure: the same payload always yields the same record.

Usage:
    from orm_discovery.application.normalizer import normalize_search_response

    results = normalize_search_response(body, source="api_search:v2")
"""

from __future__ import annotations

import logging
from typing import Any

from orm_discovery.domain.entities import CanonicalResult, ContentType

from .raw import RawPayload
from .rules import FallbackChain, FieldRule, text_chain, text_rule

logger = logging.getLogger(__name__)

LEARNING_BASE_URL = "https://learning.oreilly.com"

VIDEO_LABELS = frozenset({"video", "videos", "course", "live-event", "live-event-series"})
BOOK_LABELS = frozenset({"book", "books", "ebook", "e-book"})
ARTICLE_LABELS = frozenset({"article", "articles", "blog", "blog-post", "report", "shortcut"})


def _single_author(payload: RawPayload) -> list[str]:
    name = payload.text("author") or payload.nested("author").text("name")
    return [name] if name else []


def _first_publisher(payload: RawPayload) -> str:
    names = payload.names("publishers")
    return names[0] if names else ""


# =============================================================================
# Field chains
# =============================================================================

ID_CHAIN = text_chain("id", "product_id", "id", "ourn", "isbn")

TITLE_CHAIN = text_chain("title", "title", "name", "display_title", "product_name")

AUTHORS_CHAIN: FallbackChain[list[str]] = FallbackChain(
    "authors",
    (
        FieldRule("authors", lambda p: p.names("authors")),
        FieldRule("author", _single_author),
        FieldRule("creators", lambda p: p.names("creators")),
        FieldRule("author_names", lambda p: p.texts("author_names")),
    ),
)

CONTENT_TYPE_CHAIN = text_chain("content_type", "content_type", "type", "format", "product_type")

DESCRIPTION_CHAIN = text_chain(
    "description",
    "description",
    "summary",
    "excerpt",
    "description_with_markups",
    "short_description",
)

URL_CHAIN = text_chain("url", "web_url", "url", "learning_url", "link")

PUBLISHER_CHAIN: FallbackChain[str] = FallbackChain(
    "publisher",
    (
        FieldRule("publisher", lambda p: p.text("publisher") or p.nested("publisher").text("name")),
        FieldRule("publishers", _first_publisher),
        text_rule("imprint"),
        text_rule("publisher_name"),
    ),
)

PUBLISHED_DATE_CHAIN = text_chain(
    "published_date",
    "published_date",
    "publication_date",
    "date_published",
    "pub_date",
    "issued",
)

# Where the list of hits lives in a search response, by priority.
RESULT_LIST_CHAIN: FallbackChain[list[RawPayload]] = FallbackChain(
    "results",
    (
        FieldRule("data.products", lambda p: p.nested("data").objects("products")),
        FieldRule("results", lambda p: p.objects("results")),
        FieldRule("items", lambda p: p.objects("items")),
        FieldRule("hits", lambda p: p.objects("hits")),
    ),
)


# =============================================================================
# Field functions
# =============================================================================


def normalize_id(payload: RawPayload) -> str:
    return ID_CHAIN.first(payload, "")


def normalize_title(payload: RawPayload) -> str:
    return TITLE_CHAIN.first(payload, "")


def normalize_authors(payload: RawPayload) -> list[str]:
    return list(AUTHORS_CHAIN.first(payload, []))


def normalize_description(payload: RawPayload) -> str:
    return DESCRIPTION_CHAIN.first(payload, "")


def normalize_publisher(payload: RawPayload) -> str:
    return PUBLISHER_CHAIN.first(payload, "")


def normalize_published_date(payload: RawPayload) -> str:
    return PUBLISHED_DATE_CHAIN.first(payload, "")


def absolute_url(url: str, base_url: str = LEARNING_BASE_URL) -> str:
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return f"{base_url}{url}"
    return url


def normalize_url(payload: RawPayload, base_url: str = LEARNING_BASE_URL) -> str:
    """
    URL from the first URL-like field; otherwise synthesized from the
    product id. Relative paths are resolved against ``base_url``.
    """
    url = URL_CHAIN.first(payload, "")
    if url:
        return absolute_url(url, base_url)
    product_id = payload.text("product_id") or payload.text("isbn")
    if product_id:
        return f"{base_url}/library/view/-/{product_id}/"
    return ""


def content_type_from_label(label: str) -> ContentType:
    token = label.strip().lower()
    if token in VIDEO_LABELS or "video" in token:
        return ContentType.VIDEO
    if token in BOOK_LABELS:
        return ContentType.BOOK
    if token in ARTICLE_LABELS:
        return ContentType.ARTICLE
    return ContentType.UNKNOWN


def content_type_from_url(url: str) -> ContentType:
    if "/video" in url:
        return ContentType.VIDEO
    if "/library/view/" in url or "/book/" in url:
        return ContentType.BOOK
    return ContentType.UNKNOWN


def normalize_content_type(payload: RawPayload, url: str = "") -> ContentType:
    """Explicit type field when present, URL pattern otherwise."""
    label = CONTENT_TYPE_CHAIN.first(payload, "")
    if label:
        return content_type_from_label(label)
    return content_type_from_url(url)


# =============================================================================
# Records
# =============================================================================


def normalize_search_result(
    payload: RawPayload,
    *,
    source: str,
    base_url: str = LEARNING_BASE_URL,
) -> CanonicalResult:
    url = normalize_url(payload, base_url)
    return CanonicalResult(
        id=normalize_id(payload),
        title=normalize_title(payload),
        authors=normalize_authors(payload),
        content_type=normalize_content_type(payload, url),
        description=normalize_description(payload),
        url=url,
        publisher=normalize_publisher(payload),
        published_date=normalize_published_date(payload),
        source=source,
    )


def extract_result_items(body: Any) -> list[RawPayload] | None:
    """
    Hits of a search response.

    Returns ``None`` when the body has none of the known result lists (the
    response is not a search response), ``[]`` when a list is present but
    empty.
    """
    payload = RawPayload(body)
    items, rule = RESULT_LIST_CHAIN.resolve(payload)
    if items:
        logger.debug(f"Search results found under '{rule}' ({len(items)} items)")
        return items
    has_list = (
        payload.nested("data").is_list("products")
        or payload.is_list("results")
        or payload.is_list("items")
        or payload.is_list("hits")
    )
    return [] if has_list else None


def normalize_search_response(
    body: Any,
    *,
    source: str,
    base_url: str = LEARNING_BASE_URL,
) -> list[CanonicalResult] | None:
    """Normalize every hit of a search response; ``None`` if the shape is unrecognized."""
    items = extract_result_items(body)
    if items is None:
        return None
    return [normalize_search_result(item, source=source, base_url=base_url) for item in items]
