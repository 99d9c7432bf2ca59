"""
Content Client - authenticated read operations against the learning platform.

Operations:
    search              -> list[CanonicalResult]   (endpoint fallback)
    get_detail          -> BookDetail
    get_substructure    -> TableOfContents
    get_leaf_content    -> ChapterContent
    ask_question        -> Answer                  (submit + poll)
    get_answer          -> Answer

Every operation validates its input before any network call and then runs
its requests through ``_call_with_reauth``: a request rejected with 401/403
invalidates the session, re-authenticates once and repeats the same request
once. A second rejection is raised.

Search fallback:
    Candidates are tried in priority order. Transient errors, API errors,
    unparseable bodies and empty result lists move on to the next candidate.
    The first non-empty result list wins. If nothing was found the last
    error is raised, or ``[]`` when every candidate answered empty.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from orm_discovery.application.normalizer import (
    RawPayload,
    normalize_answer,
    normalize_book_detail,
    normalize_search_response,
    normalize_toc,
    question_id_from,
)
from orm_discovery.domain.entities import ChapterContent
from orm_discovery.shared.async_utils import poll_until
from orm_discovery.shared.exceptions import (
    APIError,
    ContentNotFoundError,
    ErrorContext,
    InvalidParameterError,
    InvalidQueryError,
    ORMDiscoveryError,
    ParseError,
    SessionExpiredError,
    TransientNetworkError,
)

from .endpoints import (
    ANSWER_FILTER_QUERY,
    ANSWER_SOURCE_FIELDS,
    ANSWERS_REFERER,
    LEARNING_BASE_URL,
    QUESTIONS_URL,
    SEARCH_ENDPOINTS,
    SEARCH_REFERER,
    SearchEndpoint,
    book_detail_url,
    book_page_url,
    book_toc_url,
    chapter_file_url,
    chapter_metadata_url,
    question_url,
)
from .html_parser import parse_chapter_html

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from orm_discovery.application.history import ResearchRecorder
    from orm_discovery.domain.entities import Answer, BookDetail, CanonicalResult, TableOfContents
    from orm_discovery.infrastructure.auth import SessionManager
    from orm_discovery.infrastructure.http import PlatformHTTPClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ROWS = 100
MAX_ROWS = 1000
DEFAULT_MAX_WAIT = 300.0
ANSWER_POLL_INTERVAL = 2.0
ANSWER_POLL_BACKOFF = 1.2
ANSWER_POLL_MAX_INTERVAL = 10.0
SNIPPET_LENGTH = 500
HIGHLIGHT_LENGTH = 200


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _require_identifier(name: str, value: str, example: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidParameterError(name, value, "must not be empty", example=example)
    if "/" in value:
        raise InvalidParameterError(name, value, "must not contain '/'", example=example)
    return value


class ContentClient:
    """Search, detail, table of contents, chapter text and Answers for the platform."""

    def __init__(
        self,
        session: SessionManager,
        http: PlatformHTTPClient,
        *,
        recorder: ResearchRecorder | None = None,
        search_endpoints: Sequence[SearchEndpoint] = SEARCH_ENDPOINTS,
        answer_poll_interval: float = ANSWER_POLL_INTERVAL,
        answer_poll_max_interval: float = ANSWER_POLL_MAX_INTERVAL,
    ) -> None:
        self._session = session
        self._http = http
        self._recorder = recorder
        self._search_endpoints = tuple(search_endpoints)
        self._answer_poll_interval = answer_poll_interval
        self._answer_poll_max_interval = answer_poll_max_interval

    # ------------------------------------------------------------------
    # Authentication wrapper
    # ------------------------------------------------------------------

    async def _call_with_reauth(self, operation: Callable[[], Awaitable[T]]) -> T:
        await self._session.ensure_authenticated()
        generation = self._session.generation
        try:
            return await operation()
        except SessionExpiredError as e:
            logger.info(f"Request rejected ({e}), re-authenticating once")
            self._session.invalidate(generation)
            await self._session.ensure_authenticated()
            return await operation()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        rows: int = DEFAULT_ROWS,
        *,
        tz_offset: int = -9,
        aia_only: bool = False,
        feature_flags: str = "improveSearchFilters",
        report: bool = True,
        is_topics: bool = False,
    ) -> list[CanonicalResult]:
        """
        Search the catalogue, trying each candidate endpoint in order.

        Args:
            query: Free-text query, must not be blank
            rows: Maximum number of results (1-1000)

        Returns:
            Canonical results from the first endpoint that returned any,
            truncated to ``rows``.

        Raises:
            InvalidQueryError / InvalidParameterError: Before any request.
            AuthenticationError: If no session can be established.
            ORMDiscoveryError: The last endpoint error when nothing was found.
        """
        query = (query or "").strip()
        if not query:
            raise InvalidQueryError(query)
        if isinstance(rows, bool) or not isinstance(rows, int) or not 1 <= rows <= MAX_ROWS:
            raise InvalidParameterError("rows", rows, f"must be an integer between 1 and {MAX_ROWS}", example="rows=25")

        params: dict[str, Any] = {
            "q": query,
            "rows": rows,
            "tzOffset": tz_offset,
            "aia_only": _flag(aia_only),
            "feature_flags": feature_flags,
            "report": _flag(report),
            "isTopics": _flag(is_topics),
        }

        started = time.monotonic()
        results: list[CanonicalResult] = []
        last_error: ORMDiscoveryError | None = None

        for endpoint in self._search_endpoints:
            try:
                found = await self._search_endpoint(endpoint, params)
            except ContentNotFoundError:
                raise
            except (SessionExpiredError, TransientNetworkError, APIError, ParseError) as e:
                logger.warning(f"Search endpoint {endpoint.name} failed: {e}")
                last_error = e
                continue
            if found:
                results = found[:rows]
                logger.info(f"Search '{query}' -> {len(results)} results via {endpoint.name}")
                break
            logger.debug(f"Search endpoint {endpoint.name} returned no results")

        if not results and last_error is not None:
            raise last_error

        duration_ms = int((time.monotonic() - started) * 1000)
        if self._recorder is not None:
            await asyncio.to_thread(
                self._recorder.record_search,
                query,
                results,
                parameters={"rows": rows},
                duration_ms=duration_ms,
            )
        return results

    async def _search_endpoint(self, endpoint: SearchEndpoint, params: dict[str, Any]) -> list[CanonicalResult]:
        body = await self._call_with_reauth(
            lambda: self._http.get_json(endpoint.url, params, referer=SEARCH_REFERER)
        )
        results = normalize_search_response(body, source=f"api_search:{endpoint.name}")
        if results is None:
            raise ParseError(f"Search endpoint {endpoint.name} returned an unrecognised payload")
        return results

    # ------------------------------------------------------------------
    # Book detail / table of contents / chapter
    # ------------------------------------------------------------------

    async def _get_json(self, url: str, *, resource: str, identifier: str, referer: str | None = None) -> Any:
        try:
            return await self._call_with_reauth(lambda: self._http.get_json(url, referer=referer))
        except ContentNotFoundError as e:
            raise ContentNotFoundError(resource, identifier) from e

    async def get_detail(self, book_id: str) -> BookDetail:
        """Book metadata from ``/api/v1/book/{id}/``."""
        book_id = _require_identifier("book_id", book_id, "book_id='9781098166298'")
        body = await self._get_json(book_detail_url(book_id), resource="Book", identifier=book_id)
        detail = normalize_book_detail(body)
        if detail is None:
            raise ParseError(f"Book detail for {book_id} is not a JSON object")
        if not detail.id:
            detail.id = book_id
        if not detail.url:
            detail.url = book_page_url(book_id)
        return detail

    async def get_substructure(self, book_id: str) -> TableOfContents:
        """Flat table of contents from ``/api/v1/book/{id}/flat-toc/``."""
        book_id = _require_identifier("book_id", book_id, "book_id='9781098166298'")
        body = await self._get_json(book_toc_url(book_id), resource="Table of contents", identifier=book_id)
        toc = normalize_toc(book_id, body)
        if toc is None:
            raise ParseError(f"Table of contents for {book_id} has an unrecognised shape")
        logger.info(f"Table of contents for {book_id}: {toc.total_chapters} items")
        return toc

    async def get_leaf_content(self, book_id: str, chapter: str) -> ChapterContent:
        """
        Chapter text parsed into headings, paragraphs, code blocks, images and links.

        The chapter metadata names the content URL; when it does not, the
        EPUB file URL for the chapter is used instead.
        """
        book_id = _require_identifier("book_id", book_id, "book_id='9781098166298'")
        chapter = _require_identifier("chapter_name", chapter, "chapter_name='ch01'")
        if chapter.endswith(".html"):
            chapter = chapter[: -len(".html")]

        identifier = f"{book_id}/{chapter}"
        body = await self._get_json(
            chapter_metadata_url(book_id, chapter),
            resource="Chapter",
            identifier=identifier,
        )
        metadata = RawPayload(body)
        content_url = metadata.text("content")
        if content_url.startswith("/"):
            content_url = LEARNING_BASE_URL + content_url
        if not content_url:
            content_url = chapter_file_url(book_id, chapter)
            logger.info(f"Chapter metadata has no content URL, using {content_url}")

        try:
            html = await self._call_with_reauth(
                lambda: self._http.get_text(content_url, referer=book_page_url(book_id))
            )
        except ContentNotFoundError as e:
            raise ContentNotFoundError("Chapter", identifier) from e

        parsed = parse_chapter_html(html)
        chapter_title = (
            parsed.title
            or next((h.text for h in parsed.headings if h.text), "")
            or metadata.text("title")
            or chapter
        )
        logger.info(
            f"Chapter {identifier}: {len(parsed.paragraphs)} paragraphs, "
            f"{len(parsed.headings)} headings, {len(parsed.code_blocks)} code blocks"
        )
        return ChapterContent(
            book_id=book_id,
            chapter_name=chapter,
            chapter_title=chapter_title,
            content=parsed,
            source_url=content_url,
            metadata={
                "extraction_method": "html_parsing",
                "processed_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "word_count": parsed.word_count,
                "book_title": metadata.text("book_title"),
                "minutes_required": metadata.number("minutes_required"),
                "virtual_pages": metadata.integer("virtual_pages"),
            },
        )

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    async def ask_question(self, question: str, max_wait: float = DEFAULT_MAX_WAIT) -> Answer:
        """
        Submit a natural-language question and wait for the generated answer.

        Raises:
            TransientNetworkError: If the answer is not finished within ``max_wait``.
                The question id is kept in the error context so the answer can
                be fetched later with ``get_answer``.
        """
        question = (question or "").strip()
        if not question:
            raise InvalidQueryError(question, "Question must not be empty")
        if max_wait <= 0:
            raise InvalidParameterError("max_wait", max_wait, "must be positive", example="max_wait=300")

        started = time.monotonic()
        request = {
            "question": question,
            "fq": ANSWER_FILTER_QUERY,
            "source_fl": list(ANSWER_SOURCE_FIELDS),
            "related_resource_fl": list(ANSWER_SOURCE_FIELDS),
            "_pipeline_config": {
                "snippet_length": SNIPPET_LENGTH,
                "highlight_length": HIGHLIGHT_LENGTH,
            },
        }
        body = await self._call_with_reauth(
            lambda: self._http.post_json(QUESTIONS_URL, request, referer=ANSWERS_REFERER)
        )
        question_id = question_id_from(body)
        if not question_id:
            raise ParseError("Question submission response carried no question id")
        logger.info(f"Question submitted: {question_id}")

        async def finished_answer() -> Answer | None:
            try:
                answer = await self._fetch_answer(question_id, question=question)
            except (TransientNetworkError, APIError, ParseError, ContentNotFoundError) as e:
                logger.warning(f"Answer poll for {question_id} failed, retrying: {e}")
                return None
            if answer.is_finished:
                return answer
            logger.debug(f"Answer {question_id} still generating ({time.monotonic() - started:.0f}s)")
            return None

        try:
            answer = await poll_until(
                finished_answer,
                timeout=max_wait,
                interval=self._answer_poll_interval,
                max_interval=self._answer_poll_max_interval,
                backoff=ANSWER_POLL_BACKOFF,
                description=f"answer {question_id}",
            )
        except TimeoutError as e:
            raise TransientNetworkError(
                f"Answer {question_id} not finished within {max_wait:.0f}s",
                context=ErrorContext(
                    operation="ask_question",
                    input_value=question_id,
                    suggestion=f"Fetch it later with get_question_answer(question_id='{question_id}')",
                ),
            ) from e

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Answer {question_id} finished in {duration_ms}ms with {len(answer.sources)} sources")
        if self._recorder is not None:
            await asyncio.to_thread(
                self._recorder.record_question,
                question,
                answer,
                parameters={"max_wait": max_wait, "question_id": question_id},
                duration_ms=duration_ms,
            )
        return answer

    async def get_answer(self, question_id: str) -> Answer:
        """Current state of a previously submitted question, finished or not."""
        question_id = _require_identifier("question_id", question_id, "question_id='3b1f...'")
        try:
            return await self._fetch_answer(question_id)
        except ContentNotFoundError as e:
            raise ContentNotFoundError("Question", question_id) from e

    async def _fetch_answer(self, question_id: str, *, question: str = "") -> Answer:
        body = await self._call_with_reauth(
            lambda: self._http.get_json(
                question_url(question_id),
                {"include_unfinished": "true"},
                referer=ANSWERS_REFERER,
            )
        )
        answer = normalize_answer(body, question=question)
        if answer is None:
            raise ParseError(f"Answer payload for {question_id} carried no question id")
        return answer
