"""
Research Recorder - turn completed operations into history entries.

Recording is best effort: a failed write is logged and the in-memory
history stays authoritative. Callers never see a history error.
The async client calls the recorder from a worker thread. Search entries keep at most
``max_stored_results`` full records; the summary count is the real total.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from orm_discovery.domain.entities import (
    EntryType,
    ResearchEntry,
    ResultSummary,
    TopResult,
)
from orm_discovery.shared.exceptions import ORMDiscoveryError

if TYPE_CHECKING:
    from orm_discovery.domain.entities import Answer, CanonicalResult

    from .store import HistoryStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_RESULTS = 5
DEFAULT_PREVIEW_CHARS = 200
DEFAULT_MAX_STORED_RESULTS = 100


def preview(text: str, limit: int = DEFAULT_PREVIEW_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


class ResearchRecorder:
    """Appends search and question results to a :class:`HistoryStore`."""

    def __init__(
        self,
        store: HistoryStore,
        *,
        top_results: int = DEFAULT_TOP_RESULTS,
        preview_chars: int = DEFAULT_PREVIEW_CHARS,
        max_stored_results: int = DEFAULT_MAX_STORED_RESULTS,
        autosave: bool = True,
    ) -> None:
        self._store = store
        self._top_results = top_results
        self._preview_chars = preview_chars
        self._max_stored_results = max_stored_results
        self._autosave = autosave

    @property
    def store(self) -> HistoryStore:
        return self._store

    def record_search(
        self,
        query: str,
        results: list[CanonicalResult],
        *,
        tool_name: str = "search_content",
        parameters: dict[str, Any] | None = None,
        duration_ms: int = 0,
    ) -> ResearchEntry | None:
        summary = ResultSummary(
            count=len(results),
            top_results=[
                TopResult(
                    title=r.title,
                    author=r.authors[0] if r.authors else "",
                    product_id=r.id,
                )
                for r in results[: self._top_results]
            ],
        )
        entry = ResearchEntry(
            type=EntryType.SEARCH,
            query=query,
            tool_name=tool_name,
            parameters=dict(parameters or {}),
            result_summary=summary,
            full_response={"results": [r.to_dict() for r in results[: self._max_stored_results]]},
            duration_ms=duration_ms,
        )
        return self._record(entry)

    def record_question(
        self,
        question: str,
        answer: Answer,
        *,
        tool_name: str = "ask_question",
        parameters: dict[str, Any] | None = None,
        duration_ms: int = 0,
    ) -> ResearchEntry | None:
        summary = ResultSummary(
            answer_preview=preview(answer.answer, self._preview_chars),
            sources_count=len(answer.sources),
            followup_count=len(answer.followup_questions),
        )
        entry = ResearchEntry(
            type=EntryType.QUESTION,
            query=question,
            tool_name=tool_name,
            parameters=dict(parameters or {}),
            result_summary=summary,
            full_response=answer.to_dict(),
            duration_ms=duration_ms,
        )
        return self._record(entry)

    def _record(self, entry: ResearchEntry) -> ResearchEntry | None:
        try:
            stored = self._store.add_entry(entry)
        except ORMDiscoveryError as e:
            logger.warning(f"Could not record research entry for '{entry.query}': {e}")
            return None

        if self._autosave:
            try:
                self._store.save()
            except ORMDiscoveryError as e:
                logger.warning(f"Research history kept in memory only: {e}")
        logger.debug(f"Recorded {entry.type.value} entry {stored.id}")
        return stored
