"""
Research History Entities - recorded searches and questions.

Key Entities:
    - ResearchEntry: One completed search or question
    - ResultSummary: Compact, type-specific summary of the result
    - HistoryIndex: Secondary indices (keyword, type, date) of entry ids
    - ResearchHistory: Aggregate persisted as a single JSON snapshot

Snapshot layout::

    {
      "version": 1,
      "last_updated": "2026-01-01T00:00:00+00:00",
      "entries": [...],
      "index": {"by_keyword": {...}, "by_type": {...}, "by_date": {...}}
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

HISTORY_VERSION = 1


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class EntryType(Enum):
    """Kind of recorded operation."""

    SEARCH = "search"
    QUESTION = "question"


@dataclass(frozen=True)
class TopResult:
    title: str = ""
    author: str = ""
    product_id: str = ""

    def to_dict(self) -> dict[str, str]:
        data = {"title": self.title}
        if self.author:
            data["author"] = self.author
        if self.product_id:
            data["product_id"] = self.product_id
        return data


@dataclass(frozen=True)
class ResultSummary:
    """
    Type-specific result summary.

    Search entries fill ``count`` and ``top_results``; question entries fill
    ``answer_preview``, ``sources_count`` and ``followup_count``.
    """

    count: int = 0
    top_results: list[TopResult] = field(default_factory=list)
    answer_preview: str = ""
    sources_count: int = 0
    followup_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.count:
            data["count"] = self.count
        if self.top_results:
            data["top_results"] = [r.to_dict() for r in self.top_results]
        if self.answer_preview:
            data["answer_preview"] = self.answer_preview
        if self.sources_count:
            data["sources_count"] = self.sources_count
        if self.followup_count:
            data["followup_count"] = self.followup_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultSummary:
        return cls(
            count=int(data.get("count", 0)),
            top_results=[
                TopResult(
                    title=r.get("title", ""),
                    author=r.get("author", ""),
                    product_id=r.get("product_id", ""),
                )
                for r in data.get("top_results", [])
            ],
            answer_preview=data.get("answer_preview", ""),
            sources_count=int(data.get("sources_count", 0)),
            followup_count=int(data.get("followup_count", 0)),
        )


@dataclass(frozen=True)
class ResearchEntry:
    """
    One recorded operation.

    ``id``, ``timestamp`` and ``keywords`` may be left empty by callers;
    the history store fills them when the entry is added.
    """

    type: EntryType
    query: str
    tool_name: str = ""
    id: str = ""
    timestamp: datetime | None = None
    keywords: list[str] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)
    result_summary: ResultSummary = field(default_factory=ResultSummary)
    full_response: Any = None
    duration_ms: int = 0

    @property
    def date_key(self) -> str:
        """Key used by the date index (``YYYY-MM-DD``)."""
        return self.timestamp.strftime("%Y-%m-%d") if self.timestamp else ""

    def to_dict(self, include_full_response: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "type": self.type.value,
            "query": self.query,
            "keywords": list(self.keywords),
            "tool_name": self.tool_name,
            "parameters": dict(self.parameters),
            "result_summary": self.result_summary.to_dict(),
            "duration_ms": self.duration_ms,
        }
        if include_full_response and self.full_response is not None:
            data["full_response"] = self.full_response
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResearchEntry:
        return cls(
            id=data.get("id", ""),
            timestamp=parse_timestamp(data.get("timestamp")),
            type=EntryType(data["type"]),
            query=data.get("query", ""),
            keywords=list(data.get("keywords") or []),
            tool_name=data.get("tool_name", ""),
            parameters=dict(data.get("parameters") or {}),
            result_summary=ResultSummary.from_dict(data.get("result_summary") or {}),
            full_response=data.get("full_response"),
            duration_ms=int(data.get("duration_ms", 0)),
        )


@dataclass
class HistoryIndex:
    """Secondary indices mapping keys to entry ids in insertion order."""

    by_keyword: dict[str, list[str]] = field(default_factory=dict)
    by_type: dict[str, list[str]] = field(default_factory=dict)
    by_date: dict[str, list[str]] = field(default_factory=dict)

    def _buckets(self, entry: ResearchEntry) -> list[tuple[dict[str, list[str]], str]]:
        buckets = [(self.by_keyword, kw) for kw in entry.keywords]
        buckets.append((self.by_type, entry.type.value))
        if entry.date_key:
            buckets.append((self.by_date, entry.date_key))
        return buckets

    def add(self, entry: ResearchEntry) -> None:
        for mapping, key in self._buckets(entry):
            ids = mapping.setdefault(key, [])
            if entry.id not in ids:
                ids.append(entry.id)

    def remove(self, entry: ResearchEntry) -> None:
        """Drop ``entry`` from every index, deleting keys left empty."""
        for mapping, key in self._buckets(entry):
            ids = mapping.get(key)
            if ids is None:
                continue
            if entry.id in ids:
                ids.remove(entry.id)
            if not ids:
                del mapping[key]

    def referenced_ids(self) -> set[str]:
        ids: set[str] = set()
        for mapping in (self.by_keyword, self.by_type, self.by_date):
            for values in mapping.values():
                ids.update(values)
        return ids

    @classmethod
    def build(cls, entries: list[ResearchEntry]) -> HistoryIndex:
        index = cls()
        for entry in entries:
            index.add(entry)
        return index

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        return {
            "by_keyword": {k: list(v) for k, v in self.by_keyword.items()},
            "by_type": {k: list(v) for k, v in self.by_type.items()},
            "by_date": {k: list(v) for k, v in self.by_date.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryIndex:
        return cls(
            by_keyword={k: list(v) for k, v in (data.get("by_keyword") or {}).items()},
            by_type={k: list(v) for k, v in (data.get("by_type") or {}).items()},
            by_date={k: list(v) for k, v in (data.get("by_date") or {}).items()},
        )


@dataclass
class ResearchHistory:
    """Aggregate of all recorded entries (oldest first) and their indices."""

    version: int = HISTORY_VERSION
    last_updated: datetime | None = None
    entries: list[ResearchEntry] = field(default_factory=list)
    index: HistoryIndex = field(default_factory=HistoryIndex)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "entries": [e.to_dict() for e in self.entries],
            "index": self.index.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResearchHistory:
        return cls(
            version=int(data.get("version", HISTORY_VERSION)),
            last_updated=parse_timestamp(data.get("last_updated")),
            entries=[ResearchEntry.from_dict(e) for e in data.get("entries") or []],
            index=HistoryIndex.from_dict(data.get("index") or {}),
        )
