"""
History Store - durable, indexed record of searches and questions.

The whole history is one JSON snapshot (``research-history.json``) loaded
once at startup and rewritten on every save. Entries are kept oldest-first;
three secondary indices (keyword, type, date) map keys to entry ids and are
updated together with the entry list so they never reference a missing entry.

Thread safety:
    Reads share the store; ``add_entry``, ``save`` and ``load`` are exclusive.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from orm_discovery.domain.entities import (
    EntryType,
    HistoryIndex,
    ResearchEntry,
    ResearchHistory,
)
from orm_discovery.shared.exceptions import InvalidParameterError, PersistenceError

from .keywords import extract_keywords, normalize_keywords

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000
HISTORY_FILENAME = "research-history.json"
ENTRY_ID_PREFIX = "req_"


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextlib.contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextlib.contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def generate_entry_id() -> str:
    return f"{ENTRY_ID_PREFIX}{uuid.uuid4().hex[:8]}"


def parse_entry_type(value: EntryType | str) -> EntryType:
    if isinstance(value, EntryType):
        return value
    try:
        return EntryType(value.strip().lower())
    except ValueError as e:
        allowed = ", ".join(t.value for t in EntryType)
        raise InvalidParameterError("entry_type", value, f"must be one of: {allowed}") from e


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


class HistoryStore:
    """
    Indexed research history with bounded capacity.

    Usage:
        store = HistoryStore(state_dir / HISTORY_FILENAME, max_entries=500)
        store.load()
        entry = store.add_entry(ResearchEntry(type=EntryType.SEARCH, query="docker"))
        store.save()
        store.search_by_keyword("docker")
    """

    def __init__(self, file_path: str | Path, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise InvalidParameterError("max_entries", max_entries, "must be at least 1")
        self._path = Path(file_path)
        self._max_entries = max_entries
        self._history = ResearchHistory()
        self._by_id: dict[str, ResearchEntry] = {}
        self._lock = ReadWriteLock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._history.entries)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        Load the snapshot from disk.

        A missing file yields an empty version-1 history.

        Raises:
            PersistenceError: If the file cannot be read or is not a valid snapshot.
        """
        with self._lock.write():
            if not self._path.exists():
                logger.info(f"No research history at {self._path}, starting empty")
                self._history = ResearchHistory()
                self._by_id = {}
                return

            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except OSError as e:
                raise PersistenceError(f"Cannot read research history: {e}", path=str(self._path)) from e
            except json.JSONDecodeError as e:
                raise PersistenceError(f"Corrupt research history file: {e}", path=str(self._path)) from e

            try:
                history = ResearchHistory.from_dict(raw)
                history.entries = [replace(e, keywords=normalize_keywords(e.keywords)) for e in history.entries]
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise PersistenceError(f"Invalid research history snapshot: {e}", path=str(self._path)) from e

            rebuilt = HistoryIndex.build(history.entries)
            if rebuilt != history.index:
                logger.warning("Research history index was out of sync with entries; rebuilt")
            history.index = rebuilt

            self._history = history
            self._by_id = {entry.id: entry for entry in history.entries}
            self._prune_locked()
            logger.info(f"Loaded {len(history.entries)} research history entries from {self._path}")

    def save(self) -> None:
        """
        Write the whole history atomically with owner-only permissions.

        Raises:
            PersistenceError: If the snapshot cannot be written.
        """
        with self._lock.write():
            data = self._history.to_dict()
            directory = self._path.parent
            tmp_path: str | None = None
            try:
                directory.mkdir(parents=True, exist_ok=True, mode=0o700)
                fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".research-history-", suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.chmod(tmp_path, 0o600)
                os.replace(tmp_path, self._path)
            except (OSError, TypeError, ValueError) as e:
                if tmp_path is not None:
                    with contextlib.suppress(OSError):
                        os.unlink(tmp_path)
                raise PersistenceError(f"Cannot write research history: {e}", path=str(self._path)) from e
            logger.debug(f"Saved {len(self._history.entries)} research history entries")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_entry(self, entry: ResearchEntry) -> ResearchEntry:
        """
        Append an entry, filling ``id``, ``timestamp`` and ``keywords`` when
        absent, then evict the oldest entries beyond capacity.

        Returns:
            The stored entry.
        """
        with self._lock.write():
            if entry.id and entry.id in self._by_id:
                raise InvalidParameterError("id", entry.id, "an entry with this id already exists")

            entry_id = entry.id or self._new_id_locked()
            now = datetime.now(timezone.utc)
            stored = replace(
                entry,
                id=entry_id,
                timestamp=_as_utc(entry.timestamp) if entry.timestamp else now,
                keywords=normalize_keywords(entry.keywords) or extract_keywords(entry.query),
            )

            self._history.entries.append(stored)
            self._history.index.add(stored)
            self._history.last_updated = now
            self._by_id[entry_id] = stored
            self._prune_locked()
            return stored

    def _new_id_locked(self) -> str:
        entry_id = generate_entry_id()
        while entry_id in self._by_id:
            entry_id = generate_entry_id()
        return entry_id

    def _prune_locked(self) -> None:
        excess = len(self._history.entries) - self._max_entries
        if excess <= 0:
            return
        evicted = self._history.entries[:excess]
        del self._history.entries[:excess]
        for entry in evicted:
            self._history.index.remove(entry)
            self._by_id.pop(entry.id, None)
        logger.debug(f"Pruned {len(evicted)} oldest research history entries")

    # ------------------------------------------------------------------
    # Queries (all newest-first)
    # ------------------------------------------------------------------

    def _newest_first(self, entries: Iterable[ResearchEntry]) -> list[ResearchEntry]:
        position = {entry.id: i for i, entry in enumerate(self._history.entries)}
        return sorted(
            entries,
            key=lambda e: (e.timestamp or datetime.min.replace(tzinfo=timezone.utc), position.get(e.id, -1)),
            reverse=True,
        )

    def _resolve_ids(self, ids: Iterable[str]) -> list[ResearchEntry]:
        return [self._by_id[i] for i in ids if i in self._by_id]

    def get_recent(self, n: int = 20) -> list[ResearchEntry]:
        if n <= 0:
            return []
        with self._lock.read():
            return self._newest_first(self._history.entries)[:n]

    def search_by_keyword(self, keyword: str) -> list[ResearchEntry]:
        """Entries whose derived keywords contain ``keyword`` (exact token, case-insensitive)."""
        token = keyword.strip().lower()
        if not token:
            return []
        with self._lock.read():
            return self._newest_first(self._resolve_ids(self._history.index.by_keyword.get(token, [])))

    def search_by_type(self, entry_type: EntryType | str) -> list[ResearchEntry]:
        value = parse_entry_type(entry_type).value
        with self._lock.read():
            return self._newest_first(self._resolve_ids(self._history.index.by_type.get(value, [])))

    def search_by_date(self, date_key: str) -> list[ResearchEntry]:
        with self._lock.read():
            return self._newest_first(self._resolve_ids(self._history.index.by_date.get(date_key, [])))

    def get_by_id(self, entry_id: str) -> ResearchEntry | None:
        with self._lock.read():
            return self._by_id.get(entry_id)

    def search(
        self,
        keyword: str | None = None,
        entry_type: EntryType | str | None = None,
        limit: int = 20,
    ) -> list[ResearchEntry]:
        """Entries matching every given filter, newest-first, at most ``limit``."""
        if keyword:
            matches = self.search_by_keyword(keyword)
        else:
            matches = self.get_recent(len(self))
        if entry_type:
            wanted = parse_entry_type(entry_type)
            matches = [entry for entry in matches if entry.type is wanted]
        return matches[:limit] if limit > 0 else matches

    def stats(self) -> dict[str, Any]:
        with self._lock.read():
            entries = self._history.entries
            return {
                "total_entries": len(entries),
                "max_entries": self._max_entries,
                "by_type": {key: len(ids) for key, ids in self._history.index.by_type.items()},
                "keywords": len(self._history.index.by_keyword),
                "last_updated": (
                    self._history.last_updated.isoformat() if self._history.last_updated else None
                ),
            }

    def index_snapshot(self) -> HistoryIndex:
        """Copy of the current indices."""
        with self._lock.read():
            return HistoryIndex.from_dict(self._history.index.to_dict())
