"""Tests for the research history store, keywords and recorder."""

import json
import os
import stat
import threading
from datetime import datetime, timedelta, timezone

import pytest

from orm_discovery.application.history import (
    HistoryStore,
    ResearchRecorder,
    extract_keywords,
    generate_entry_id,
)
from orm_discovery.domain.entities import (
    Answer,
    AnswerReference,
    CanonicalResult,
    EntryType,
    HistoryIndex,
    ResearchEntry,
)
from orm_discovery.shared.exceptions import InvalidParameterError, PersistenceError


def _entry(query: str, entry_type: EntryType = EntryType.SEARCH, **kwargs) -> ResearchEntry:
    return ResearchEntry(type=entry_type, query=query, **kwargs)


@pytest.fixture
def store(temp_dir):
    return HistoryStore(temp_dir / "state" / "research-history.json", max_entries=50)


class TestExtractKeywords:
    def test_stop_words_and_short_tokens_removed(self):
        assert extract_keywords("How do I use Docker with Kubernetes?") == ["use", "docker", "kubernetes"]

    def test_deduplicated_in_order(self):
        assert extract_keywords("Go go GO rust go") == ["go", "rust"]

    def test_punctuation_splits(self):
        assert extract_keywords("ci/cd pipelines, k8s-operators") == ["ci", "cd", "pipelines", "k8s", "operators"]

    def test_empty(self):
        assert extract_keywords("") == []
        assert extract_keywords("the a an") == []


class TestAddEntry:
    def test_fills_id_timestamp_keywords(self, store):
        stored = store.add_entry(_entry("Docker networking basics"))
        assert stored.id.startswith("req_")
        assert stored.timestamp is not None
        assert stored.timestamp.tzinfo is not None
        assert stored.keywords == ["docker", "networking", "basics"]
        assert store.get_by_id(stored.id) == stored

    def test_keeps_explicit_values(self, store):
        ts = datetime(2025, 1, 2, 3, 4, 5)
        stored = store.add_entry(_entry("x", id="req_custom", timestamp=ts, keywords=["given"]))
        assert stored.id == "req_custom"
        assert stored.timestamp == ts.replace(tzinfo=timezone.utc)
        assert stored.keywords == ["given"]

    def test_explicit_keywords_lowercased_and_deduplicated(self, store):
        stored = store.add_entry(_entry("x", keywords=["Docker", " docker ", "K8s", ""]))
        assert stored.keywords == ["docker", "k8s"]
        assert [e.id for e in store.search_by_keyword("docker")] == [stored.id]
        assert [e.id for e in store.search_by_keyword("DOCKER")] == [stored.id]
        assert "Docker" not in store.index_snapshot().by_keyword

    def test_duplicate_id_rejected(self, store):
        store.add_entry(_entry("first", id="req_same"))
        with pytest.raises(InvalidParameterError):
            store.add_entry(_entry("second", id="req_same"))
        assert len(store) == 1

    def test_invalid_capacity(self, temp_dir):
        with pytest.raises(InvalidParameterError):
            HistoryStore(temp_dir / "h.json", max_entries=0)

    def test_generated_ids_unique(self):
        assert len({generate_entry_id() for _ in range(200)}) == 200


class TestPruning:
    def test_capacity_keeps_newest(self, temp_dir):
        store = HistoryStore(temp_dir / "h.json", max_entries=5)
        for letter in "ABCDEFGHIJ":
            store.add_entry(_entry(f"query {letter}"))

        assert len(store) == 5
        assert [e.query for e in store.get_recent(10)] == [f"query {c}" for c in "JIHGF"]

    def test_no_dangling_index_ids(self, temp_dir):
        store = HistoryStore(temp_dir / "h.json", max_entries=3)
        for i in range(10):
            store.add_entry(_entry(f"kubernetes topic{i}"))

        live = {e.id for e in store.get_recent(10)}
        index = store.index_snapshot()
        assert index.referenced_ids() == live
        assert "topic0" not in index.by_keyword
        assert len(index.by_keyword["kubernetes"]) == 3


class TestQueries:
    def test_recent_is_newest_first(self, store):
        base = datetime(2025, 6, 1, tzinfo=timezone.utc)
        store.add_entry(_entry("old", timestamp=base))
        store.add_entry(_entry("newer", timestamp=base + timedelta(days=2)))
        store.add_entry(_entry("middle", timestamp=base + timedelta(days=1)))
        assert [e.query for e in store.get_recent(3)] == ["newer", "middle", "old"]
        assert [e.query for e in store.get_recent(1)] == ["newer"]
        assert store.get_recent(0) == []

    def test_keyword_is_exact_token(self, store):
        store.add_entry(_entry("Dockerfile basics"))
        hit = store.add_entry(_entry("docker compose"))
        assert store.search_by_keyword("docker") == [hit]
        assert store.search_by_keyword("DOCKER") == [hit]
        assert store.search_by_keyword("dock") == []
        assert store.search_by_keyword("  ") == []

    def test_by_type(self, store):
        search = store.add_entry(_entry("rust"))
        question = store.add_entry(_entry("what is rust", EntryType.QUESTION))
        assert store.search_by_type("search") == [search]
        assert store.search_by_type(EntryType.QUESTION) == [question]
        assert store.search_by_type("Question") == [question]

    def test_unknown_type(self, store):
        with pytest.raises(InvalidParameterError):
            store.search_by_type("podcast")

    def test_by_date(self, store):
        entry = store.add_entry(_entry("dated", timestamp=datetime(2025, 3, 14, 9, tzinfo=timezone.utc)))
        assert store.search_by_date("2025-03-14") == [entry]
        assert store.search_by_date("2025-03-15") == []

    def test_combined_search(self, store):
        store.add_entry(_entry("python packaging"))
        q = store.add_entry(_entry("python typing", EntryType.QUESTION))
        store.add_entry(_entry("go modules"))
        assert store.search(keyword="python", entry_type="question") == [q]
        assert len(store.search(keyword="python")) == 2
        assert len(store.search(limit=2)) == 2
        assert len(store.search()) == 3

    def test_unknown_id(self, store):
        assert store.get_by_id("req_missing") is None

    def test_stats(self, store):
        store.add_entry(_entry("a1 b1"))
        store.add_entry(_entry("a1", EntryType.QUESTION))
        stats = store.stats()
        assert stats["total_entries"] == 2
        assert stats["max_entries"] == 50
        assert stats["by_type"] == {"search": 1, "question": 1}
        assert stats["keywords"] == 2
        assert stats["last_updated"] is not None


class TestPersistence:
    def test_missing_file_is_empty(self, store):
        store.load()
        assert len(store) == 0

    def test_round_trip(self, store):
        first = store.add_entry(_entry("persist me", parameters={"rows": 10}, full_response={"results": []}))
        store.save()

        reloaded = HistoryStore(store.path, max_entries=50)
        reloaded.load()
        assert len(reloaded) == 1
        entry = reloaded.get_by_id(first.id)
        assert entry.query == "persist me"
        assert entry.parameters == {"rows": 10}
        assert entry.full_response == {"results": []}
        assert reloaded.search_by_keyword("persist") == [entry]

    def test_snapshot_layout(self, store):
        store.add_entry(_entry("layout"))
        store.save()
        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert set(data) == {"version", "last_updated", "entries", "index"}
        assert set(data["index"]) == {"by_keyword", "by_type", "by_date"}

    def test_file_is_owner_only(self, store):
        store.add_entry(_entry("secret research"))
        store.save()
        assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o600

    def test_corrupt_file(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.load()

    def test_invalid_snapshot(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"entries": [{"query": "no type"}]}), encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.load()

    def test_stale_index_rebuilt_on_load(self, store):
        store.add_entry(_entry("rebuild index"))
        store.save()
        data = json.loads(store.path.read_text(encoding="utf-8"))
        data["index"] = {"by_keyword": {"ghost": ["req_gone"]}, "by_type": {}, "by_date": {}}
        store.path.write_text(json.dumps(data), encoding="utf-8")

        store.load()
        index = store.index_snapshot()
        assert "ghost" not in index.by_keyword
        assert index == HistoryIndex.build(store.get_recent(10))

    def test_hand_edited_keywords_lowercased_on_load(self, store):
        store.add_entry(_entry("compose files", id="req_edit"))
        store.save()
        data = json.loads(store.path.read_text(encoding="utf-8"))
        data["entries"][0]["keywords"] = ["Compose", "COMPOSE", "Files"]
        store.path.write_text(json.dumps(data), encoding="utf-8")

        store.load()
        assert store.get_by_id("req_edit").keywords == ["compose", "files"]
        assert [e.id for e in store.search_by_keyword("Compose")] == ["req_edit"]

    def test_load_prunes_to_capacity(self, store, temp_dir):
        for i in range(6):
            store.add_entry(_entry(f"entry{i}"))
        store.save()

        small = HistoryStore(store.path, max_entries=2)
        small.load()
        assert [e.query for e in small.get_recent(10)] == ["entry5", "entry4"]


class TestConcurrency:
    def test_concurrent_adds_and_reads(self, temp_dir):
        store = HistoryStore(temp_dir / "h.json", max_entries=100)
        errors: list[Exception] = []

        def writer(n: int) -> None:
            try:
                for i in range(20):
                    store.add_entry(_entry(f"writer{n} item{i}"))
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        def reader() -> None:
            try:
                for _ in range(50):
                    store.get_recent(10)
                    store.search_by_keyword("item1")
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(store) == 80
        assert store.index_snapshot().referenced_ids() == {e.id for e in store.get_recent(100)}


class TestResearchRecorder:
    def test_record_search(self, store):
        recorder = ResearchRecorder(store, top_results=2)
        results = [
            CanonicalResult(id="1", title="One", authors=["A"]),
            CanonicalResult(id="2", title="Two"),
            CanonicalResult(id="3", title="Three"),
        ]
        entry = recorder.record_search("kubernetes", results, parameters={"rows": 3}, duration_ms=12)

        assert entry.type is EntryType.SEARCH
        assert entry.tool_name == "search_content"
        assert entry.result_summary.count == 3
        assert [r.title for r in entry.result_summary.top_results] == ["One", "Two"]
        assert entry.result_summary.top_results[0].author == "A"
        assert len(entry.full_response["results"]) == 3
        assert store.path.exists()

    def test_stored_results_capped(self, store):
        results = [CanonicalResult(id=str(i), title=f"Book {i}") for i in range(10)]
        entry = ResearchRecorder(store, max_stored_results=4).record_search("many", results)

        assert entry.result_summary.count == 10
        assert [r["id"] for r in entry.full_response["results"]] == ["0", "1", "2", "3"]

    def test_record_empty_search(self, store):
        entry = ResearchRecorder(store).record_search("nothing here", [])
        assert entry.result_summary.count == 0
        assert entry.full_response == {"results": []}

    def test_record_question(self, store):
        answer = Answer(
            question_id="q-1",
            answer="word " * 100,
            sources=[AnswerReference(title="S")],
            followup_questions=["next?", "and?"],
        )
        entry = ResearchRecorder(store, preview_chars=20).record_question("what is a pod", answer)

        assert entry.type is EntryType.QUESTION
        assert entry.result_summary.answer_preview.endswith("...")
        assert len(entry.result_summary.answer_preview) <= 23
        assert entry.result_summary.sources_count == 1
        assert entry.result_summary.followup_count == 2
        assert entry.full_response["question_id"] == "q-1"

    def test_save_failure_keeps_entry_in_memory(self, temp_dir):
        blocker = temp_dir / "not-a-dir"
        blocker.write_text("file", encoding="utf-8")
        store = HistoryStore(blocker / "research-history.json")

        entry = ResearchRecorder(store).record_search("still recorded", [])
        assert entry is not None
        assert store.get_by_id(entry.id) is entry

    def test_add_failure_returns_none(self, store):
        recorder = ResearchRecorder(store, autosave=False)
        recorder.record_search("first", [])
        store.add_entry(_entry("taken", id="req_taken"))

        duplicate = ResearchEntry(type=EntryType.SEARCH, query="dup", id="req_taken")
        assert recorder._record(duplicate) is None
