"""Tests for the DI container and service wiring."""

from __future__ import annotations

from dependency_injector import providers

from conftest import FakeSession
from orm_discovery.application.history import HistoryStore, ResearchRecorder
from orm_discovery.config import Settings
from orm_discovery.container import ApplicationContainer
from orm_discovery.domain.entities import EntryType, ResearchEntry
from orm_discovery.infrastructure.auth import CookieCache, SessionManager
from orm_discovery.infrastructure.http import PlatformHTTPClient
from orm_discovery.infrastructure.oreilly import ContentClient


def _container(temp_dir, **overrides) -> ApplicationContainer:
    settings = Settings(
        user_id="user@example.com",
        password="pw",
        cache_dir=temp_dir / "cache",
        state_dir=temp_dir / "state",
        **overrides,
    )
    container = ApplicationContainer()
    container.config.from_dict(settings.as_container_config())
    return container


class TestApplicationContainer:
    """Test the DI container manages services correctly."""

    def test_config(self, temp_dir) -> None:
        container = _container(temp_dir, login_timeout=30.0)
        assert container.config.user_id() == "user@example.com"
        assert container.config.login_timeout() == 30.0
        assert container.config.history_path() == str(temp_dir / "state" / "research-history.json")

    def test_service_types(self, temp_dir) -> None:
        container = _container(temp_dir)
        assert isinstance(container.cookie_cache(), CookieCache)
        assert isinstance(container.session_manager(), SessionManager)
        assert isinstance(container.http_client(), PlatformHTTPClient)
        assert isinstance(container.history_store(), HistoryStore)
        assert isinstance(container.recorder(), ResearchRecorder)
        assert isinstance(container.content_client(), ContentClient)

    def test_singletons(self, temp_dir) -> None:
        container = _container(temp_dir)
        assert container.session_manager() is container.session_manager()
        assert container.content_client() is container.content_client()
        assert container.recorder().store is container.history_store()

    def test_cookie_cache_location(self, temp_dir) -> None:
        container = _container(temp_dir)
        assert container.cookie_cache().path == temp_dir / "cache" / "orm-mcp-cookies.json"

    def test_history_capacity(self, temp_dir) -> None:
        container = _container(temp_dir, history_max_entries=7)
        assert container.history_store().max_entries == 7

    def test_existing_history_loaded(self, temp_dir) -> None:
        path = temp_dir / "state" / "research-history.json"
        store = HistoryStore(path)
        store.add_entry(ResearchEntry(type=EntryType.SEARCH, query="persisted"))
        store.save()

        loaded = _container(temp_dir).history_store()
        assert [e.query for e in loaded.get_recent(5)] == ["persisted"]

    def test_corrupt_history_moved_aside(self, temp_dir) -> None:
        path = temp_dir / "state" / "research-history.json"
        path.parent.mkdir(parents=True)
        path.write_text("{corrupt", encoding="utf-8")

        store = _container(temp_dir).history_store()

        assert len(store) == 0
        assert not path.exists()
        assert (temp_dir / "state" / "research-history.json.corrupt").read_text(encoding="utf-8") == "{corrupt"

    def test_override_session_manager(self, temp_dir) -> None:
        """Container supports provider overriding for tests."""
        container = _container(temp_dir)
        fake = FakeSession()
        container.session_manager.override(providers.Object(fake))

        client = container.content_client()
        assert client._session is fake

        container.session_manager.reset_override()
