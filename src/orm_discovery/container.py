"""
Application DI Container (dependency-injector).

Centralizes service creation and lifecycle management.

Usage::

    from orm_discovery.config import Settings
    from orm_discovery.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict(Settings.from_env().as_container_config())

    client = container.content_client()
    store = container.history_store()

    # In tests - override any provider:
    container.session_manager.override(providers.Object(fake_session))
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dependency_injector import containers, providers

logger = logging.getLogger(__name__)


def _create_cookie_cache(cache_dir: str) -> object:
    from orm_discovery.infrastructure.auth import CookieCache

    return CookieCache(cache_dir)


def _create_session_manager(
    user_id: str | None,
    password: str | None,
    cookie_cache: object,
    login_timeout: float,
    debug: bool,
) -> object:
    from orm_discovery.infrastructure.auth import SessionManager

    return SessionManager(
        user_id,
        password,
        cookie_cache,  # type: ignore[arg-type]
        login_timeout=login_timeout,
        keep_browser=bool(debug),
    )


def _create_http_client(session_manager: object) -> object:
    from orm_discovery.infrastructure.http import PlatformHTTPClient

    return PlatformHTTPClient(session_manager)  # type: ignore[arg-type]


def _create_history_store(history_path: str, max_entries: int) -> object:
    """Load the history snapshot; an unusable file is moved aside and history starts empty."""
    from orm_discovery.application.history import HistoryStore
    from orm_discovery.shared.exceptions import PersistenceError

    store = HistoryStore(history_path, max_entries=max_entries)
    try:
        store.load()
    except PersistenceError as e:
        path = Path(history_path)
        aside = path.with_name(path.name + ".corrupt")
        try:
            os.replace(path, aside)
        except OSError as move_error:
            logger.warning(f"Could not move unreadable history aside: {move_error}")
        else:
            logger.warning(f"Moved unreadable history to {aside}")
        logger.warning(f"Research history starts empty: {e}")
    else:
        logger.info(f"Research history loaded: {len(store)} entries from {history_path}")
    return store


def _create_recorder(history_store: object) -> object:
    from orm_discovery.application.history import ResearchRecorder

    return ResearchRecorder(history_store)  # type: ignore[arg-type]


def _create_content_client(session_manager: object, http_client: object, recorder: object) -> object:
    from orm_discovery.infrastructure.oreilly import ContentClient

    return ContentClient(session_manager, http_client, recorder=recorder)  # type: ignore[arg-type]


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the ORM Discovery MCP application.

    Manages creation and lifecycle of all core services:
    - ``cookie_cache``: persisted session cookies
    - ``session_manager``: login and single-flight re-authentication
    - ``http_client``: cookie-authenticated httpx client
    - ``history_store`` / ``recorder``: research history
    - ``content_client``: search, books, chapters and Answers
    """

    config = providers.Configuration()

    cookie_cache = providers.Singleton(
        _create_cookie_cache,
        cache_dir=config.cache_dir,
    )

    session_manager = providers.Singleton(
        _create_session_manager,
        user_id=config.user_id,
        password=config.password,
        cookie_cache=cookie_cache,
        login_timeout=config.login_timeout,
        debug=config.debug,
    )

    http_client = providers.Singleton(
        _create_http_client,
        session_manager=session_manager,
    )

    history_store = providers.Singleton(
        _create_history_store,
        history_path=config.history_path,
        max_entries=config.history_max_entries,
    )

    recorder = providers.Singleton(
        _create_recorder,
        history_store=history_store,
    )

    content_client = providers.Singleton(
        _create_content_client,
        session_manager=session_manager,
        http_client=http_client,
        recorder=recorder,
    )


__all__ = ["ApplicationContainer"]
