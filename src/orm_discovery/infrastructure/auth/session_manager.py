"""
Session Manager - authenticated identity for the learning platform.

State machine::

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED -> EXPIRED -> REAUTHENTICATING
                                              ^                            |
                                              +----------------------------+

A failed (re)authentication returns to UNAUTHENTICATED and the error is
raised to every caller waiting on it.

Authentication is single-flight: the first caller starts one login task and
every concurrent caller awaits that same task, sharing its result. Cached
cookies are validated with a cheap probe request before the browser is
started; an explicit ``invalidate()`` skips the cache on the next attempt.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

import httpx
from playwright.async_api import Error as PlaywrightError

from orm_discovery.shared.exceptions import (
    AuthenticationError,
    LoginTimeoutError,
    PersistenceError,
)

from .browser import DEFAULT_USER_AGENT, BrowserDriver
from .cookies import Cookie, cookie_header, session_cookies
from .login import LoginFlow

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .cookies import CookieCache

logger = logging.getLogger(__name__)

PROBE_URL = "https://learning.oreilly.com/home/"
DEFAULT_LOGIN_TIMEOUT = 60.0


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    REAUTHENTICATING = "reauthenticating"


class SessionManager:
    """
    Owns the cookie set used by every platform request.

    Usage:
        manager = SessionManager(user_id, password, CookieCache(cache_dir))
        await manager.ensure_authenticated()
        headers = {"Cookie": cookie_header(manager.cookies(), url)}
        ...
        await manager.close()
    """

    def __init__(
        self,
        user_id: str | None,
        password: str | None,
        cookie_cache: CookieCache,
        *,
        login_flow: LoginFlow | None = None,
        browser_factory: Callable[[], BrowserDriver] | None = None,
        http_client: httpx.AsyncClient | None = None,
        login_timeout: float = DEFAULT_LOGIN_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        probe_url: str = PROBE_URL,
        keep_browser: bool = False,
    ) -> None:
        self._user_id = user_id
        self._password = password
        self._cookie_cache = cookie_cache
        self._login_flow = login_flow or LoginFlow()
        self._browser_factory = browser_factory or (lambda: BrowserDriver(user_agent=user_agent))
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=15.0)
        self._login_timeout = login_timeout
        self._user_agent = user_agent
        self._probe_url = probe_url
        self._keep_browser = keep_browser

        self._lock = asyncio.Lock()
        self._inflight: asyncio.Task[None] | None = None
        self._browser: BrowserDriver | None = None
        self._state = SessionState.UNAUTHENTICATED
        self._cookies: tuple[Cookie, ...] = ()
        self._generation = 0
        self._authenticated_at: datetime | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        """Incremented on every successful authentication."""
        return self._generation

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def authenticated_at(self) -> datetime | None:
        return self._authenticated_at

    def cookies(self) -> tuple[Cookie, ...]:
        """Snapshot of the current cookie set."""
        return self._cookies

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def ensure_authenticated(self) -> None:
        """
        Return once a usable session exists.

        Raises:
            AuthenticationError: If the cached cookies are unusable and the
                interactive login fails or times out.
        """
        if self._closed:
            raise AuthenticationError("Session manager is closed")
        if self._state is SessionState.AUTHENTICATED:
            return

        async with self._lock:
            if self._state is SessionState.AUTHENTICATED:
                return
            if self._inflight is None or self._inflight.done():
                self._inflight = asyncio.create_task(self._authenticate(), name="orm-authenticate")
                self._inflight.add_done_callback(self._on_authenticate_done)
            task = self._inflight

        # Cancelling one waiter must not cancel the login shared by the others.
        await asyncio.shield(task)

    def invalidate(self, generation: int | None = None) -> None:
        """
        Mark the session expired so the next ``ensure_authenticated`` logs in
        again without trying the cookie cache.

        Args:
            generation: The ``generation`` the caller's rejected request used.
                Ignored when a newer session has already replaced it.
        """
        if self._inflight is not None and not self._inflight.done():
            logger.debug("Invalidate ignored: authentication already in progress")
            return
        if generation is not None and generation != self._generation:
            logger.debug(f"Invalidate ignored: generation {generation} already replaced by {self._generation}")
            return
        logger.info(f"Session invalidated (was {self._state.value})")
        self._state = SessionState.EXPIRED
        self._cookies = ()

    async def close(self) -> None:
        """Release the browser and HTTP connections. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True

        task = self._inflight
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._owns_http:
                await self._http.aclose()
            self._state = SessionState.UNAUTHENTICATED
            self._cookies = ()
        logger.info("Session manager closed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_authenticate_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f"Authentication task failed: {error!r}")

    async def _authenticate(self) -> None:
        force_login = self._state is SessionState.EXPIRED
        self._state = SessionState.REAUTHENTICATING if force_login else SessionState.AUTHENTICATING
        try:
            if not force_login:
                cached = self._load_cached_cookies()
                if cached and await self._probe(cached):
                    self._activate(cached, via="cookie cache")
                    return
            cookies = await self._interactive_login()
            self._activate(cookies, via="interactive login")
            self._persist(cookies)
        except BaseException:
            self._state = SessionState.UNAUTHENTICATED
            self._cookies = ()
            raise

    def _activate(self, cookies: Sequence[Cookie], *, via: str) -> None:
        self._cookies = tuple(cookies)
        self._generation += 1
        self._authenticated_at = datetime.now(timezone.utc)
        self._state = SessionState.AUTHENTICATED
        logger.info(f"Authenticated via {via} ({len(self._cookies)} cookies)")
        logger.debug(f"Session cookies: {', '.join(sorted(c.name for c in self._cookies))}")

    def _load_cached_cookies(self) -> list[Cookie]:
        try:
            return self._cookie_cache.load()
        except PersistenceError as e:
            logger.warning(f"Ignoring unreadable cookie cache: {e}")
            return []

    def _persist(self, cookies: Sequence[Cookie]) -> None:
        try:
            self._cookie_cache.save(cookies)
        except PersistenceError as e:
            logger.warning(f"Session cookies kept in memory only: {e}")

    async def _probe(self, cookies: Sequence[Cookie]) -> bool:
        """A GET of the home page succeeds (200, no redirect) only with valid cookies."""
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/xhtml+xml",
            "Cookie": cookie_header(cookies, self._probe_url),
        }
        try:
            response = await self._http.get(self._probe_url, headers=headers, follow_redirects=False)
        except httpx.HTTPError as e:
            logger.warning(f"Session probe failed: {e}")
            return False
        if response.status_code == 200:
            logger.info("Cached cookies accepted by session probe")
            return True
        logger.info(f"Cached cookies rejected by session probe (HTTP {response.status_code})")
        self._discard_cached_cookies()
        return False

    def _discard_cached_cookies(self) -> None:
        try:
            self._cookie_cache.delete()
        except OSError as e:
            logger.warning(f"Could not remove rejected cookie cache: {e}")

    async def _interactive_login(self) -> list[Cookie]:
        if not self._user_id or not self._password:
            raise AuthenticationError(
                "Interactive login required but OREILLY_USER_ID / OREILLY_PASSWORD are not set"
            )

        if self._browser is not None:
            await self._browser.close()
        driver = self._browser_factory()
        self._browser = driver
        try:
            async with asyncio.timeout(self._login_timeout):
                page = await driver.start()
                await self._login_flow.run(page, self._user_id, self._password, timeout=self._login_timeout)
                cookies = session_cookies(await driver.cookies())
        except TimeoutError as e:
            raise LoginTimeoutError(self._login_timeout) from e
        except PlaywrightError as e:
            raise AuthenticationError(f"Browser error during login: {e}") from e
        finally:
            if not self._keep_browser:
                await driver.close()
                self._browser = None

        if not cookies:
            raise AuthenticationError("Login finished but no session cookies were issued")
        return cookies
