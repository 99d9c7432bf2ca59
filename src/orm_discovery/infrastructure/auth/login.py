"""
Interactive login flow.

Steps:
1. Open the member login page and submit the account identifier.
2. Wait until one of the credential strategies recognises the page the
   browser was sent to (same-domain password form or an institutional
   identity provider), chosen by hostname.
3. Submit the credentials through that strategy.
4. Poll the URL until it looks authenticated, or fail fast on error pages.

Every wait is a deadline-bound condition poll; there are no fixed sleeps.
Supporting a new identity provider means adding one ``CredentialStrategy``.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from orm_discovery.shared.async_utils import poll_until
from orm_discovery.shared.exceptions import AuthenticationError, LoginTimeoutError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

LOGIN_URL = "https://www.oreilly.com/member/login/"
EMAIL_INPUT = 'input[name="email"]'
CONTINUE_BUTTON = '.orm-Button-root, button[type="submit"]'

AUTHENTICATED_URL_PATTERNS = (
    re.compile(r"://learning\.oreilly\.com"),
    re.compile(r"oreilly\.com/home"),
    re.compile(r"oreilly\.com/member"),
)
LOGIN_PAGE_PATTERN = re.compile(r"/login", re.IGNORECASE)
ERROR_URL_PATTERNS = (
    re.compile(r"error", re.IGNORECASE),
    re.compile(r"denied", re.IGNORECASE),
)


def is_error_url(url: str) -> bool:
    return any(p.search(url) for p in ERROR_URL_PATTERNS)


def is_authenticated_url(url: str) -> bool:
    if LOGIN_PAGE_PATTERN.search(urlsplit(url).path):
        return False
    return any(p.search(url) for p in AUTHENTICATED_URL_PATTERNS)


def local_part(identifier: str) -> str:
    """``jane@acm.org`` -> ``jane``."""
    return identifier.split("@", 1)[0]


async def _visible(page: Any, selector: str) -> Any | None:
    handle = await page.query_selector(selector)
    if handle is None or not await handle.is_visible():
        return None
    return handle


@dataclass(frozen=True)
class CredentialStrategy:
    """
    One way of submitting credentials, selected by hostname.

    Attributes:
        name: Identifier used in logs
        host_pattern: Regex matched against the current hostname
        password_selector: CSS selector of the password field
        submit_selector: CSS selector of the submit button
        username_selector: CSS selector of a username field, if the page has one
        derive_username: Maps the account identifier to the username field value
    """

    name: str
    host_pattern: re.Pattern[str]
    password_selector: str
    submit_selector: str
    username_selector: str | None = None
    derive_username: Callable[[str], str] = local_part

    def matches_host(self, url: str) -> bool:
        return bool(self.host_pattern.search(urlsplit(url).hostname or ""))

    async def ready(self, page: Any) -> bool:
        """Whether the current page is this strategy's credential form."""
        if not self.matches_host(page.url):
            return False
        return await _visible(page, self.password_selector) is not None

    async def submit(self, page: Any, identifier: str, secret: str) -> None:
        if self.username_selector:
            username_field = await page.query_selector(self.username_selector)
            if username_field is None:
                raise AuthenticationError(f"{self.name}: username field not found", url=page.url)
            await username_field.fill(self.derive_username(identifier))

        password_field = await page.query_selector(self.password_selector)
        if password_field is None:
            raise AuthenticationError(f"{self.name}: password field not found", url=page.url)
        await password_field.fill(secret)

        button = await page.query_selector(self.submit_selector)
        if button is None:
            raise AuthenticationError(f"{self.name}: submit button not found", url=page.url)
        await button.click()


DIRECT_PASSWORD = CredentialStrategy(
    name="direct-password",
    host_pattern=re.compile(r"(^|\.)oreilly\.com$"),
    password_selector='input[name="password"], input[type="password"]',
    submit_selector='.orm-Button-root, button[type="submit"]',
)

ACM_IDP = CredentialStrategy(
    name="acm-idp",
    host_pattern=re.compile(r"^idp\.acm\.org$"),
    username_selector='input[placeholder*="username"]',
    password_selector='input[placeholder*="password"]',
    submit_selector=".btn",
)

SHIBBOLETH_IDP = CredentialStrategy(
    name="shibboleth-idp",
    host_pattern=re.compile(r"^(idp|sso|shibboleth)\."),
    username_selector='input[name="j_username"], input[name="username"]',
    password_selector='input[name="j_password"], input[type="password"]',
    submit_selector='button[type="submit"], input[type="submit"]',
)

DEFAULT_STRATEGIES: tuple[CredentialStrategy, ...] = (DIRECT_PASSWORD, ACM_IDP, SHIBBOLETH_IDP)


class LoginFlow:
    """Drives the login pages of a Playwright ``Page``."""

    def __init__(
        self,
        strategies: Sequence[CredentialStrategy] = DEFAULT_STRATEGIES,
        *,
        login_url: str = LOGIN_URL,
        poll_interval: float = 0.5,
    ) -> None:
        self._strategies = tuple(strategies)
        self._login_url = login_url
        self._poll_interval = poll_interval

    @property
    def strategies(self) -> tuple[CredentialStrategy, ...]:
        return self._strategies

    async def run(self, page: Any, identifier: str, secret: str, *, timeout: float = 60.0) -> str:
        """
        Log in and return the authenticated URL reached.

        Raises:
            AuthenticationError: On an error/denied page or a missing form element.
            LoginTimeoutError: If no authenticated page is reached within ``timeout``.
        """
        deadline = time.monotonic() + timeout

        def remaining() -> float:
            return max(deadline - time.monotonic(), 0.0)

        try:
            logger.info("Opening login page")
            await page.goto(self._login_url, wait_until="domcontentloaded")

            email_field = await poll_until(
                lambda: _visible(page, EMAIL_INPUT),
                timeout=remaining(),
                interval=self._poll_interval,
                description="email field",
            )
            await email_field.fill(identifier)
            continue_button = await page.query_selector(CONTINUE_BUTTON)
            if continue_button is None:
                raise AuthenticationError("Continue button not found on login page", url=page.url)
            await continue_button.click()

            strategy = await poll_until(
                lambda: self._select_strategy(page),
                timeout=remaining(),
                interval=self._poll_interval,
                description="credential form",
            )
            logger.info(f"Submitting credentials via '{strategy.name}' ({urlsplit(page.url).hostname})")
            await strategy.submit(page, identifier, secret)

            final_url = await poll_until(
                lambda: self._check_outcome(page),
                timeout=remaining(),
                interval=self._poll_interval,
                description="authenticated page",
            )
        except TimeoutError as e:
            raise LoginTimeoutError(timeout, url=page.url) from e

        logger.info(f"Login reached {urlsplit(final_url).hostname}")
        return final_url

    async def _select_strategy(self, page: Any) -> CredentialStrategy | None:
        url = page.url
        if is_error_url(url):
            raise AuthenticationError("Login rejected by identity provider", url=url)
        for strategy in self._strategies:
            if await strategy.ready(page):
                return strategy
        return None

    async def _check_outcome(self, page: Any) -> str | None:
        url = page.url
        if is_error_url(url):
            raise AuthenticationError("Login rejected by identity provider", url=url)
        if is_authenticated_url(url):
            return url
        return None
