"""
Platform HTTP Client - cookie-authenticated httpx client for the learning platform.

Provides:
- Browser-matching headers and the session's cookies on every request
- Status code -> typed exception mapping
- Bounded retry with exponential backoff for transient failures (timeouts,
  connection errors, 429, 5xx)

Status mapping:
    401 / 403, or redirect to a login page -> SessionExpiredError
    404                                    -> ContentNotFoundError
    429 / 5xx                              -> TransientNetworkError (retried)
    other non-2xx                          -> APIError
    undecodable JSON                       -> ParseError
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import httpx
from typing_extensions import Self

from orm_discovery.infrastructure.auth.cookies import cookie_header
from orm_discovery.shared.exceptions import (
    APIError,
    ContentNotFoundError,
    ORMDiscoveryError,
    ParseError,
    SessionExpiredError,
    TransientNetworkError,
    get_retry_delay,
)

if TYPE_CHECKING:
    from orm_discovery.infrastructure.auth.session_manager import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = "https://learning.oreilly.com"


class PlatformHTTPClient:
    """
    Authenticated request layer shared by all content operations.

    The client holds no credentials of its own: cookies and user agent are
    read from the session manager at request time.
    """

    _service_name: str = "O'Reilly"

    def __init__(
        self,
        session: SessionManager,
        *,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._session = session
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        *,
        referer: str | None = None,
    ) -> Any:
        response = await self._request("GET", url, params=params, accept="application/json", referer=referer)
        return self._parse_json(response)

    async def post_json(
        self,
        url: str,
        body: dict[str, Any],
        *,
        referer: str | None = None,
    ) -> Any:
        response = await self._request("POST", url, json_body=body, accept="application/json", referer=referer)
        return self._parse_json(response)

    async def get_text(self, url: str, *, referer: str | None = None) -> str:
        response = await self._request("GET", url, accept="text/html,application/xhtml+xml", referer=referer)
        return response.text

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _headers(self, url: str, *, method: str, accept: str, referer: str | None) -> dict[str, str]:
        headers = {
            "User-Agent": self._session.user_agent,
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.9",
            "X-Requested-With": "XMLHttpRequest",
        }
        cookies = cookie_header(self._session.cookies(), url)
        if cookies:
            headers["Cookie"] = cookies
        if referer:
            headers["Referer"] = referer
        if method == "POST":
            headers["Origin"] = DEFAULT_ORIGIN
            headers["Content-Type"] = "application/json"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        accept: str,
        referer: str | None = None,
    ) -> httpx.Response:
        for attempt in range(self._max_retries + 1):
            headers = self._headers(url, method=method, accept=accept, referer=referer)
            error: ORMDiscoveryError | None
            cause: Exception | None = None
            try:
                response = await self._client.request(method, url, params=params, json=json_body, headers=headers)
            except httpx.TimeoutException as e:
                error = TransientNetworkError(f"{self._service_name}: request to {url} timed out")
                cause = e
            except httpx.TransportError as e:
                error = TransientNetworkError(f"{self._service_name}: connection error for {url}: {e}")
                cause = e
            else:
                error = self._error_for_response(response, url)
                if error is None:
                    return response
                if not error.retryable:
                    raise error

            if attempt >= self._max_retries:
                raise error from cause
            delay = get_retry_delay(error, attempt, self._retry_base_delay)
            logger.warning(
                f"{self._service_name}: {error} (attempt {attempt + 1}/{self._max_retries + 1}), "
                f"retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

        raise RuntimeError("Unexpected retry loop exit")

    def _error_for_response(self, response: httpx.Response, url: str) -> ORMDiscoveryError | None:
        status = response.status_code

        # Expired sessions are sometimes answered with a redirect to the login page.
        if response.history and "/login" in urlsplit(str(response.url)).path:
            return SessionExpiredError(
                "Redirected to login page",
                status_code=response.history[0].status_code,
                url=url,
            )
        if 200 <= status < 300:
            return None
        if status in (401, 403):
            return SessionExpiredError(status_code=status, url=url)
        if status == 404:
            return ContentNotFoundError("Resource", urlsplit(url).path)
        if status == 429:
            return TransientNetworkError(
                f"{self._service_name}: rate limited (HTTP 429)",
                status_code=status,
                retry_after=self._retry_after(response),
            )
        if status >= 500:
            return TransientNetworkError(
                f"{self._service_name}: server error (HTTP {status})",
                status_code=status,
            )
        return APIError(f"{self._service_name}: request failed with HTTP {status}", status_code=status)

    @staticmethod
    def _retry_after(response: httpx.Response) -> float | None:
        try:
            return float(response.headers["Retry-After"])
        except (KeyError, ValueError):
            return None

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            content_type = response.headers.get("content-type", "")
            raise ParseError(
                f"{self._service_name}: expected JSON from {response.url}, got {content_type or 'unknown content'}"
            ) from e

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
