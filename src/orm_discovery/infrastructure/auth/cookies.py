"""
Cookie model and on-disk cookie cache.

Cache file format (``orm-mcp-cookies.json``, mode 0600)::

    [
      {"name": "orm-jwt", "value": "...", "domain": ".oreilly.com", "path": "/",
       "expires": 1767225600.0, "secure": true, "http_only": true}
    ]

``expires`` is a Unix timestamp, or ``null`` for session cookies.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from orm_discovery.shared.exceptions import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

COOKIE_CACHE_FILENAME = "orm-mcp-cookies.json"

# Analytics cookies carry no session state and are never persisted.
TRACKING_COOKIES = frozenset(
    {
        "_ga",
        "_gid",
        "_gat",
        "_gtm",
        "_fbp",
        "_hjid",
        "_hjIncludedInPageviewSample",
        "optimizelyEndUserId",
        "__utma",
        "__utmb",
        "__utmc",
        "__utmt",
        "__utmz",
    }
)


@dataclass(frozen=True)
class Cookie:
    """One browser cookie."""

    name: str
    value: str
    domain: str = ""
    path: str = "/"
    expires: float | None = None
    secure: bool = False
    http_only: bool = False

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (time.time() if now is None else now)

    def matches(self, url: str) -> bool:
        """Whether a browser would send this cookie to ``url``."""
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
        domain = self.domain.lower().lstrip(".")
        if domain and host != domain and not host.endswith(f".{domain}"):
            return False
        if self.secure and parts.scheme != "https":
            return False
        path = parts.path or "/"
        cookie_path = self.path or "/"
        if path == cookie_path:
            return True
        # A prefix only counts when it ends on a path segment boundary.
        if not path.startswith(cookie_path):
            return False
        return cookie_path.endswith("/") or path[len(cookie_path)] == "/"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "secure": self.secure,
            "http_only": self.http_only,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cookie:
        expires = data.get("expires")
        return cls(
            name=str(data["name"]),
            value=str(data.get("value", "")),
            domain=str(data.get("domain", "")),
            path=str(data.get("path") or "/"),
            expires=float(expires) if expires is not None else None,
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("http_only", False)),
        )

    @classmethod
    def from_playwright(cls, data: dict[str, Any]) -> Cookie:
        """Build from a Playwright ``BrowserContext.cookies()`` item (session cookies have ``expires == -1``)."""
        expires = data.get("expires")
        return cls(
            name=data["name"],
            value=data.get("value", ""),
            domain=data.get("domain", ""),
            path=data.get("path") or "/",
            expires=float(expires) if expires is not None and expires >= 0 else None,
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("httpOnly", False)),
        )


def session_cookies(cookies: Iterable[Cookie], now: float | None = None) -> list[Cookie]:
    """Drop tracking and expired cookies."""
    return [c for c in cookies if c.name not in TRACKING_COOKIES and not c.is_expired(now)]


def cookie_header(cookies: Iterable[Cookie], url: str) -> str:
    """``Cookie`` header value for a request to ``url``."""
    return "; ".join(f"{c.name}={c.value}" for c in cookies if c.matches(url))


class CookieCache:
    """
    Cookie persistence between processes.

    Usage:
        cache = CookieCache(settings.cache_dir)
        cookies = cache.load()          # [] when missing or all expired
        cache.save(cookies)
    """

    def __init__(self, cache_dir: str | Path, filename: str = COOKIE_CACHE_FILENAME) -> None:
        self._path = Path(cache_dir) / filename

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self, now: float | None = None) -> list[Cookie]:
        """
        Unexpired session cookies from the cache; empty if there is no cache.

        Raises:
            PersistenceError: If the cache exists but cannot be read or parsed.
        """
        if not self.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            cookies = [Cookie.from_dict(item) for item in raw]
        except OSError as e:
            raise PersistenceError(f"Cannot read cookie cache: {e}", path=str(self._path)) from e
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Corrupt cookie cache: {e}", path=str(self._path)) from e

        valid = session_cookies(cookies, now)
        logger.info(f"Loaded {len(valid)}/{len(cookies)} valid cookies from {self._path}")
        return valid

    def save(self, cookies: Sequence[Cookie]) -> None:
        """
        Replace the cache with ``cookies`` (tracking cookies removed), mode 0600.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        payload = [c.to_dict() for c in cookies if c.name not in TRACKING_COOKIES]
        directory = self._path.parent
        tmp_path: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True, mode=0o700)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".cookies-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
            raise PersistenceError(f"Cannot write cookie cache: {e}", path=str(self._path)) from e
        logger.info(f"Saved {len(payload)} cookies to {self._path}")

    def delete(self) -> None:
        """Remove the cache file; a missing file is not an error."""
        with contextlib.suppress(FileNotFoundError):
            self._path.unlink()
