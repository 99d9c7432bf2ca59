"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from orm_discovery.infrastructure.auth.cookies import Cookie
from orm_discovery.infrastructure.http import PlatformHTTPClient

# ============================================================
# Environment Fixtures
# ============================================================


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def session_cookie():
    """A long-lived platform session cookie."""
    return Cookie(
        name="orm-jwt",
        value="token-123",
        domain=".oreilly.com",
        path="/",
        expires=4_102_444_800.0,
        secure=True,
        http_only=True,
    )


# ============================================================
# Fake session / browser collaborators
# ============================================================


class FakeSession:
    """Stands in for SessionManager in client tests."""

    def __init__(self, cookies: tuple[Cookie, ...] = ()) -> None:
        self.user_agent = "test-agent/1.0"
        self._cookies = cookies
        self.generation = 1
        self.ensure_calls = 0
        self.invalidations: list[int | None] = []
        self._expired = False

    async def ensure_authenticated(self) -> None:
        self.ensure_calls += 1
        if self._expired:
            self._expired = False
            self.generation += 1

    def invalidate(self, generation: int | None = None) -> None:
        self.invalidations.append(generation)
        self._expired = True

    def cookies(self) -> tuple[Cookie, ...]:
        return self._cookies


@pytest.fixture
def fake_session(session_cookie):
    return FakeSession((session_cookie,))


class FakeElement:
    """Minimal Playwright ElementHandle."""

    def __init__(self, on_click: Callable[[], None] | None = None, *, visible: bool = True) -> None:
        self.value: str | None = None
        self.clicks = 0
        self._on_click = on_click
        self._visible = visible

    async def is_visible(self) -> bool:
        return self._visible

    async def fill(self, value: str) -> None:
        self.value = value

    async def click(self) -> None:
        self.clicks += 1
        if self._on_click is not None:
            self._on_click()


class FakePage:
    """Minimal Playwright Page: a URL plus selector -> element map."""

    def __init__(self, url: str = "about:blank") -> None:
        self.url = url
        self.elements: dict[str, FakeElement] = {}
        self.visited: list[str] = []

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.visited.append(url)
        self.url = url

    async def query_selector(self, selector: str) -> FakeElement | None:
        return self.elements.get(selector)


@pytest.fixture
def fake_page():
    return FakePage()


class FakeBrowserDriver:
    """BrowserDriver replacement returning a scripted page and cookies."""

    def __init__(self, page: FakePage | None = None, cookies: list[Cookie] | None = None) -> None:
        self.page = page or FakePage()
        self._cookies = cookies or []
        self.started = 0
        self.closed = 0

    async def start(self) -> FakePage:
        self.started += 1
        return self.page

    async def cookies(self) -> list[Cookie]:
        return list(self._cookies)

    async def close(self) -> None:
        self.closed += 1


# ============================================================
# HTTP helpers
# ============================================================


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


@pytest.fixture
def make_http_client(fake_session):
    """Build a PlatformHTTPClient whose requests go to ``handler``."""
    clients: list[PlatformHTTPClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response], session: Any = None) -> PlatformHTTPClient:
        client = PlatformHTTPClient(
            session or fake_session,
            max_retries=1,
            retry_base_delay=0.0,
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    return factory


# ============================================================
# Sample platform payloads
# ============================================================


@pytest.fixture
def v2_search_payload():
    """Search response in the ``results`` shape."""
    return {
        "results": [
            {
                "product_id": "9781098166298",
                "title": "Kubernetes Up and Running",
                "authors": ["Brendan Burns", "Joe Beda"],
                "content_type": "book",
                "description": "Dive into the future of infrastructure.",
                "web_url": "/library/view/kubernetes-up-and/9781098166298/",
                "publishers": [{"name": "O'Reilly Media, Inc."}],
                "published_date": "2024-08-01",
            },
            {
                "id": "0636920373186",
                "name": "Kubernetes Fundamentals",
                "author": "Sander van Vugt",
                "format": "video",
                "url": "https://learning.oreilly.com/videos/kubernetes-fundamentals/0636920373186/",
            },
        ],
        "total": 2,
    }


@pytest.fixture
def products_search_payload():
    """Search response in the ``data.products`` shape."""
    return {
        "data": {
            "products": [
                {
                    "product_id": "9781492043447",
                    "title": "Designing Data-Intensive Applications",
                    "creators": [{"name": "Martin Kleppmann"}],
                    "product_type": "ebook",
                    "publisher": {"name": "O'Reilly Media, Inc."},
                    "issued": "2017-03-16",
                }
            ]
        }
    }


@pytest.fixture
def book_detail_payload():
    return {
        "identifier": "9781098166298",
        "title": "Kubernetes Up and Running",
        "description": "<p>Dive into the future of infrastructure.</p>",
        "url": "https://learning.oreilly.com/api/v1/book/9781098166298/",
        "web_url": "https://learning.oreilly.com/library/view/kubernetes-up-and/9781098166298/",
        "authors": [{"name": "Brendan Burns"}, {"name": "Joe Beda"}],
        "publishers": [{"name": "O'Reilly Media, Inc."}],
        "isbn": "9781098166298",
        "virtual_pages": 326,
        "average_rating": 4.5,
        "cover": "https://learning.oreilly.com/covers/9781098166298/",
        "issued": "2024-08-01",
        "topics": [{"name": "Kubernetes", "slug": "kubernetes", "score": 0.9}],
        "language": "en",
    }


@pytest.fixture
def flat_toc_payload():
    """Flat-toc response in the bare-array shape."""
    return [
        {"id": "preface", "title": "Preface", "href": "preface.html", "level": 1},
        {"title": "1. Introduction", "href": "ch01.html", "depth": 1, "minutes_required": 12},
        {
            "id": "ch01-sec1",
            "label": "Velocity",
            "href": "ch01.html#velocity",
            "level": 2,
            "parent": {"id": "ch01"},
        },
    ]


@pytest.fixture
def chapter_html():
    return """
    <html>
    <head><title>Chapter 1. Introduction</title></head>
    <body>
      <h1 id="ch01">Introduction</h1>
      <p>Kubernetes is an open source orchestrator for deploying containerized applications.</p>
      <h2 id="velocity">Velocity</h2>
      <p>Velocity is the key component in nearly all software development today.</p>
      <div class="example">
        <pre class="highlight-yaml"><code>apiVersion: v1
kind: Pod</code></pre>
        <p class="caption">Example 1-1. A minimal Pod</p>
      </div>
      <img src="assets/fig1.png" alt="Cluster diagram">
      <a href="https://kubernetes.io">Kubernetes site</a>
      <a href="#velocity">Back to velocity</a>
      <a href="ch02.html">Next chapter</a>
    </body>
    </html>
    """


@pytest.fixture
def answer_payload():
    return {
        "question_id": "q-123",
        "question": "How do I run a pod?",
        "is_finished": True,
        "miso_response": {
            "data": {
                "answer": "Use **kubectl run** to start a pod.",
                "sources": [
                    {
                        "title": "Kubernetes Up and Running",
                        "url": "/library/view/kubernetes-up-and/9781098166298/ch05.html",
                        "authors": ["Brendan Burns"],
                        "content_type": "book",
                        "product_id": "9781098166298",
                    }
                ],
                "related_resources": [],
                "affiliation_products": [],
                "followup_questions": ["How do I delete a pod?"],
            }
        },
    }
