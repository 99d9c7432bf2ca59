"""Tests for PlatformHTTPClient - headers, status mapping and retries."""

import httpx
import pytest

from conftest import json_response
from orm_discovery.shared.exceptions import (
    APIError,
    ContentNotFoundError,
    ParseError,
    SessionExpiredError,
    TransientNetworkError,
)

API_URL = "https://learning.oreilly.com/api/v2/search/"


class TestHeaders:
    async def test_session_cookies_and_user_agent(self, make_http_client):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return json_response({"ok": True})

        client = make_http_client(handler)
        body = await client.get_json(API_URL, {"q": "rust"}, referer="https://learning.oreilly.com/search/")

        assert body == {"ok": True}
        request = seen[0]
        assert request.headers["Cookie"] == "orm-jwt=token-123"
        assert request.headers["User-Agent"] == "test-agent/1.0"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Referer"] == "https://learning.oreilly.com/search/"
        assert request.url.params["q"] == "rust"

    async def test_no_cookie_for_other_hosts(self, make_http_client):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return json_response({})

        await make_http_client(handler).get_json("https://example.com/api/")
        assert "Cookie" not in seen[0].headers

    async def test_post_json(self, make_http_client):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return json_response({"question_id": "q-1"})

        body = await make_http_client(handler).post_json(API_URL, {"question": "why?"})
        assert body == {"question_id": "q-1"}
        assert seen[0].method == "POST"
        assert seen[0].headers["Origin"] == "https://learning.oreilly.com"
        assert b'"question"' in seen[0].content

    async def test_get_text(self, make_http_client):
        client = make_http_client(lambda request: httpx.Response(200, text="<html>hi</html>"))
        assert await client.get_text(API_URL) == "<html>hi</html>"


class TestStatusMapping:
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_rejection(self, make_http_client, status):
        client = make_http_client(lambda request: json_response({}, status))
        with pytest.raises(SessionExpiredError) as exc_info:
            await client.get_json(API_URL)
        assert exc_info.value.status_code == status

    async def test_login_redirect(self, make_http_client):
        def handler(request):
            if request.url.path == "/member/login/":
                return httpx.Response(200, text="<form>login</form>")
            return httpx.Response(302, headers={"Location": "https://www.oreilly.com/member/login/"})

        with pytest.raises(SessionExpiredError) as exc_info:
            await make_http_client(handler).get_json(API_URL)
        assert exc_info.value.status_code == 302

    async def test_not_found(self, make_http_client):
        client = make_http_client(lambda request: json_response({"detail": "Not found."}, 404))
        with pytest.raises(ContentNotFoundError):
            await client.get_json("https://learning.oreilly.com/api/v1/book/missing/")

    async def test_client_error(self, make_http_client):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            return json_response({}, 400)

        with pytest.raises(APIError) as exc_info:
            await make_http_client(handler).get_json(API_URL)
        assert exc_info.value.status_code == 400
        assert calls == 1

    async def test_bad_json(self, make_http_client):
        client = make_http_client(
            lambda request: httpx.Response(200, text="<html>maintenance</html>", headers={"content-type": "text/html"})
        )
        with pytest.raises(ParseError, match="text/html"):
            await client.get_json(API_URL)


class TestRetries:
    async def test_server_error_retried_then_succeeds(self, make_http_client):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            return json_response({}, 503) if calls == 1 else json_response({"ok": 1})

        assert await make_http_client(handler).get_json(API_URL) == {"ok": 1}
        assert calls == 2

    async def test_server_error_exhausts_retries(self, make_http_client):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            return json_response({}, 500)

        with pytest.raises(TransientNetworkError) as exc_info:
            await make_http_client(handler).get_json(API_URL)
        assert exc_info.value.status_code == 500
        assert calls == 2

    async def test_rate_limit_retry_after(self, make_http_client):
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "0"}),
                httpx.Response(429, headers={"Retry-After": "0"}),
            ]
        )
        with pytest.raises(TransientNetworkError, match="429"):
            await make_http_client(lambda request: next(responses)).get_json(API_URL)

    async def test_connection_error(self, make_http_client):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransientNetworkError) as exc_info:
            await make_http_client(handler).get_json(API_URL)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert calls == 2

    async def test_timeout(self, make_http_client):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransientNetworkError, match="timed out"):
            await make_http_client(handler).get_json(API_URL)

    async def test_auth_rejection_not_retried(self, make_http_client):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            return json_response({}, 401)

        with pytest.raises(SessionExpiredError):
            await make_http_client(handler).get_json(API_URL)
        assert calls == 1
