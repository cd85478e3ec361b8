import json

import httpx
import pytest
import respx

from api_client import APIError, build_url, fetch_api, get_strapi_url

API = "http://cms.test"


@pytest.fixture(autouse=True)
def api_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STRAPI_API_URL", API)
    monkeypatch.delenv("STRAPI_API_TOKEN", raising=False)


def test_get_strapi_url(monkeypatch):
    assert get_strapi_url("/uploads/logo.png") == f"{API}/uploads/logo.png"
    assert get_strapi_url("https://cdn.test/logo.png") == "https://cdn.test/logo.png"

    monkeypatch.delenv("STRAPI_API_URL")
    monkeypatch.setenv("NEXT_PUBLIC_STRAPI_API_URL", "http://public.test/")
    assert get_strapi_url("/api/slots") == "http://public.test/api/slots"

    monkeypatch.delenv("NEXT_PUBLIC_STRAPI_API_URL")
    assert get_strapi_url() == "http://localhost:1337"


def test_build_url_uses_bracket_notation():
    url = build_url("/api/slots", {"filters": {"slug": {"$eq": "book"}}, "populate": ["cover_image"]})

    assert url == f"{API}/api/slots?filters[slug][$eq]=book&populate[]=cover_image"
    assert build_url("/api/slots") == f"{API}/api/slots"


@pytest.mark.asyncio
@respx.mock
async def test_success_returns_body():
    route = respx.get(f"{API}/api/slots").mock(
        return_value=httpx.Response(200, json={"data": [{"id": "1"}], "meta": {"pagination": {"total": 1}}})
    )

    result = await fetch_api("/api/slots", {"sort": "rating:desc"})

    assert result == {"data": [{"id": "1"}], "meta": {"pagination": {"total": 1}}}
    request = route.calls.last.request
    assert request.url.params["sort"] == "rating:desc"
    assert request.headers["Content-Type"] == "application/json"
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
@respx.mock
async def test_bearer_token_from_environment(monkeypatch):
    monkeypatch.setenv("STRAPI_API_TOKEN", "server-token")
    route = respx.get(f"{API}/api/articles").mock(return_value=httpx.Response(200, json={"data": []}))

    await fetch_api("/api/articles")

    assert route.calls.last.request.headers["Authorization"] == "Bearer server-token"


@pytest.mark.asyncio
@respx.mock
async def test_http_error_is_returned_not_raised():
    respx.get(f"{API}/api/slots").mock(return_value=httpx.Response(404, json={"data": None}))

    result = await fetch_api("/api/slots")

    assert result == {"data": None, "error": {"status": 404, "message": "HTTP 404: Not Found"}}


@pytest.mark.asyncio
@respx.mock
async def test_redirect_is_an_error():
    respx.get(f"{API}/api/slots").mock(return_value=httpx.Response(302, json={"data": [{"id": 1}]}))

    result = await fetch_api("/api/slots")

    assert result == {"data": None, "error": {"status": 302, "message": "HTTP 302: Found"}}


@pytest.mark.asyncio
@respx.mock
async def test_network_failure_becomes_500():
    respx.get(f"{API}/api/slots").mock(side_effect=httpx.ConnectError("connection refused"))

    result = await fetch_api("/api/slots")

    assert result["data"] is None
    assert result["error"] == {"status": 500, "message": "connection refused"}


@pytest.mark.asyncio
@respx.mock
async def test_invalid_json_becomes_500():
    respx.get(f"{API}/api/slots").mock(return_value=httpx.Response(200, text="<html>oops</html>"))

    result = await fetch_api("/api/slots")

    assert result["data"] is None
    assert result["error"]["status"] == 500


@pytest.mark.asyncio
@respx.mock
async def test_post_sends_json_body():
    route = respx.post(f"{API}/api/comments").mock(return_value=httpx.Response(200, json={"data": {"id": "c1"}}))

    result = await fetch_api("/api/comments", method="POST", json={"data": {"text": "hi"}})

    assert result["data"] == {"id": "c1"}
    assert json.loads(route.calls.last.request.content) == {"data": {"text": "hi"}}


def test_api_error_message():
    error = APIError(503, "Service Unavailable")

    assert str(error) == "API Error: 503 Service Unavailable"
    assert error.to_dict() == {"status": 503, "message": "API Error: 503 Service Unavailable"}
