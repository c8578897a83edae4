"""Tests for the async REST client."""

import logging

import httpx
import pytest

from cloudapi_mcp.core.api_client import ApiClient
from cloudapi_mcp.core.errors import ApiRequestError


def _client(handler, **kwargs) -> ApiClient:
    return ApiClient(
        "https://api.test/",
        api_version="v1",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestApiClient:
    def test_base_url_strips_trailing_slash(self):
        assert ApiClient("https://api.test/", api_version="v2").base_url == "https://api.test/v2"

    @pytest.mark.asyncio
    async def test_get_decodes_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={"state": "ENABLED"})

        response = await _client(handler, access_token="tok").get(
            "/things/1", params={"page_size": 5}, headers={"x-extra": "1"}
        )

        assert response.status == 200
        assert response.body == {"state": "ENABLED"}
        request = seen["request"]
        assert str(request.url) == "https://api.test/v1/things/1?page_size=5"
        assert request.headers["authorization"] == "Bearer tok"
        assert request.headers["x-extra"] == "1"

    @pytest.mark.asyncio
    async def test_logs_request_line(self, caplog):
        caplog.set_level(logging.DEBUG, logger="cloudapi_mcp.core.api_client")

        await _client(lambda request: httpx.Response(200, json={})).get("/things/1")

        assert "GET https://api.test/v1/things/1" in [r.getMessage() for r in caplog.records]

    @pytest.mark.asyncio
    async def test_no_token_no_auth_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={})

        await _client(handler).get("/x")

        assert "authorization" not in seen["request"].headers

    @pytest.mark.asyncio
    async def test_post_empty_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200)

        response = await _client(handler).post("/services/foo:enable")

        assert seen["request"].method == "POST"
        assert seen["request"].content == b""
        assert response.body is None

    @pytest.mark.asyncio
    async def test_error_uses_google_error_message(self):
        body = {"error": {"code": 403, "message": "nope", "status": "PERMISSION_DENIED"}}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json=body)

        with pytest.raises(ApiRequestError) as exc_info:
            await _client(handler).get("/x")

        assert str(exc_info.value) == "nope"
        assert exc_info.value.status == 403
        assert exc_info.value.body == body

    @pytest.mark.asyncio
    async def test_error_with_text_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        with pytest.raises(ApiRequestError) as exc_info:
            await _client(handler).get("/x")

        assert str(exc_info.value) == "HTTP Error: 502, bad gateway"
        assert exc_info.value.body is None

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ApiRequestError) as exc_info:
            await _client(handler).get("/x")

        assert "connection refused" in str(exc_info.value)
        assert isinstance(exc_info.value.original, httpx.ConnectError)
        assert exc_info.value.status is None
