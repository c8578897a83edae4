"""Minimal async REST client for Google Cloud style JSON APIs.

Wraps ``httpx.AsyncClient`` with the conventions every caller in this
package needs: an origin plus API version prefix, bearer-token auth, JSON
bodies, and translation of failures into ``ApiRequestError`` carrying the
decoded error body.

Example usage:
    client = ApiClient("https://serviceusage.googleapis.com", api_version="v1")
    response = await client.get("/projects/p1/services/foo.googleapis.com")
    print(response.body["state"])
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from cloudapi_mcp.core.errors import ApiRequestError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class ApiResponse:
    """Decoded API response."""

    status: int
    body: Any


class ApiClient:
    """Async JSON client bound to one API origin and version.

    A fresh ``httpx.AsyncClient`` is opened per request; tests inject an
    ``httpx.MockTransport`` through ``transport``.
    """

    def __init__(
        self,
        url_prefix: str,
        api_version: str = "v1",
        *,
        access_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = f"{url_prefix.rstrip('/')}/{api_version}"
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self, extra: Optional[Mapping[str, str]]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        """Issue a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the versioned base URL, with leading slash
            json: Optional JSON body
            params: Optional query parameters
            headers: Extra request headers
            timeout: Override the client timeout for this request

        Returns:
            ApiResponse with the status and decoded body (None when empty).

        Raises:
            ApiRequestError: On a non-2xx response or a transport failure.
        """
        url = f"{self._base_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            async with httpx.AsyncClient(
                timeout=timeout or self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=self._headers(headers),
                )
        except httpx.RequestError as e:
            raise ApiRequestError(
                f"Failed to make request to {url}: {e}",
                original=e,
            ) from e

        body = self._decode_body(response)
        if response.status_code >= 400:
            raise ApiRequestError(
                self._extract_error_message(response, body),
                status=response.status_code,
                body=body if isinstance(body, dict) else None,
            )
        return ApiResponse(status=response.status_code, body=body)

    async def get(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("POST", path, json=json, **kwargs)

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _extract_error_message(response: httpx.Response, body: Any) -> str:
        """Extract error message from an error response.

        Google APIs return ``{"error": {"code", "message", "status"}}``.
        """
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str):
                return error
        text = response.text[:200] if response.text else "Unknown error"
        return f"HTTP Error: {response.status_code}, {text}"
