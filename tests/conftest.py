"""
Root pytest configuration and shared fixtures.

Provides a scripted Service Usage API fake, an isolated configstore and
helpers for decoding tool responses.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from mcp.types import TextContent

import cloudapi_mcp.config as config_module
from cloudapi_mcp.core.api_client import ApiClient
from cloudapi_mcp.core.configstore import ConfigStore
from cloudapi_mcp.core.enablement import (
    ApiEnablementChecker,
    EnablementCache,
    set_enablement_checker,
)

SERVICE_USAGE_ORIGIN = "https://serviceusage.test"

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from tool result, handling both dict and TextContent.

    Tools wrapped with canonical_tool return TextContent with minified JSON.
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(
        f"Expected dict or TextContent, got {type(result).__name__}"
    )


class FakeServiceUsage:
    """Scripted Service Usage API.

    GET requests return the next state from ``states``; the last state
    repeats once the script runs out. POST ``:enable`` requests succeed
    unless ``enable_error`` is set to a ``(status, body)`` pair.
    """

    def __init__(
        self,
        states: Optional[List[str]] = None,
        enable_error: Optional[Tuple[int, Dict[str, Any]]] = None,
        get_error: Optional[Tuple[int, Dict[str, Any]]] = None,
    ):
        self.states = list(states or ["DISABLED"])
        self.enable_error = enable_error
        self.get_error = get_error
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            if self.enable_error:
                status, body = self.enable_error
                return httpx.Response(status, json=body)
            return httpx.Response(200, json={"name": "operations/acf.123"})

        if self.get_error:
            status, body = self.get_error
            return httpx.Response(status, json=body)
        state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
        return httpx.Response(200, json={"state": state})

    @property
    def gets(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    @property
    def posts(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep global config, checker and configstore out of the user's home."""
    for var in (
        "CLOUDAPI_MCP_PROJECT",
        "CLOUDAPI_MCP_ACCESS_TOKEN",
        "CLOUDAPI_MCP_FEATURES",
        "CLOUDAPI_MCP_AUTO_ENABLE",
        "CLOUDAPI_MCP_CONFIG_FILE",
        "CLOUDAPI_MCP_LOG_LEVEL",
        "CLOUDAPI_MCP_STRUCTURED_LOGGING",
        "CLOUDAPI_MCP_SERVICE_USAGE_ORIGIN",
        "CLOUDAPI_MCP_CRASHLYTICS_ORIGIN",
        "CLOUDAPI_MCP_API_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CLOUDAPI_MCP_CONFIGSTORE_PATH", str(tmp_path / "configstore.json"))
    monkeypatch.setattr(config_module, "_config", None)
    set_enablement_checker(None)
    yield
    set_enablement_checker(None)


@pytest.fixture
def store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / "store" / "configstore.json")


@pytest.fixture
def make_checker(store: ConfigStore):
    """Build a checker backed by a FakeServiceUsage with instant sleeps."""

    def _make(fake: FakeServiceUsage, **kwargs: Any) -> ApiEnablementChecker:
        client = ApiClient(
            SERVICE_USAGE_ORIGIN,
            api_version="v1",
            access_token="test-token",
            transport=httpx.MockTransport(fake.handler),
        )
        kwargs.setdefault("sleep", AsyncMock())
        kwargs.setdefault("track", Mock())
        return ApiEnablementChecker(client, EnablementCache(store), **kwargs)

    return _make
