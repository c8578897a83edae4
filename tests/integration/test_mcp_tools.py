"""Tests for the unified apis and crashlytics tools."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cloudapi_mcp.config import EnablementConfig, ServerConfig
from cloudapi_mcp.core.analytics import track_event
from cloudapi_mcp.core.enablement import EnablementCache, set_enablement_checker
from cloudapi_mcp.core.errors import CrashlyticsError
from cloudapi_mcp.server import create_server
from tests.conftest import FakeServiceUsage, extract_response_dict

pytestmark = pytest.mark.integration

SERVICE = "foo.googleapis.com"
APP_ID = "1:1234567890:android:0a1b2c3d"


def _config(**overrides) -> ServerConfig:
    values = dict(
        server_name="cloudapi-mcp-test",
        log_level="WARNING",
        project_id="p1",
        access_token="test-token",
    )
    values.update(overrides)
    return ServerConfig(**values)


def _tool(config: ServerConfig, name: str):
    return create_server(config)._tool_manager._tools[name].fn


class TestApisTool:
    @pytest.mark.asyncio
    async def test_check_enabled(self, make_checker):
        fake = FakeServiceUsage(states=["ENABLED"])
        set_enablement_checker(make_checker(fake))

        result = extract_response_dict(await _tool(_config(), "apis")(action="check", service=SERVICE))

        assert result["success"] is True
        assert result["data"] == {"project_id": "p1", "service": SERVICE, "enabled": True}
        assert result["meta"]["version"] == "response-v2"
        assert result["meta"]["request_id"].startswith("tool_")

    @pytest.mark.asyncio
    async def test_check_normalizes_url_and_uses_explicit_project(self, make_checker):
        fake = FakeServiceUsage(states=["DISABLED"])
        set_enablement_checker(make_checker(fake))

        result = extract_response_dict(
            await _tool(_config(), "apis")(
                action="check", service="https://foo.googleapis.com/v1", project_id="other"
            )
        )

        assert result["data"] == {"project_id": "other", "service": SERVICE, "enabled": False}
        assert fake.requests[0].url.path == "/v1/projects/other/services/foo.googleapis.com"

    @pytest.mark.asyncio
    async def test_ensure_enables(self, make_checker, store):
        fake = FakeServiceUsage(states=["DISABLED", "ENABLED"])
        set_enablement_checker(make_checker(fake))

        result = extract_response_dict(await _tool(_config(), "apis")(action="ensure", service=SERVICE))

        assert result["success"] is True
        assert result["data"]["enabled"] is True
        assert len(fake.posts) == 1
        assert EnablementCache(store).is_enabled("p1", SERVICE)

    @pytest.mark.asyncio
    async def test_ensure_audit_carries_resolved_project(self, make_checker, caplog):
        caplog.set_level(logging.INFO, logger="cloudapi_mcp.core.observability.audit")
        fake = FakeServiceUsage(states=["DISABLED", "ENABLED"])
        set_enablement_checker(make_checker(fake, track=track_event))

        result = extract_response_dict(await _tool(_config(), "apis")(action="ensure", service=SERVICE))

        assert result["success"] is True
        audits = [r.audit for r in caplog.records if hasattr(r, "audit")]
        (enabled,) = [a for a in audits if a["event_type"] == "api_enablement"]
        assert enabled["project_id"] == "p1"
        assert enabled["correlation_id"] == result["meta"]["request_id"]
        assert enabled["details"] == {"event": "api_enabled", "api_name": SERVICE}

    @pytest.mark.asyncio
    async def test_ensure_without_auto_enable_returns_link(self, make_checker):
        fake = FakeServiceUsage(states=["DISABLED"])
        set_enablement_checker(make_checker(fake))
        config = _config(enablement=EnablementConfig(auto_enable=False))

        result = extract_response_dict(await _tool(config, "apis")(action="ensure", service=SERVICE))

        assert result["success"] is True
        assert result["data"]["enabled"] is False
        assert result["data"]["link"] == (
            "https://console.cloud.google.com/apis/library/foo.googleapis.com?project=p1"
        )
        assert result["meta"]["warnings"]
        assert fake.posts == []

    @pytest.mark.asyncio
    async def test_ensure_timeout_maps_to_error(self, make_checker):
        fake = FakeServiceUsage(states=["DISABLED"])
        set_enablement_checker(make_checker(fake))

        result = extract_response_dict(await _tool(_config(), "apis")(action="ensure", service=SERVICE))

        assert result["success"] is False
        assert result["data"]["error_code"] == "ENABLEMENT_TIMEOUT"
        assert "Timed out waiting for API foo.googleapis.com" in result["error"]

    @pytest.mark.asyncio
    async def test_ensure_billing_maps_to_error(self, make_checker):
        body = {
            "error": {
                "message": "billing",
                "details": [{"violations": [{"type": "serviceusage/billing-enabled"}]}],
            }
        }
        fake = FakeServiceUsage(enable_error=(400, body))
        set_enablement_checker(make_checker(fake))

        result = extract_response_dict(await _tool(_config(), "apis")(action="ensure", service=SERVICE))

        assert result["data"]["error_code"] == "BILLING_REQUIRED"
        assert "https://console.firebase.google.com/project/p1/usage/details" in result["error"]

    @pytest.mark.asyncio
    async def test_link_needs_no_token(self):
        result = extract_response_dict(
            await _tool(_config(access_token=None), "apis")(action="link", service=SERVICE)
        )

        assert result["success"] is True
        assert result["data"]["link"].endswith("foo.googleapis.com?project=p1")

    @pytest.mark.asyncio
    async def test_missing_project(self):
        result = extract_response_dict(
            await _tool(_config(project_id=None), "apis")(action="check", service=SERVICE)
        )

        assert result["success"] is False
        assert result["data"]["error_code"] == "MISSING_REQUIRED"

    @pytest.mark.asyncio
    async def test_missing_token(self):
        result = extract_response_dict(
            await _tool(_config(access_token=None), "apis")(action="check", service=SERVICE)
        )

        assert result["data"]["error_code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_missing_service(self):
        result = extract_response_dict(await _tool(_config(), "apis")(action="check"))

        assert result["data"]["error_code"] == "MISSING_REQUIRED"
        assert result["error"] == "Must specify 'service' parameter."

    @pytest.mark.asyncio
    async def test_unknown_action(self):
        result = extract_response_dict(await _tool(_config(), "apis")(action="disable", service=SERVICE))

        assert result["success"] is False
        assert result["data"]["error_code"] == "VALIDATION_ERROR"
        assert result["data"]["details"]["allowed_actions"] == ["check", "ensure", "link"]


class TestCrashlyticsTool:
    @pytest.fixture
    def checker(self):
        checker = MagicMock()
        checker.best_effort_ensure = AsyncMock()
        set_enablement_checker(checker)
        return checker

    @pytest.mark.asyncio
    async def test_list_top_issues_defaults(self, checker):
        report = {"groups": []}
        with patch(
            "cloudapi_mcp.tools.unified.crashlytics.list_top_issues",
            new=AsyncMock(return_value=report),
        ) as mock_list:
            result = extract_response_dict(
                await _tool(_config(), "crashlytics")(action="list_top_issues", app_id=APP_ID)
            )

        assert result["success"] is True
        assert result["data"]["report"] == report
        assert result["data"]["issue_type"] == "FATAL"
        assert result["data"]["issue_count"] == 10
        checker.best_effort_ensure.assert_awaited_once_with(
            "p1", "firebasecrashlytics.googleapis.com", prefix="crashlytics", silent=True
        )
        args, kwargs = mock_list.call_args
        assert args[1:] == ("p1", APP_ID)
        assert kwargs == {"issue_type": "FATAL", "issue_count": 10}

    @pytest.mark.asyncio
    async def test_missing_app_id(self, checker):
        result = extract_response_dict(await _tool(_config(), "crashlytics")(action="list_top_issues"))

        assert result["success"] is False
        assert result["error"] == "Must specify 'app_id' parameter."
        assert result["data"]["error_code"] == "MISSING_REQUIRED"
        checker.best_effort_ensure.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_issue_type(self, checker):
        result = extract_response_dict(
            await _tool(_config(), "crashlytics")(
                action="list_top_issues", app_id=APP_ID, issue_type="WARNING"
            )
        )

        assert result["data"]["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_invalid_issue_count(self, checker):
        result = extract_response_dict(
            await _tool(_config(), "crashlytics")(
                action="list_top_issues", app_id=APP_ID, issue_count=0
            )
        )

        assert result["data"]["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_fetch_failure(self, checker):
        error = CrashlyticsError(
            f"Failed to fetch the top issues for the Firebase Project p1, AppId {APP_ID}.",
            status=404,
        )
        with patch(
            "cloudapi_mcp.tools.unified.crashlytics.list_top_issues",
            new=AsyncMock(side_effect=error),
        ):
            result = extract_response_dict(
                await _tool(_config(), "crashlytics")(action="list_top_issues", app_id=APP_ID)
            )

        assert result["success"] is False
        assert result["error"].startswith("Failed to fetch the top issues")
        assert result["data"]["details"]["app_id"] == APP_ID

    @pytest.mark.asyncio
    async def test_alias_action(self, checker):
        with patch(
            "cloudapi_mcp.tools.unified.crashlytics.list_top_issues",
            new=AsyncMock(return_value={}),
        ):
            result = extract_response_dict(
                await _tool(_config(), "crashlytics")(
                    action="top-issues", app_id=APP_ID, issue_type="anr"
                )
            )

        assert result["data"]["issue_type"] == "ANR"
