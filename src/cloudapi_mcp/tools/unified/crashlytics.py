"""Unified Crashlytics tool with action routing."""

import logging
from dataclasses import asdict
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from cloudapi_mcp.config import ServerConfig
from cloudapi_mcp.core.crashlytics import (
    CRASHLYTICS_API,
    DEFAULT_ISSUE_COUNT,
    DEFAULT_ISSUE_TYPE,
    ISSUE_TYPES,
    create_crashlytics_client,
    list_top_issues,
)
from cloudapi_mcp.core.context import project_scope
from cloudapi_mcp.core.enablement import get_enablement_checker
from cloudapi_mcp.core.errors import CloudApiError
from cloudapi_mcp.core.naming import canonical_tool
from cloudapi_mcp.core.responses import (
    ErrorCode,
    success_response,
    validation_error,
)
from cloudapi_mcp.tools.unified.common import (
    ToolMetadata,
    exception_to_dict,
    preflight,
    unsupported_action,
)
from cloudapi_mcp.tools.unified.router import (
    ActionDefinition,
    ActionRouter,
    ActionRouterError,
)

logger = logging.getLogger(__name__)

CRASHLYTICS_METADATA = ToolMetadata(
    feature="crashlytics", requires_project=True, requires_auth=True
)

_ACTION_SUMMARY = {
    "list_top_issues": "List the top crashes happening in an application",
}


async def _handle_list_top_issues(
    *,
    config: ServerConfig,
    app_id: Optional[str] = None,
    issue_type: Optional[str] = None,
    issue_count: Optional[int] = None,
    project_id: Optional[str] = None,
) -> dict:
    if not app_id:
        return asdict(
            validation_error(
                "Must specify 'app_id' parameter.",
                field="app_id",
                remediation=(
                    "Use mobilesdk_app_id from google-services.json (Android) or "
                    "GOOGLE_APP_ID from GoogleService-Info.plist (iOS)."
                ),
                code=ErrorCode.MISSING_REQUIRED,
            )
        )

    issue_type = (issue_type or DEFAULT_ISSUE_TYPE).upper()
    if issue_type not in ISSUE_TYPES:
        return asdict(
            validation_error(
                f"Invalid issue_type '{issue_type}'.",
                field="issue_type",
                remediation=f"Use one of: {', '.join(ISSUE_TYPES)}",
            )
        )

    if issue_count is None:
        issue_count = DEFAULT_ISSUE_COUNT
    if isinstance(issue_count, bool) or not isinstance(issue_count, int) or issue_count < 1:
        return asdict(
            validation_error(
                "issue_count must be a positive integer.",
                field="issue_count",
            )
        )

    project, error = preflight(CRASHLYTICS_METADATA, config, project_id)
    if error:
        return error

    with project_scope(project):
        await get_enablement_checker().best_effort_ensure(
            project, CRASHLYTICS_API, prefix="crashlytics", silent=True
        )
        try:
            report = await list_top_issues(
                create_crashlytics_client(config),
                project,
                app_id,
                issue_type=issue_type,
                issue_count=issue_count,
            )
        except CloudApiError as exc:
            return exception_to_dict(exc, project_id=project, app_id=app_id)

    return asdict(
        success_response(
            project_id=project,
            app_id=app_id,
            issue_type=issue_type,
            issue_count=issue_count,
            report=report,
        )
    )


def _build_router() -> ActionRouter:
    definitions = [
        ActionDefinition(
            name="list_top_issues",
            handler=_handle_list_top_issues,
            summary=_ACTION_SUMMARY["list_top_issues"],
            aliases=("top-issues",),
        ),
    ]
    return ActionRouter(tool_name="crashlytics", actions=definitions)


_CRASHLYTICS_ROUTER = _build_router()


async def _dispatch_crashlytics_action(action: str, **kwargs: Any) -> dict:
    try:
        handler_result = _CRASHLYTICS_ROUTER.dispatch(action=action, **kwargs)
    except ActionRouterError as exc:
        return unsupported_action(_CRASHLYTICS_ROUTER, action, exc)
    return await handler_result


def register_unified_crashlytics_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the consolidated Crashlytics tool."""

    @canonical_tool(
        mcp,
        canonical_name="crashlytics",
    )
    async def crashlytics(
        action: str,
        app_id: Optional[str] = None,
        issue_type: Optional[str] = None,
        issue_count: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> dict:
        """Query Crashlytics reports via `action` parameter.

        Args:
            action: "list_top_issues".
            app_id: App to query. For Android read mobilesdk_app_id from
                google-services.json; for iOS read GOOGLE_APP_ID from
                GoogleService-Info.plist.
            issue_type: FATAL (crashes, default), NON-FATAL, or ANR
                (application not responding).
            issue_count: Number of issues to fetch. Defaults to 10.
            project_id: Project the app belongs to. Defaults to the
                configured project.
        """

        return await _dispatch_crashlytics_action(
            action=action,
            config=config,
            app_id=app_id,
            issue_type=issue_type,
            issue_count=issue_count,
            project_id=project_id,
        )

    logger.debug("Registered unified crashlytics tool")


__all__ = [
    "CRASHLYTICS_METADATA",
    "register_unified_crashlytics_tool",
]
