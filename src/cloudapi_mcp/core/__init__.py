"""Core API enablement and report operations for cloudapi-mcp."""

from cloudapi_mcp.core.enablement import (
    POLL_SETTINGS,
    ApiEnablementChecker,
    EnablementCache,
    PollSettings,
    enable_api_uri,
    get_enablement_checker,
    normalize_service_name,
    set_enablement_checker,
)

from cloudapi_mcp.core.crashlytics import (
    list_top_issues,
    parse_project_number,
)

__all__ = [
    "POLL_SETTINGS",
    "ApiEnablementChecker",
    "EnablementCache",
    "PollSettings",
    "enable_api_uri",
    "get_enablement_checker",
    "normalize_service_name",
    "set_enablement_checker",
    "list_top_issues",
    "parse_project_number",
]
