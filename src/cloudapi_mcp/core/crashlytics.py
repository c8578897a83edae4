"""Crashlytics report queries.

Example usage:
    client = ApiClient(DEFAULT_CRASHLYTICS_ORIGIN, api_version="v1alpha")
    report = await list_top_issues(client, "my-project", "1:1234567890:android:abc")
"""

import logging
from typing import Any, Dict

from cloudapi_mcp.config import ServerConfig
from cloudapi_mcp.core.api_client import ApiClient
from cloudapi_mcp.core.errors import CrashlyticsError

logger = logging.getLogger(__name__)

CRASHLYTICS_API = "firebasecrashlytics.googleapis.com"
CRASHLYTICS_API_VERSION = "v1alpha"

ISSUE_TYPES = ("FATAL", "NON-FATAL", "ANR")
DEFAULT_ISSUE_TYPE = "FATAL"
DEFAULT_ISSUE_COUNT = 10


def create_crashlytics_client(config: ServerConfig) -> ApiClient:
    return ApiClient(
        config.api.crashlytics_origin,
        api_version=CRASHLYTICS_API_VERSION,
        access_token=config.access_token,
        timeout=config.api.timeout,
    )


def parse_project_number(app_id: str) -> str:
    """Extract the project number from a Firebase app id.

    App ids look like ``1:1234567890:android:0a1b2c3d``; the number is the
    second segment.

    Raises:
        CrashlyticsError: The app id has no project number segment.
    """
    parts = app_id.split(":")
    if len(parts) < 2 or not parts[1]:
        raise CrashlyticsError("Unable to get the projectId from the AppId.")
    return parts[1]


async def list_top_issues(
    client: ApiClient,
    project_id: str,
    app_id: str,
    issue_type: str = DEFAULT_ISSUE_TYPE,
    issue_count: int = DEFAULT_ISSUE_COUNT,
) -> Dict[str, Any]:
    """Fetch the top issues report for an app.

    Args:
        client: Client bound to the Crashlytics origin, API version v1alpha
        project_id: Project the app belongs to (used in error messages)
        app_id: Firebase app id
        issue_type: One of FATAL, NON-FATAL, ANR
        issue_count: Number of issues to return

    Returns:
        The decoded topIssues report.

    Raises:
        CrashlyticsError: The app id is malformed or the request failed.
    """
    project_number = parse_project_number(app_id)

    try:
        response = await client.get(
            f"/projects/{project_number}/apps/{app_id}/reports/topIssues",
            params={
                "page_size": issue_count,
                "filter.issue.error_types": issue_type,
            },
        )
    except Exception as exc:
        logger.debug(f"topIssues request failed for {app_id}: {exc}")
        raise CrashlyticsError(
            f"Failed to fetch the top issues for the Firebase Project {project_id}, "
            f"AppId {app_id}.",
            status=getattr(exc, "status", None),
            body=getattr(exc, "body", None),
            original=exc,
        ) from exc

    return response.body if isinstance(response.body, dict) else {}
