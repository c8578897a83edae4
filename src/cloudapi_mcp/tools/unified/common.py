"""Helpers shared by the unified tools."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from cloudapi_mcp.config import ServerConfig
from cloudapi_mcp.core.errors import CloudApiError
from cloudapi_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    error_from_exception,
    error_response,
    validation_error,
)
from cloudapi_mcp.tools.unified.router import ActionRouter, ActionRouterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolMetadata:
    """Registration metadata for a unified tool.

    Attributes:
        feature: Feature group; the tool is registered only when the group
            is enabled in config
        requires_project: Network actions need a project id
        requires_auth: Network actions need an access token
    """

    feature: str
    requires_project: bool = False
    requires_auth: bool = False


def preflight(
    metadata: ToolMetadata,
    config: ServerConfig,
    project_id: Optional[str],
) -> Tuple[Optional[str], Optional[dict]]:
    """Resolve the project and enforce tool metadata requirements.

    Returns:
        ``(project_id, None)`` when the call may proceed, otherwise
        ``(None, error_dict)``.
    """
    effective_project = (project_id or config.project_id or "").strip() or None

    if metadata.requires_project and not effective_project:
        return None, asdict(
            validation_error(
                "No project specified.",
                field="project_id",
                remediation="Pass project_id or set CLOUDAPI_MCP_PROJECT.",
                code=ErrorCode.MISSING_REQUIRED,
            )
        )

    if metadata.requires_auth and not config.access_token:
        return None, asdict(
            error_response(
                "No access token configured.",
                error_code=ErrorCode.UNAUTHORIZED,
                error_type=ErrorType.AUTHENTICATION,
                remediation="Set CLOUDAPI_MCP_ACCESS_TOKEN (gcloud auth print-access-token).",
            )
        )

    return effective_project, None


def exception_to_dict(exc: CloudApiError, **details: Any) -> dict:
    logger.debug(f"Tool call failed: {exc}")
    return asdict(error_from_exception(exc, details=details))


def unsupported_action(router: ActionRouter, action: str, exc: ActionRouterError) -> dict:
    allowed = ", ".join(exc.allowed_actions)
    details: Dict[str, Any] = {"action": action, "allowed_actions": exc.allowed_actions}
    return asdict(
        error_response(
            f"Unsupported {router.tool_name} action '{action}'. Allowed actions: {allowed}",
            error_code=ErrorCode.VALIDATION_ERROR,
            error_type=ErrorType.VALIDATION,
            remediation=f"Use one of: {allowed}",
            details=details,
        )
    )
