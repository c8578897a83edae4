"""Unified API enablement tool with action routing."""

import logging
from dataclasses import asdict
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from cloudapi_mcp.config import ServerConfig
from cloudapi_mcp.core.context import project_scope
from cloudapi_mcp.core.enablement import (
    enable_api_uri,
    get_enablement_checker,
    normalize_service_name,
)
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

APIS_METADATA = ToolMetadata(feature="core", requires_project=True, requires_auth=True)

_ACTION_SUMMARY = {
    "check": "Report whether an API is enabled on the project",
    "ensure": "Enable an API if needed and wait until it is active",
    "link": "Console link for enabling an API by hand",
}


def _missing_service() -> dict:
    return asdict(
        validation_error(
            "Must specify 'service' parameter.",
            field="service",
            remediation="Pass an API name such as firebasecrashlytics.googleapis.com.",
            code=ErrorCode.MISSING_REQUIRED,
        )
    )


async def _handle_check(
    *,
    config: ServerConfig,
    service: Optional[str] = None,
    project_id: Optional[str] = None,
) -> dict:
    if not service:
        return _missing_service()
    project, error = preflight(APIS_METADATA, config, project_id)
    if error:
        return error

    service = normalize_service_name(service)
    try:
        with project_scope(project):
            enabled = await get_enablement_checker().check(project, service, silent=True)
    except CloudApiError as exc:
        return exception_to_dict(exc, project_id=project, service=service)

    return asdict(success_response(project_id=project, service=service, enabled=enabled))


async def _handle_ensure(
    *,
    config: ServerConfig,
    service: Optional[str] = None,
    project_id: Optional[str] = None,
) -> dict:
    if not service:
        return _missing_service()
    project, error = preflight(APIS_METADATA, config, project_id)
    if error:
        return error

    service = normalize_service_name(service)
    checker = get_enablement_checker()
    try:
        with project_scope(project):
            if config.enablement.auto_enable:
                await checker.ensure(project, service, prefix="apis")
                enabled = True
            else:
                enabled = await checker.check(project, service, silent=True)
    except CloudApiError as exc:
        return exception_to_dict(exc, project_id=project, service=service)

    if enabled:
        return asdict(success_response(project_id=project, service=service, enabled=True))

    link = enable_api_uri(project, service)
    return asdict(
        success_response(
            project_id=project,
            service=service,
            enabled=False,
            link=link,
            warnings=[
                f"API {service} is not enabled and automatic enablement is "
                f"turned off. Enable it at {link}"
            ],
        )
    )


async def _handle_link(
    *,
    config: ServerConfig,
    service: Optional[str] = None,
    project_id: Optional[str] = None,
) -> dict:
    if not service:
        return _missing_service()
    # Building a link needs no credentials
    project, error = preflight(ToolMetadata(feature="core", requires_project=True), config, project_id)
    if error:
        return error

    service = normalize_service_name(service)
    return asdict(
        success_response(
            project_id=project,
            service=service,
            link=enable_api_uri(project, service),
        )
    )


def _build_router() -> ActionRouter:
    definitions = [
        ActionDefinition(name="check", handler=_handle_check, summary=_ACTION_SUMMARY["check"]),
        ActionDefinition(
            name="ensure",
            handler=_handle_ensure,
            summary=_ACTION_SUMMARY["ensure"],
            aliases=("enable",),
        ),
        ActionDefinition(name="link", handler=_handle_link, summary=_ACTION_SUMMARY["link"]),
    ]
    return ActionRouter(tool_name="apis", actions=definitions)


_APIS_ROUTER = _build_router()


async def _dispatch_apis_action(action: str, **kwargs: Any) -> dict:
    try:
        handler_result = _APIS_ROUTER.dispatch(action=action, **kwargs)
    except ActionRouterError as exc:
        return unsupported_action(_APIS_ROUTER, action, exc)
    return await handler_result


def register_unified_apis_tool(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the consolidated API enablement tool."""

    @canonical_tool(
        mcp,
        canonical_name="apis",
    )
    async def apis(
        action: str,
        service: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> dict:
        """Check or enable Google APIs on a project via `action` parameter.

        Args:
            action: One of "check", "ensure", or "link".
            service: API name, e.g. "firebasecrashlytics.googleapis.com".
                A URL on the API host is accepted too.
            project_id: Project to act on. Defaults to the configured project.
        """

        return await _dispatch_apis_action(
            action=action,
            config=config,
            service=service,
            project_id=project_id,
        )

    logger.debug("Registered unified apis tool")


__all__ = [
    "APIS_METADATA",
    "register_unified_apis_tool",
]
