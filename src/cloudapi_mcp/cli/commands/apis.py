"""API enablement commands for the cloudapi CLI."""

import asyncio

import click

from cloudapi_mcp.cli.logging import cli_command, get_cli_logger
from cloudapi_mcp.cli.output import emit_error, emit_exception, emit_success, emit_timeout
from cloudapi_mcp.cli.registry import get_context
from cloudapi_mcp.cli.resilience import (
    ENABLEMENT_TIMEOUT,
    MEDIUM_TIMEOUT,
    TimeoutException,
    handle_keyboard_interrupt,
    with_sync_timeout,
)
from cloudapi_mcp.core.enablement import enable_api_uri, normalize_service_name
from cloudapi_mcp.core.errors import CloudApiError

logger = get_cli_logger()


def _project_or_exit(ctx: click.Context) -> str:
    try:
        return get_context(ctx).require_project()
    except ValueError as exc:
        emit_error(
            str(exc),
            code="MISSING_REQUIRED",
            error_type="validation",
            remediation="Pass --project or set CLOUDAPI_MCP_PROJECT.",
        )


@click.group("apis")
def apis() -> None:
    """Check and enable Google APIs on a project."""
    pass


@apis.command("check")
@click.argument("service")
@click.pass_context
@cli_command("apis-check")
@handle_keyboard_interrupt()
def apis_check_cmd(ctx: click.Context, service: str) -> None:
    """Report whether SERVICE is enabled on the project.

    SERVICE is an API name such as firebasecrashlytics.googleapis.com, or
    a URL on the API host.
    """
    project = _project_or_exit(ctx)
    service = normalize_service_name(service)
    checker = get_context(ctx).checker

    @with_sync_timeout(
        MEDIUM_TIMEOUT,
        f"Checking {service} timed out",
        operation=f"check {service} on {project}",
    )
    def _run() -> bool:
        return asyncio.run(checker.check(project, service, silent=True))

    try:
        enabled = _run()
    except CloudApiError as exc:
        emit_exception(exc, project_id=project, service=service)
    except TimeoutException as exc:
        emit_timeout(exc, project_id=project, service=service)

    emit_success({"project_id": project, "service": service, "enabled": enabled})


@apis.command("ensure")
@click.argument("service")
@click.pass_context
@cli_command("apis-ensure")
@handle_keyboard_interrupt()
def apis_ensure_cmd(ctx: click.Context, service: str) -> None:
    """Enable SERVICE on the project if needed and wait until it is active.

    Polls every 10 seconds and gives up after two enable attempts.
    """
    project = _project_or_exit(ctx)
    service = normalize_service_name(service)
    checker = get_context(ctx).checker

    @with_sync_timeout(
        ENABLEMENT_TIMEOUT,
        f"Enabling {service} timed out",
        operation=f"enable {service} on {project}",
    )
    def _run() -> None:
        asyncio.run(checker.ensure(project, service, prefix="apis"))

    logger.info(f"Ensuring {service} on {project}", service=service)
    try:
        _run()
    except CloudApiError as exc:
        emit_exception(exc, project_id=project, service=service)
    except TimeoutException as exc:
        emit_timeout(exc, project_id=project, service=service)

    emit_success({"project_id": project, "service": service, "enabled": True})


@apis.command("link")
@click.argument("service")
@click.pass_context
@cli_command("apis-link")
def apis_link_cmd(ctx: click.Context, service: str) -> None:
    """Print the console link for enabling SERVICE by hand."""
    project = _project_or_exit(ctx)
    service = normalize_service_name(service)
    emit_success(
        {
            "project_id": project,
            "service": service,
            "link": enable_api_uri(project, service),
        }
    )
