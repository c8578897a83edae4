"""Crashlytics commands for the cloudapi CLI."""

import asyncio

import click

from cloudapi_mcp.cli.logging import cli_command
from cloudapi_mcp.cli.output import emit_error, emit_exception, emit_success, emit_timeout
from cloudapi_mcp.cli.registry import get_context
from cloudapi_mcp.cli.resilience import (
    MEDIUM_TIMEOUT,
    TimeoutException,
    handle_keyboard_interrupt,
    with_sync_timeout,
)
from cloudapi_mcp.core.crashlytics import (
    CRASHLYTICS_API,
    DEFAULT_ISSUE_COUNT,
    DEFAULT_ISSUE_TYPE,
    ISSUE_TYPES,
    create_crashlytics_client,
    list_top_issues,
)
from cloudapi_mcp.core.errors import CloudApiError


@click.group("crashlytics")
def crashlytics() -> None:
    """Query Crashlytics reports."""
    pass


@crashlytics.command("top-issues")
@click.option("--app-id", required=True, help="Firebase app ID, e.g. 1:1234567890:android:abc.")
@click.option(
    "--issue-type",
    type=click.Choice(ISSUE_TYPES, case_sensitive=False),
    default=DEFAULT_ISSUE_TYPE,
    show_default=True,
    help="FATAL (crashes), NON-FATAL, or ANR.",
)
@click.option(
    "--issue-count",
    type=click.IntRange(min=1),
    default=DEFAULT_ISSUE_COUNT,
    show_default=True,
    help="Number of issues to fetch.",
)
@click.pass_context
@cli_command("crashlytics-top-issues")
@handle_keyboard_interrupt()
def top_issues_cmd(
    ctx: click.Context,
    app_id: str,
    issue_type: str,
    issue_count: int,
) -> None:
    """List the top issues for an app."""
    cli_ctx = get_context(ctx)
    try:
        project = cli_ctx.require_project()
    except ValueError as exc:
        emit_error(
            str(exc),
            code="MISSING_REQUIRED",
            error_type="validation",
            remediation="Pass --project or set CLOUDAPI_MCP_PROJECT.",
        )

    issue_type = issue_type.upper()
    client = create_crashlytics_client(cli_ctx.config)

    async def _fetch() -> dict:
        await cli_ctx.checker.best_effort_ensure(
            project, CRASHLYTICS_API, prefix="crashlytics", silent=True
        )
        return await list_top_issues(
            client, project, app_id, issue_type=issue_type, issue_count=issue_count
        )

    @with_sync_timeout(
        MEDIUM_TIMEOUT,
        "Fetching top issues timed out",
        operation=f"list top {issue_type} issues for {app_id}",
    )
    def _run() -> dict:
        return asyncio.run(_fetch())

    try:
        report = _run()
    except CloudApiError as exc:
        emit_exception(exc, project_id=project, app_id=app_id)
    except TimeoutException as exc:
        emit_timeout(exc, project_id=project, app_id=app_id)

    emit_success(
        {
            "project_id": project,
            "app_id": app_id,
            "issue_type": issue_type,
            "issue_count": issue_count,
            "report": report,
        }
    )
