"""Enablement cache commands for the cloudapi CLI.

Inspect and reset the on-disk record of APIs known to be enabled.
"""

from typing import Optional

import click

from cloudapi_mcp.cli.logging import cli_command, get_cli_logger
from cloudapi_mcp.cli.output import emit_success
from cloudapi_mcp.cli.registry import get_context
from cloudapi_mcp.cli.resilience import (
    FAST_TIMEOUT,
    handle_keyboard_interrupt,
    with_sync_timeout,
)

logger = get_cli_logger()


@click.group("cache")
def cache() -> None:
    """API enablement cache management."""
    pass


@cache.command("show")
@click.option("--project", "project_filter", help="Only show entries for this project.")
@click.pass_context
@cli_command("cache-show")
@handle_keyboard_interrupt()
@with_sync_timeout(FAST_TIMEOUT, "Cache lookup timed out", operation="read enablement cache")
def cache_show_cmd(ctx: click.Context, project_filter: Optional[str]) -> None:
    """Show cached API enablement entries."""
    entries = get_context(ctx).checker.cache.entries()
    if project_filter:
        entries = {project_filter: entries.get(project_filter, {})}

    emit_success(
        {
            "entries": entries,
            "count": sum(len(services) for services in entries.values()),
        }
    )


@cache.command("clear")
@click.option("--project", "project_filter", help="Only clear entries for this project.")
@click.pass_context
@cli_command("cache-clear")
@handle_keyboard_interrupt()
@with_sync_timeout(FAST_TIMEOUT, "Cache clear timed out", operation="clear enablement cache")
def cache_clear_cmd(ctx: click.Context, project_filter: Optional[str]) -> None:
    """Clear cached API enablement entries.

    Without --project, clears every entry. The next check for a cleared
    API queries the Service Usage API again.
    """
    deleted = get_context(ctx).checker.cache.clear(project_filter)
    logger.info(f"Cleared {deleted} cache entries", project_filter=project_filter)

    emit_success(
        {
            "entries_deleted": deleted,
            "filters": {"project_id": project_filter} if project_filter else None,
        }
    )
