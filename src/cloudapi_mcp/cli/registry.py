"""Command registry for the cloudapi CLI.

Centralized registration of all command groups.
"""

from typing import Optional

import click

from cloudapi_mcp.cli.config import CLIContext

# Module-level storage for CLI context (for testing)
_cli_context: Optional[CLIContext] = None


def set_context(ctx: CLIContext) -> None:
    """Set the CLI context at module level."""
    global _cli_context
    _cli_context = ctx


def get_context(ctx: Optional[click.Context] = None) -> CLIContext:
    """Get CLI context from Click context or module-level storage.

    Raises:
        RuntimeError: If no context is available.
    """
    if ctx is not None:
        return ctx.obj["cli_context"]

    if _cli_context is not None:
        return _cli_context

    raise RuntimeError("No CLI context available. Call set_context() first.")


def register_all_commands(cli: click.Group) -> None:
    """Register all command groups with the CLI.

    Command groups are imported lazily to keep startup fast.
    """
    from cloudapi_mcp.cli.commands import apis, cache, crashlytics

    cli.add_command(apis)
    cli.add_command(cache)
    cli.add_command(crashlytics)

    @cli.command("version")
    @click.pass_context
    def version(ctx: click.Context) -> None:
        """Show CLI version information."""
        from cloudapi_mcp import __version__
        from cloudapi_mcp.cli.output import emit

        cli_ctx = get_context(ctx)
        emit(
            {
                "version": __version__,
                "name": "cloudapi",
                "json_only": True,
                "project": cli_ctx.project_id,
            }
        )
