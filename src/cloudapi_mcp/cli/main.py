"""cloudapi CLI entry point.

JSON-only output for AI coding assistants and scripts.
"""

import click

from cloudapi_mcp.cli.config import create_context
from cloudapi_mcp.cli.registry import register_all_commands


@click.group()
@click.option(
    "--project",
    envvar="CLOUDAPI_MCP_PROJECT",
    help="Project ID to operate on",
)
@click.pass_context
def cli(ctx: click.Context, project: str | None) -> None:
    """cloudapi - check and enable Google Cloud APIs, query Crashlytics.

    All commands output JSON for reliable parsing.
    """
    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = create_context(project=project)


register_all_commands(cli)


if __name__ == "__main__":
    cli()
