"""cloudapi CLI module entry point.

Enables running the CLI via: python -m cloudapi_mcp.cli
"""

from cloudapi_mcp.cli.main import cli

if __name__ == "__main__":
    cli()
