"""cloudapi-mcp - MCP server and CLI for Google Cloud API enablement."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("cloudapi-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.3.0"

from cloudapi_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
