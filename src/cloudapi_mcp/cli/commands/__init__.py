"""CLI command groups.

The CLI is organized into domain groups (`apis`, `cache`, `crashlytics`).
"""

from cloudapi_mcp.cli.commands.apis import apis
from cloudapi_mcp.cli.commands.cache import cache
from cloudapi_mcp.cli.commands.crashlytics import crashlytics

__all__ = [
    "apis",
    "cache",
    "crashlytics",
]
