"""FastMCP server for cloudapi-mcp.

Exposes the unified action-routed tools (``apis``, ``crashlytics``) over
stdio. Tool groups can be narrowed with ``CLOUDAPI_MCP_FEATURES``.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from cloudapi_mcp.config import ServerConfig, get_config
from cloudapi_mcp.core.observability import audit_log
from cloudapi_mcp.tools.unified import register_unified_tools

logger = logging.getLogger(__name__)


def create_server(config: Optional[ServerConfig] = None) -> FastMCP:
    """Create and configure the FastMCP server instance."""

    if config is None:
        config = get_config()

    config.setup_logging()

    mcp = FastMCP(name=config.server_name)
    register_unified_tools(mcp, config)

    if not config.project_id:
        logger.warning(
            "No default project configured; tools need an explicit project_id "
            "(set CLOUDAPI_MCP_PROJECT to change this)"
        )

    logger.info(f"Server created: {config.server_name} v{config.server_version}")
    return mcp


def main() -> None:
    """Main entry point for the cloudapi-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info(f"Starting {config.server_name} v{config.server_version}")
        audit_log("server_lifecycle", event="start", version=config.server_version)

        server.run()

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except BaseException as exc:
        logger.error(f"Server error: {type(exc).__name__}: {exc}")
        audit_log("server_lifecycle", event="error", error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
