"""Unified action-based MCP tools."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .apis import APIS_METADATA, register_unified_apis_tool
from .crashlytics import CRASHLYTICS_METADATA, register_unified_crashlytics_tool


if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from mcp.server.fastmcp import FastMCP
    from cloudapi_mcp.config import ServerConfig

logger = logging.getLogger(__name__)

_REGISTRARS = (
    (APIS_METADATA, register_unified_apis_tool),
    (CRASHLYTICS_METADATA, register_unified_crashlytics_tool),
)


def register_unified_tools(mcp: "FastMCP", config: "ServerConfig") -> None:
    """Register the unified tool routers whose feature group is enabled."""
    for metadata, register in _REGISTRARS:
        if not config.feature_enabled(metadata.feature):
            logger.debug(f"Skipping tools for disabled feature {metadata.feature}")
            continue
        register(mcp, config)


__all__ = [
    "register_unified_tools",
    "register_unified_apis_tool",
    "register_unified_crashlytics_tool",
]
