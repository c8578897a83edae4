"""MCP tools for cloudapi-mcp."""

from cloudapi_mcp.tools.unified import register_unified_tools

__all__ = ["register_unified_tools"]
