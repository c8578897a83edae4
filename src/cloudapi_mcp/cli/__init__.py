"""cloudapi CLI - command-line interface for API enablement and Crashlytics.

All commands emit structured JSON to stdout for reliable parsing.
"""

from cloudapi_mcp.cli.config import CLIContext, create_context
from cloudapi_mcp.cli.logging import cli_command, get_cli_logger
from cloudapi_mcp.cli.main import cli
from cloudapi_mcp.cli.output import emit, emit_error, emit_exception, emit_success, emit_timeout
from cloudapi_mcp.cli.registry import get_context, set_context
from cloudapi_mcp.cli.resilience import (
    ENABLEMENT_TIMEOUT,
    FAST_TIMEOUT,
    MEDIUM_TIMEOUT,
    handle_keyboard_interrupt,
    with_sync_timeout,
)

__all__ = [
    # Entry point
    "cli",
    # Context
    "CLIContext",
    "create_context",
    "get_context",
    "set_context",
    # Output
    "emit",
    "emit_error",
    "emit_exception",
    "emit_success",
    "emit_timeout",
    # Logging
    "cli_command",
    "get_cli_logger",
    # Resilience
    "FAST_TIMEOUT",
    "MEDIUM_TIMEOUT",
    "ENABLEMENT_TIMEOUT",
    "with_sync_timeout",
    "handle_keyboard_interrupt",
]
