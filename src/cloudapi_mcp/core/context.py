"""Request context propagation for tool calls and CLI commands.

Carries a correlation ID and the active project through ``contextvars`` so
audit events and response envelopes can be tied back to one request
without threading extra arguments through every call.

Usage:
    from cloudapi_mcp.core.context import sync_request_context, get_correlation_id

    with sync_request_context(project_id="my-project") as ctx:
        print(ctx.correlation_id)  # e.g., "req_a1b2c3d4e5f6"
"""

from __future__ import annotations

import secrets
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Generator, Optional

__all__ = [
    "RequestContext",
    "generate_correlation_id",
    "sync_request_context",
    "project_scope",
    "get_correlation_id",
    "get_project_id",
]

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
"""Request correlation ID for tracing requests across components."""

project_id_var: ContextVar[str] = ContextVar("project_id", default="")
"""Project the current request operates on."""


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a unique correlation ID with optional prefix.

    Format: {prefix}_{12_hex_chars}
    """
    return f"{prefix}_{secrets.token_hex(6)}"


@dataclass(frozen=True)
class RequestContext:
    correlation_id: str = ""
    project_id: str = ""


@contextmanager
def sync_request_context(
    *,
    correlation_id: Optional[str] = None,
    project_id: Optional[str] = None,
) -> Generator[RequestContext, None, None]:
    """Set request context variables for the duration of the with block.

    Works inside coroutines too, since context variables follow the
    running task.

    Args:
        correlation_id: Request ID (auto-generated if None)
        project_id: Project the request targets (inherits if None)

    Yields:
        RequestContext snapshot
    """
    corr_id = correlation_id or generate_correlation_id()
    project = project_id if project_id is not None else project_id_var.get()

    token_corr = correlation_id_var.set(corr_id)
    token_project = project_id_var.set(project)
    try:
        yield RequestContext(correlation_id=corr_id, project_id=project)
    finally:
        correlation_id_var.reset(token_corr)
        project_id_var.reset(token_project)


@contextmanager
def project_scope(project_id: str) -> Generator[RequestContext, None, None]:
    """Bind the resolved project to the current request, keeping its correlation ID."""
    with sync_request_context(
        correlation_id=get_correlation_id() or None,
        project_id=project_id,
    ) as ctx:
        yield ctx


def get_correlation_id() -> str:
    """Get the current correlation ID, or empty string if not set."""
    return correlation_id_var.get()


def get_project_id() -> str:
    """Get the project for the current request, or empty string if not set."""
    return project_id_var.get()
