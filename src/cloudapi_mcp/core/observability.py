"""
Observability utilities for cloudapi-mcp.

Metrics and audit events are emitted as structured records on dedicated
loggers (``cloudapi_mcp.core.observability.metrics`` and ``.audit``) so a
log aggregator can split them from ordinary log lines. Audit events pick up
the correlation ID and project of the active request context.

FastMCP integration:

    from cloudapi_mcp.core.observability import mcp_tool, audit_log

    @mcp.tool()
    @mcp_tool(tool_name="apis")
    async def apis(action: str) -> dict:
        ...
"""

import asyncio
import functools
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Final, List, Optional, Tuple, TypeVar, Union

from cloudapi_mcp.core.context import (
    generate_correlation_id,
    get_correlation_id,
    get_project_id,
    sync_request_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Redaction
# =============================================================================

SENSITIVE_PATTERNS: Final[List[Tuple[str, str]]] = [
    # Google OAuth access tokens, as printed by `gcloud auth print-access-token`
    (r"ya29\.[a-zA-Z0-9_\-\.]+", "GOOGLE_OAUTH_TOKEN"),
    (r"(?i)bearer\s+([a-zA-Z0-9_\-\.]+)", "BEARER_TOKEN"),
    (
        r"(?i)(access[_-]?token|api[_-]?key)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-\.]{20,})['\"]?",
        "CREDENTIAL",
    ),
    # Service account key files
    (r"-----BEGIN (?:RSA )?PRIVATE KEY-----", "PRIVATE_KEY"),
]
"""Regex and label pairs for secrets that may show up in free text."""

_SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "token",
        "api_key",
        "authorization",
        "private_key",
        "client_secret",
        "credentials",
    }
)


def redact_sensitive_data(data: Any, *, max_depth: int = 10) -> Any:
    """Return a copy of ``data`` with credentials masked.

    Dict values under a sensitive key are replaced outright; strings are
    scanned with ``SENSITIVE_PATTERNS``. Lists, tuples and nested dicts are
    walked up to ``max_depth`` levels.

    Example:
        >>> redact_sensitive_data({"access_token": "ya29.abc", "project": "p1"})
        {'access_token': '[REDACTED:ACCESS_TOKEN]', 'project': 'p1'}
    """
    if max_depth <= 0:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, str):
        for pattern, label in SENSITIVE_PATTERNS:
            data = re.sub(pattern, f"[REDACTED:{label}]", data)
        return data

    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            normalized = str(key).lower().replace("-", "_")
            if normalized in _SENSITIVE_KEYS:
                redacted[key] = f"[REDACTED:{normalized.upper()}]"
            else:
                redacted[key] = redact_sensitive_data(value, max_depth=max_depth - 1)
        return redacted

    if isinstance(data, (list, tuple)):
        items = [redact_sensitive_data(item, max_depth=max_depth - 1) for item in data]
        return tuple(items) if isinstance(data, tuple) else items

    return data


# =============================================================================
# Metrics
# =============================================================================


class MetricType(Enum):
    COUNTER = "counter"
    TIMER = "timer"


@dataclass
class Metric:
    name: str
    value: Union[int, float]
    metric_type: MetricType
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.metric_type.value,
            "labels": self.labels,
            "timestamp": self.timestamp,
        }


class MetricsCollector:
    """Emits counters and timers as ``METRIC:`` log records.

    The structured payload rides on ``record.metric``.
    """

    def __init__(self, prefix: str = "cloudapi_mcp"):
        self.prefix = prefix
        self._logger = logging.getLogger(f"{__name__}.metrics")

    def _emit(
        self,
        metric_type: MetricType,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]],
    ) -> None:
        metric = Metric(name=name, value=value, metric_type=metric_type, labels=labels or {})
        self._logger.info(f"METRIC: {self.prefix}.{name}", extra={"metric": metric.to_dict()})

    def counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        self._emit(MetricType.COUNTER, name, value, labels)

    def timer(self, name: str, duration_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Record a duration in milliseconds."""
        self._emit(MetricType.TIMER, name, duration_ms, labels)


_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return _metrics


# =============================================================================
# Audit
# =============================================================================


class AuditEventType(Enum):
    TOOL_INVOCATION = "tool_invocation"
    CLI_COMMAND = "cli_command"
    SERVER_LIFECYCLE = "server_lifecycle"
    API_ENABLEMENT = "api_enablement"
    PERMISSION_DENIED = "permission_denied"


@dataclass
class AuditEvent:
    """One audit record.

    ``correlation_id`` and ``project_id`` default to the active request
    context.
    """

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    correlation_id: Optional[str] = None
    project_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None
        if self.project_id is None:
            self.project_id = get_project_id() or None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.project_id:
            result["project_id"] = self.project_id
        return result


class AuditLogger:
    """Writes ``AUDIT:`` records with the payload on ``record.audit``."""

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        self._logger.info(f"AUDIT: {event.event_type.value}", extra={"audit": event.to_dict()})


_audit = AuditLogger()


def audit_log(event_type: str, **details: Any) -> None:
    """Record an audit event.

    Args:
        event_type: One of the ``AuditEventType`` values. Unknown types are
            recorded as ``tool_invocation`` with ``original_event_type`` set.
        **details: Event details, redacted before logging. A ``project_id``
            detail overrides the project from the request context.
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.TOOL_INVOCATION
        details["original_event_type"] = event_type

    project_id = details.pop("project_id", None)
    _audit.log(
        AuditEvent(
            event_type=event_enum,
            details=redact_sensitive_data(details),
            project_id=project_id,
        )
    )


def mcp_tool(
    tool_name: Optional[str] = None, emit_metrics: bool = True, audit: bool = True
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Wrap an MCP tool handler with request context, metrics and audit.

    Runs the handler inside a request context (reusing an active correlation
    ID), then emits ``tool.invocations`` and ``tool.latency`` metrics
    labelled with tool, action and status, plus a ``tool_invocation`` audit
    event.

    Args:
        tool_name: Name used in metric labels and audits (default: function name)
        emit_metrics: Emit ``tool.invocations`` and ``tool.latency``
        audit: Write a ``tool_invocation`` audit per call
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = tool_name or func.__name__

        def _record(start: float, error: Optional[BaseException], kwargs: Dict[str, Any]) -> None:
            duration_ms = (time.perf_counter() - start) * 1000
            status = "error" if error is not None else "success"
            action = kwargs.get("action")

            if emit_metrics:
                labels = {"tool": name, "status": status}
                if isinstance(action, str):
                    labels["action"] = action
                _metrics.counter("tool.invocations", labels=labels)
                _metrics.timer("tool.latency", duration_ms, labels={"tool": name})

            if audit:
                audit_log(
                    "tool_invocation",
                    tool=name,
                    action=action,
                    success=error is None,
                    duration_ms=round(duration_ms, 2),
                    error=str(error) if error is not None else None,
                    project_id=kwargs.get("project_id"),
                )

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            corr_id = get_correlation_id() or generate_correlation_id(prefix="tool")
            with sync_request_context(correlation_id=corr_id):
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    _record(start, exc, kwargs)
                    raise
                _record(start, None, kwargs)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            corr_id = get_correlation_id() or generate_correlation_id(prefix="tool")
            with sync_request_context(correlation_id=corr_id):
                start = time.perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    _record(start, exc, kwargs)
                    raise
                _record(start, None, kwargs)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator
