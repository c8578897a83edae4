"""JSON output helpers for the cloudapi CLI.

The CLI is JSON-first: success envelopes go to stdout, error envelopes to
stderr, both in the response-v2 shape used by the MCP tools.
"""

import json
import sys
from dataclasses import asdict
from typing import Any, Mapping, NoReturn, Sequence

from cloudapi_mcp.core.context import generate_correlation_id, get_correlation_id
from cloudapi_mcp.core.errors import CloudApiError
from cloudapi_mcp.core.resilience import TimeoutException
from cloudapi_mcp.core.responses import (
    ToolResponse,
    error_from_exception,
    error_response,
    success_response,
)


def _request_id() -> str:
    # Commands run under cli_command already carry one
    return get_correlation_id() or generate_correlation_id(prefix="cli")


def emit(data: Any) -> None:
    """Emit minified JSON to stdout."""
    print(json.dumps(data, separators=(",", ":"), default=str))


def _emit_failure(response: ToolResponse) -> NoReturn:
    response.meta["request_id"] = _request_id()
    print(json.dumps(asdict(response), separators=(",", ":"), default=str), file=sys.stderr)
    sys.exit(1)


def emit_error(
    message: str,
    code: str = "INTERNAL_ERROR",
    *,
    error_type: str = "internal",
    remediation: str | None = None,
    details: Mapping[str, Any] | None = None,
) -> NoReturn:
    """Emit error JSON to stderr and exit with code 1.

    Args:
        message: Human-readable error description.
        code: Error code in SCREAMING_SNAKE_CASE (e.g., VALIDATION_ERROR).
        error_type: Error category for routing (validation, internal, etc.).
        remediation: Actionable guidance for resolving the error.
        details: Optional additional error context.

    Raises:
        SystemExit: Always exits with code 1.
    """
    _emit_failure(
        error_response(
            message=message,
            error_code=code,
            error_type=error_type,
            remediation=remediation,
            details=details,
        )
    )


def emit_exception(exc: CloudApiError, **details: Any) -> NoReturn:
    """Emit a ``CloudApiError`` as an error envelope and exit with code 1."""
    _emit_failure(error_from_exception(exc, details=details))


def emit_timeout(exc: TimeoutException, **details: Any) -> NoReturn:
    """Emit a ``TIMEOUT`` error naming the operation that ran out of time."""
    emit_error(
        str(exc),
        code="TIMEOUT",
        error_type="unavailable",
        remediation="Wait a few minutes and retry.",
        details={
            "operation": exc.operation,
            "timeout_seconds": exc.timeout_seconds,
            **details,
        },
    )


def emit_success(
    data: Any,
    *,
    warnings: Sequence[str] | None = None,
    telemetry: Mapping[str, Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> None:
    """Emit a success envelope to stdout.

    Non-dict data is wrapped in a ``result`` key.
    """
    payload = data if isinstance(data, dict) else {"result": data}
    response = success_response(
        data=payload,
        warnings=warnings,
        telemetry=telemetry,
        meta=meta,
        request_id=_request_id(),
    )
    emit(asdict(response))
