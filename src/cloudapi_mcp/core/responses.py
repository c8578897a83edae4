"""
Response envelope shared by the MCP tools and the CLI.

Every tool result and every CLI line of output has the same shape:

    {
        "success": bool,
        "data": {...},         # payload; error_code/error_type/... on failure
        "error": str | null,
        "meta": {
            "version": "response-v2",
            "request_id": "tool_abc123"?,
            "warnings": ["..."]?,
            "telemetry": { ... }?
        }
    }

``success`` reports whether the operation ran, not what it found: checking
an API that turns out to be disabled is a successful check with
``enabled: false``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from cloudapi_mcp.core.context import get_correlation_id
from cloudapi_mcp.core.errors import (
    ApiRequestError,
    BillingRequiredError,
    CloudApiError,
    EnablementTimeoutError,
    is_permission_error,
)

RESPONSE_VERSION = "response-v2"


class ErrorCode(str, Enum):
    """Machine-readable failure codes (``data.error_code``)."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED = "MISSING_REQUIRED"

    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    BILLING_REQUIRED = "BILLING_REQUIRED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    ENABLEMENT_TIMEOUT = "ENABLEMENT_TIMEOUT"


class ErrorType(str, Enum):
    """Failure categories (``data.error_type``).

    Only ``internal`` and ``unavailable`` are worth retrying as-is.
    """

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    PRECONDITION = "precondition"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"


@dataclass
class ToolResponse:
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": RESPONSE_VERSION})


def _enum_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else value


def _build_meta(
    *,
    request_id: Optional[str] = None,
    warnings: Optional[Sequence[str]] = None,
    telemetry: Optional[Mapping[str, Any]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"version": RESPONSE_VERSION}

    # Falls back to the correlation ID of the running tool call or command
    request_id = request_id or get_correlation_id()
    if request_id:
        meta["request_id"] = request_id
    if warnings:
        meta["warnings"] = list(warnings)
    if telemetry:
        meta["telemetry"] = dict(telemetry)
    if extra:
        meta.update(extra)
    return meta


def success_response(
    data: Optional[Mapping[str, Any]] = None,
    *,
    warnings: Optional[Sequence[str]] = None,
    telemetry: Optional[Mapping[str, Any]] = None,
    request_id: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
    **fields: Any,
) -> ToolResponse:
    """Build a success envelope.

    Args:
        data: Base payload.
        warnings: Non-fatal issues, surfaced in ``meta.warnings``.
        telemetry: Timing metadata.
        request_id: Overrides the request context's correlation ID.
        meta: Extra keys merged into ``meta``.
        **fields: Payload fields, merged over ``data``.
    """
    payload = {**(data or {}), **fields}
    return ToolResponse(
        success=True,
        data=payload,
        meta=_build_meta(request_id=request_id, warnings=warnings, telemetry=telemetry, extra=meta),
    )


def error_response(
    message: str,
    *,
    data: Optional[Mapping[str, Any]] = None,
    error_code: Union[ErrorCode, str] = ErrorCode.INTERNAL_ERROR,
    error_type: Union[ErrorType, str] = ErrorType.INTERNAL,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    request_id: Optional[str] = None,
    telemetry: Optional[Mapping[str, Any]] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Build a failure envelope.

    ``error_code``, ``error_type``, ``remediation`` and ``details`` land in
    ``data`` unless ``data`` already carries them.

    Example:
        >>> error_response(
        ...     "Must specify 'app_id' parameter.",
        ...     error_code=ErrorCode.MISSING_REQUIRED,
        ...     error_type=ErrorType.VALIDATION,
        ... )
    """
    payload: Dict[str, Any] = dict(data or {})
    payload.setdefault("error_code", _enum_value(error_code))
    payload.setdefault("error_type", _enum_value(error_type))
    if remediation is not None:
        payload.setdefault("remediation", remediation)
    if details:
        payload.setdefault("details", dict(details))

    return ToolResponse(
        success=False,
        data=payload,
        error=message,
        meta=_build_meta(request_id=request_id, telemetry=telemetry, extra=meta),
    )


def validation_error(
    message: str,
    *,
    field: Optional[str] = None,
    remediation: Optional[str] = None,
    code: ErrorCode = ErrorCode.VALIDATION_ERROR,
) -> ToolResponse:
    """Failure envelope for bad tool input, naming the offending ``field``."""
    return error_response(
        message,
        error_code=code,
        error_type=ErrorType.VALIDATION,
        remediation=remediation,
        details={"field": field} if field else None,
    )


def error_from_exception(
    exc: CloudApiError,
    *,
    details: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Map a ``CloudApiError`` onto the failure envelope.

    Billing and permission failures need a human to act; an enablement
    timeout usually clears on retry. Anything else is an upstream failure
    classified by its HTTP status.
    """
    merged: Dict[str, Any] = dict(details or {})
    if exc.status is not None:
        merged.setdefault("status", exc.status)

    if isinstance(exc, BillingRequiredError):
        code, kind, remediation = (
            ErrorCode.BILLING_REQUIRED,
            ErrorType.PRECONDITION,
            "Upgrade the project's billing plan, then retry.",
        )
    elif isinstance(exc, EnablementTimeoutError):
        merged.setdefault("service", exc.service)
        code, kind, remediation = (
            ErrorCode.ENABLEMENT_TIMEOUT,
            ErrorType.UNAVAILABLE,
            "Wait a few minutes and retry.",
        )
    elif is_permission_error(exc) or exc.status == 403:
        code, kind, remediation = (
            ErrorCode.PERMISSION_DENIED,
            ErrorType.AUTHORIZATION,
            "Ask a project owner to grant access or enable the API.",
        )
    elif exc.status == 401:
        code, kind, remediation = (
            ErrorCode.UNAUTHORIZED,
            ErrorType.AUTHENTICATION,
            "Refresh the access token (CLOUDAPI_MCP_ACCESS_TOKEN).",
        )
    else:
        client_side = isinstance(exc, ApiRequestError) and exc.status is not None and exc.status < 500
        code = exc.error_code
        kind = ErrorType.VALIDATION if client_side else ErrorType.UNAVAILABLE
        remediation = None

    return error_response(
        exc.message,
        error_code=code,
        error_type=kind,
        remediation=remediation,
        details=merged,
    )
