"""Exception hierarchy for cloud API operations.

All errors raised by the API client, the enablement checker and the
Crashlytics helpers derive from ``CloudApiError`` so tool and CLI
boundaries can convert them into structured responses with one handler.
"""

from typing import Any, Dict, Optional


class CloudApiError(Exception):
    """Base exception for cloud API operations.

    Attributes:
        message: Human-readable error description (mutable, see below)
        status: HTTP status code if the error came from a response
        body: Decoded JSON error body if available
        original: Underlying exception this error wraps, if any
    """

    error_code = "UPSTREAM_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Optional[Dict[str, Any]] = None,
        original: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.status = status
        self.body = body
        self.original = original

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    @message.setter
    def message(self, value: str) -> None:
        # Rewriting the message keeps status/body/original attached
        self.args = (value,)


class ApiRequestError(CloudApiError):
    """HTTP or network failure talking to an upstream API."""


class BillingRequiredError(CloudApiError):
    """The project's billing plan does not allow the requested API."""

    error_code = "BILLING_REQUIRED"


class EnablementTimeoutError(CloudApiError):
    """An API did not report ENABLED within the poll/retry budget."""

    error_code = "ENABLEMENT_TIMEOUT"

    def __init__(self, message: str, *, service: str):
        super().__init__(message)
        self.service = service


class CrashlyticsError(CloudApiError):
    """Fetching Crashlytics reports failed."""


def _error_payload(err: BaseException) -> Dict[str, Any]:
    body = getattr(err, "body", None)
    if not isinstance(body, dict):
        return {}
    payload = body.get("error")
    return payload if isinstance(payload, dict) else {}


def is_billing_error(err: BaseException) -> bool:
    """Check whether an upstream error reports a billing-plan restriction.

    The Service Usage API signals this through the error details, either
    as a ``serviceusage/billing-enabled`` precondition violation or with
    reason ``UREQ_PROJECT_BILLING_NOT_FOUND``.
    """
    details = _error_payload(err).get("details") or []
    for detail in details:
        if not isinstance(detail, dict):
            continue
        if detail.get("reason") == "UREQ_PROJECT_BILLING_NOT_FOUND":
            return True
        for violation in detail.get("violations") or []:
            if isinstance(violation, dict) and violation.get("type") == "serviceusage/billing-enabled":
                return True
    return False


def is_permission_error(err: BaseException) -> bool:
    """Check whether an upstream error has status PERMISSION_DENIED."""
    return _error_payload(err).get("status") == "PERMISSION_DENIED"
