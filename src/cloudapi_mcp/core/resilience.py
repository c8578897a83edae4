"""
Timeout budgets for cloudapi-mcp operations.

Timeout Budget Categories
=========================

    FAST_TIMEOUT (5s)         - Local cache reads and writes
    MEDIUM_TIMEOUT (60s)      - Single API calls (status checks, reports)
    ENABLEMENT_TIMEOUT (300s) - Enable-and-wait, up to two enable attempts
                                with 13 polls each at 10s intervals
"""

from typing import Optional


FAST_TIMEOUT: float = 5.0
MEDIUM_TIMEOUT: float = 60.0
ENABLEMENT_TIMEOUT: float = 300.0


class TimeoutException(Exception):
    """Operation timed out.

    Attributes:
        timeout_seconds: The timeout duration that was exceeded.
        operation: Name of the operation that timed out.
    """

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.operation = operation
