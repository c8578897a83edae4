"""Fire-and-forget product analytics events.

Events are emitted as counter metrics plus an audit record. Emission never
raises: analytics must not change the outcome of the operation that
triggered it.
"""

import logging
from typing import Any, Mapping, Optional

from cloudapi_mcp.core.observability import audit_log, get_metrics

logger = logging.getLogger(__name__)


def track_event(name: str, params: Optional[Mapping[str, Any]] = None) -> None:
    """Record an analytics event.

    Args:
        name: Event name, e.g. ``api_enabled``
        params: Event parameters, e.g. ``{"api_name": "foo.googleapis.com"}``
    """
    try:
        labels = {str(k): str(v) for k, v in (params or {}).items()}
        get_metrics().counter(f"analytics.{name}", labels=labels)
        audit_log("api_enablement", event=name, **labels)
    except Exception as exc:
        logger.debug(f"Failed to record analytics event {name}: {exc}")
