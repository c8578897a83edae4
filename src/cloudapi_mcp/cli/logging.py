"""Request context, audit and metrics for each CLI command.

Each command runs inside a request context whose correlation ID (``cli_``
prefix) doubles as the ``meta.request_id`` of the JSON it prints, and whose
project is the one resolved from ``--project`` or the config.
"""

import logging
import time
from functools import partialmethod, wraps
from typing import Any, Callable, Optional, TypeVar

import click

from cloudapi_mcp.core.context import (
    generate_correlation_id,
    get_correlation_id,
    get_project_id,
    sync_request_context,
)
from cloudapi_mcp.core.observability import audit_log, get_metrics, redact_sensitive_data

__all__ = [
    "cli_command",
    "get_cli_logger",
]

T = TypeVar("T")


class CLILogger:
    """Logger that tags every record with the command's request ID and project.

    Extra fields are redacted and attached as ``record.cli_context``.
    """

    def __init__(self, name: str = "cloudapi_mcp.cli"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **extra: Any) -> None:
        context = {
            "request_id": get_correlation_id(),
            "project_id": get_project_id() or None,
            **redact_sensitive_data(extra),
        }
        self._logger.log(level, message, extra={"cli_context": context})

    debug = partialmethod(_log, logging.DEBUG)
    info = partialmethod(_log, logging.INFO)
    warning = partialmethod(_log, logging.WARNING)
    error = partialmethod(_log, logging.ERROR)


_cli_logger = CLILogger()


def get_cli_logger() -> CLILogger:
    """Get the global CLI logger."""
    return _cli_logger


def _resolved_project() -> str:
    click_ctx = click.get_current_context(silent=True)
    if click_ctx is None:
        return ""
    obj = click_ctx.find_root().obj
    cli_ctx = obj.get("cli_context") if isinstance(obj, dict) else None
    return getattr(cli_ctx, "project_id", None) or ""


def cli_command(
    command_name: Optional[str] = None,
    emit_metrics: bool = True,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Run a click command inside its own request context.

    The context carries a ``cli_`` correlation ID and the resolved project.
    Start and end are logged, and a ``cli_command`` audit plus metrics are
    recorded when the command returns or exits. A ``service`` argument,
    when the command takes one, is added to the labels.

    Args:
        command_name: Name used in logs, audits and metric labels.
            Defaults to the function name.
        emit_metrics: Emit ``cli.command.*`` metrics.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = command_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            service = kwargs.get("service")
            with sync_request_context(
                correlation_id=generate_correlation_id(prefix="cli"),
                project_id=_resolved_project(),
            ):
                start = time.perf_counter()
                success = True
                error_msg = None

                _cli_logger.debug(f"CLI command started: {name}", command=name, service=service)

                try:
                    return func(*args, **kwargs)
                except SystemExit as e:
                    # emit_error exits 1; emit_success returns normally
                    success = e.code in (None, 0)
                    raise
                except Exception as e:
                    success = False
                    error_msg = str(e)
                    raise
                finally:
                    duration_ms = round((time.perf_counter() - start) * 1000, 2)
                    _cli_logger.debug(
                        f"CLI command completed: {name}",
                        command=name,
                        success=success,
                        duration_ms=duration_ms,
                        error=error_msg,
                    )
                    audit_log(
                        "cli_command",
                        command=name,
                        service=service,
                        success=success,
                        duration_ms=duration_ms,
                    )

                    if emit_metrics:
                        metrics = get_metrics()
                        labels = {"command": name, "status": "success" if success else "error"}
                        if isinstance(service, str):
                            labels["service"] = service
                        metrics.counter("cli.command.invocations", labels=labels)
                        metrics.timer("cli.command.latency", duration_ms, labels={"command": name})

        return wrapper

    return decorator
