"""Wall-clock timeouts and Ctrl+C handling for CLI commands.

The enablement checker bounds its own polling, but a hung connection or a
slow upstream can still stall a command. ``with_sync_timeout`` puts a hard
ceiling on the whole call with ``SIGALRM``; it is a no-op on Windows.
"""

import signal
import sys
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, Optional, TypeVar

from cloudapi_mcp.core.resilience import (
    ENABLEMENT_TIMEOUT,
    FAST_TIMEOUT,
    MEDIUM_TIMEOUT,
    TimeoutException,
)

__all__ = [
    "FAST_TIMEOUT",
    "MEDIUM_TIMEOUT",
    "ENABLEMENT_TIMEOUT",
    "TimeoutException",
    "with_sync_timeout",
    "handle_keyboard_interrupt",
]

T = TypeVar("T")


@contextmanager
def _alarm(seconds: float, message: str, operation: str) -> Iterator[None]:
    if sys.platform == "win32":
        yield
        return

    def _expired(signum: int, frame: Any) -> None:
        raise TimeoutException(message, timeout_seconds=float(seconds), operation=operation)

    previous = signal.signal(signal.SIGALRM, _expired)
    # signal.alarm only takes whole seconds
    signal.alarm(max(1, int(seconds)))
    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, previous)


def with_sync_timeout(
    seconds: float = MEDIUM_TIMEOUT,
    error_message: Optional[str] = None,
    *,
    operation: Optional[str] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Abort the decorated call with ``TimeoutException`` after ``seconds``.

    Args:
        seconds: Ceiling for the whole call (default: MEDIUM_TIMEOUT).
        error_message: Message for the exception.
        operation: What was running, e.g. ``"enable foo.googleapis.com on p1"``.
            Defaults to the function name.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        label = operation or func.__name__
        message = error_message or f"{label} timed out after {seconds:g}s"

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with _alarm(seconds, message, label):
                return func(*args, **kwargs)

        return wrapper

    return decorator


def handle_keyboard_interrupt() -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Turn Ctrl+C into exit code 130 (128 + SIGINT) instead of a traceback."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except KeyboardInterrupt:
                sys.exit(130)

        return wrapper

    return decorator
