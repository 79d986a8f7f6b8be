"""
Fail-soft helpers for non-critical paths.

Maintenance and summary operations (cleanup, badge counts) must never surface
a store failure to the caller. Wrapping them with fail_soft() makes that
choice visible where the function is defined; everything else propagates.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar

from pantry_alerts.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def fail_soft(default: T, event: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator: on any exception, log `event` with the error and return `default`.

        @fail_soft(default=0, event="alert_count_failed")
        def get_alert_count(self, user_id: int) -> int: ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    event,
                    operation=func.__qualname__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return default

        wrapper.fail_soft = True  # type: ignore[attr-defined]
        return wrapper

    return decorator


def is_fail_soft(func: Callable[..., Any]) -> bool:
    """True if func was wrapped with fail_soft()."""
    return bool(getattr(func, "fail_soft", False))
