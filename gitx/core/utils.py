"""Utility functions and decorators for gitx core."""

import functools
import logging
from collections.abc import Iterable, Iterator
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")


def safe_slot(func: F) -> F:
    """Decorator to safely handle exceptions in Qt signal slots.

    An exception escaping a slot is logged and swallowed instead of
    propagating into Qt's event loop, where it would abort a running
    ``watch`` cycle.

    Usage:
        @safe_slot
        def _on_timeout(self) -> None:
            ...
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.exception(f"Exception in slot {func.__qualname__}")
            return None
    return wrapper  # type: ignore[return-value]


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive lists of at most ``size`` items."""
    size = max(1, size)
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch
