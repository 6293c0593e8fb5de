"""Per-request deadline shared by every storage call made during one operation.

The deadline lives in a context variable so it follows the request through
service and store calls without threading an extra argument everywhere.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from pet_of_the_day.core.config import settings
from pet_of_the_day.core.errors import RequestTimeoutError


_deadline: ContextVar[float | None] = ContextVar("request_deadline", default=None)


@contextmanager
def request_deadline(timeout_seconds: float | None = None) -> Iterator[None]:
    """Bound everything inside the block by a deadline.

    Falls back to ``settings.request_timeout_seconds``; ``None`` means no limit.
    A nested block can only shorten an outer deadline, never extend it.
    """
    seconds = timeout_seconds if timeout_seconds is not None else settings.request_timeout_seconds
    if seconds is None:
        yield
        return

    new_deadline = time.monotonic() + seconds
    outer = _deadline.get()
    if outer is not None:
        new_deadline = min(new_deadline, outer)

    token = _deadline.set(new_deadline)
    try:
        yield
    finally:
        _deadline.reset(token)


def remaining_time() -> float | None:
    """Seconds left before the current deadline, or None when unbounded."""
    current = _deadline.get()
    if current is None:
        return None
    return current - time.monotonic()


def check_deadline(operation: str = "storage call") -> None:
    """Raise RequestTimeoutError if the current request deadline has passed."""
    left = remaining_time()
    if left is not None and left <= 0:
        msg = f"Request deadline exceeded before {operation}"
        raise RequestTimeoutError(msg)
