from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .errors import OperationCancelledError


class CacheContext:
    """Cancellation flag plus optional deadline shared with cache operations.

    Operations call ``check()`` at entry and, for sync, before each archive
    entry. The flag is thread-safe so another thread may ``cancel()``.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if timeout_seconds is not None and timeout_seconds < 0:
            raise ValueError("timeout_seconds must be >= 0")

        self._clock = clock
        self._cancelled = threading.Event()
        self.deadline = None if timeout_seconds is None else clock() + timeout_seconds

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self) -> None:
        if self._cancelled.is_set():
            raise OperationCancelledError("cancelled")
        if self.deadline is not None and self._clock() >= self.deadline:
            raise OperationCancelledError("deadline exceeded")


def check_context(ctx: CacheContext | None) -> None:
    if ctx is not None:
        ctx.check()
