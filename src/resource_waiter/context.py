"""
Cancellation signal threaded through a wait.

A WaitContext is owned by the caller. Cancelling it, or letting its deadline
pass, stops any wait using it at the next poll or in the middle of a sleep.
"""

import threading
import time
from typing import Callable, Optional


class WaitContext:
    """Cancellable context with an optional deadline on the monotonic clock."""

    def __init__(self, deadline: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._cancelled = threading.Event()
        self._deadline = deadline
        self._clock = clock
        self._reason = "wait cancelled"

    @classmethod
    def with_timeout(cls, seconds: float, clock: Callable[[], float] = time.monotonic) -> "WaitContext":
        """Context whose deadline expires `seconds` from now."""
        return cls(deadline=clock() + seconds, clock=clock)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "wait cancelled") -> None:
        self._reason = reason
        self._cancelled.set()

    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    def done(self) -> bool:
        """True once the context has been cancelled or its deadline has passed."""
        if self._cancelled.is_set():
            return True
        if self.deadline_exceeded():
            self._reason = "context deadline exceeded"
            return True
        return False

    def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, waking early if the context is cancelled.

        Returns:
            True if the full interval elapsed, False if the context finished first
        """
        if self._deadline is not None:
            seconds = min(seconds, max(self._deadline - self._clock(), 0.0))
        if self._cancelled.wait(timeout=max(seconds, 0.0)):
            return False
        return not self.done()
