"""Delay policy between successive polls of a refresh function."""

import random
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff with a cap and optional jitter.

    Attributes:
        initial_delay: First delay in seconds
        max_delay: Upper bound on any delay in seconds
        factor: Multiplier applied after every poll
        jitter: Random spread as a ratio of the computed delay (0.0 disables it)
        min_delay: Lower bound on any delay in seconds
        poll_interval: When set, every delay is exactly this value
    """

    initial_delay: float = 0.1
    max_delay: float = 10.0
    factor: float = 2.0
    jitter: float = 0.0
    min_delay: float = 0.0
    poll_interval: Optional[float] = None

    def __post_init__(self) -> None:
        if self.initial_delay <= 0:
            raise ValueError("initial_delay must be positive")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.factor < 1.0:
            raise ValueError("factor must be >= 1.0")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError("jitter must be between 0.0 and 1.0")
        if self.min_delay < 0:
            raise ValueError("min_delay must not be negative")
        if self.poll_interval is not None and self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

    def delay_for_attempt(self, attempt: int) -> float:
        """Calculate the delay after a given poll (0-indexed)."""
        if self.poll_interval is not None:
            return self.poll_interval

        delay = min(self.initial_delay * (self.factor ** min(attempt, 64)), self.max_delay)
        if self.jitter:
            delay += delay * random.uniform(-self.jitter, self.jitter)
        return max(min(delay, self.max_delay), self.min_delay)

    def delays(self) -> Iterator[float]:
        """Yield the delay before every subsequent poll, forever."""
        attempt = 0
        while True:
            yield self.delay_for_attempt(attempt)
            attempt += 1


# Matches the polling cadence of the Terraform plugin SDK: 100ms doubling up to 10s
DEFAULT_BACKOFF = BackoffPolicy()
