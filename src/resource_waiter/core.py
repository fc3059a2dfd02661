"""
Convergence waiter.

This module contains the generic state-change loop every resource uses to turn
an asynchronously provisioned AWS resource into a synchronous operation: poll
a refresh function with backoff until the reported label is a target label, an
unexpected label, a fatal error, the timeout, or a cancellation.
"""

import enum
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional

from ..utils import is_throttling_error, setup_logging
from .backoff import DEFAULT_BACKOFF, BackoffPolicy
from .context import WaitContext
from .errors import (
    RemoteAPIError,
    ResourceNotFoundError,
    UnexpectedStateError,
    WaitCancelledError,
    WaitError,
    WaitTimeoutError,
)
from .types import ABSENT, FailureReasonFunc, LabelSet, PollResult, RefreshFunc, T

logger = setup_logging()


class OutcomeKind(enum.Enum):
    """Terminal classification of a wait."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    UNEXPECTED_STATE = "unexpected_state"
    REMOTE_ERROR = "remote_error"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class WaitSpec(Generic[T]):
    """
    Configuration for one wait.

    Attributes:
        pending: Labels meaning the operation is still in progress
        target: Labels meaning success; empty means the resource disappearing is success
        refresh: Single-poll function, called with the WaitContext
        timeout: Wall-clock limit in seconds, measured from the start of the wait
        backoff: Delay policy between polls
        delay: Seconds to wait before the first poll
        not_found_checks: Consecutive absences tolerated while a non-empty target is expected
        continuous_target_occurrence: Consecutive target labels required for success
        is_transient: Predicate for refresh errors that should be polled through
        failure_reason: Extracts a failure reason from a payload, or returns None
    """

    pending: LabelSet
    target: LabelSet
    refresh: RefreshFunc
    timeout: float
    backoff: BackoffPolicy = DEFAULT_BACKOFF
    delay: float = 0.0
    not_found_checks: int = 20
    continuous_target_occurrence: int = 1
    is_transient: Callable[[BaseException], bool] = is_throttling_error
    failure_reason: Optional[FailureReasonFunc] = None

    def __post_init__(self) -> None:
        # Accept any iterable of labels
        object.__setattr__(self, "pending", frozenset(self.pending))
        object.__setattr__(self, "target", frozenset(self.target))

        overlap = self.pending & self.target
        if overlap:
            raise ValueError(f"labels cannot be both pending and target: {sorted(overlap)}")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.delay < 0:
            raise ValueError("delay must not be negative")
        if self.not_found_checks < 1:
            raise ValueError("not_found_checks must be at least 1")
        if self.continuous_target_occurrence < 1:
            raise ValueError("continuous_target_occurrence must be at least 1")


@dataclass(frozen=True)
class WaitOutcome(Generic[T]):
    """Final result of a wait: the last payload seen plus a terminal classification."""

    kind: OutcomeKind
    payload: Optional[T] = None
    state: Optional[str] = None
    error: Optional[WaitError] = None
    attempts: int = 0
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def unwrap(self) -> Optional[T]:
        """Return the payload, or raise the error of an unsuccessful wait."""
        if self.error is not None:
            raise self.error
        return self.payload


def _reason(spec: WaitSpec, payload: Optional[T]) -> Optional[str]:
    if spec.failure_reason is None or payload is None:
        return None
    return spec.failure_reason(payload) or None


def wait_for_state(
    spec: WaitSpec[T],
    ctx: Optional[WaitContext] = None,
    clock: Callable[[], float] = time.monotonic,
) -> WaitOutcome[T]:
    """
    Poll spec.refresh until the resource converges.

    The calling thread blocks for the whole wait and only yields while
    sleeping between polls. Nothing is retried once ctx is cancelled.

    Args:
        spec: Labels, refresh function, timeout and backoff for this wait
        ctx: Caller's cancellation context; a fresh one is used when omitted
        clock: Monotonic clock used for the timeout

    Returns:
        WaitOutcome with the last payload and the terminal classification
    """
    if ctx is None:
        ctx = WaitContext(clock=clock)

    start = clock()
    delays = spec.backoff.delays()
    attempts = 0
    payload: Optional[T] = None
    state: Optional[str] = None
    last_error: Optional[BaseException] = None
    not_found_ticks = 0
    target_occurrence = 0

    def finish(kind: OutcomeKind, error: Optional[WaitError] = None) -> WaitOutcome[T]:
        return WaitOutcome(
            kind=kind,
            payload=payload,
            state=state,
            error=error,
            attempts=attempts,
            elapsed=clock() - start,
        )

    def cancelled() -> WaitOutcome[T]:
        logger.info(f"Wait cancelled after {attempts} polls: {ctx.reason}")
        return finish(OutcomeKind.CANCELLED, WaitCancelledError(ctx.reason))

    def timed_out() -> WaitOutcome[T]:
        error = WaitTimeoutError(spec.timeout, state, spec.target, last_error or _reason(spec, payload))
        logger.warning(f"Wait timed out after {attempts} polls: {error}")
        return finish(OutcomeKind.TIMEOUT, error)

    if spec.delay > 0 and not ctx.sleep(min(spec.delay, spec.timeout)):
        return cancelled()

    while True:
        if ctx.done():
            return cancelled()

        result: PollResult[T] = spec.refresh(ctx)
        attempts += 1

        if result.error is not None:
            if not spec.is_transient(result.error):
                logger.warning(f"Refresh failed with a fatal error on poll {attempts}: {result.error}")
                error = RemoteAPIError(result.error)
                error.__cause__ = result.error
                return finish(OutcomeKind.REMOTE_ERROR, error)
            logger.debug(f"Transient error on poll {attempts}, polling again: {result.error}")
            last_error = result.error
        else:
            payload = result.payload
            state = result.state
            logger.debug(f"Poll {attempts}: state '{state}'")

            if state in spec.target:
                not_found_ticks = 0
                target_occurrence += 1
                if target_occurrence >= spec.continuous_target_occurrence:
                    reason = _reason(spec, payload)
                    if reason:
                        logger.warning(f"Target state '{state}' reported a failure: {reason}")
                        return finish(OutcomeKind.UNEXPECTED_STATE, UnexpectedStateError(state, spec.target, reason))
                    logger.info(f"Reached target state '{state}' after {attempts} polls")
                    return finish(OutcomeKind.SUCCESS)
            elif state == ABSENT and ABSENT not in spec.pending:
                target_occurrence = 0
                if not spec.target:
                    logger.info(f"Resource is gone after {attempts} polls")
                    return finish(OutcomeKind.SUCCESS)
                not_found_ticks += 1
                if not_found_ticks > spec.not_found_checks:
                    error = ResourceNotFoundError(
                        f"couldn't find resource ({not_found_ticks} retries)", last_error
                    )
                    logger.warning(str(error))
                    return finish(OutcomeKind.NOT_FOUND, error)
            elif state not in spec.pending:
                error = UnexpectedStateError(state, spec.target, _reason(spec, payload) or last_error)
                logger.warning(f"Wait stopped on poll {attempts}: {error}")
                return finish(OutcomeKind.UNEXPECTED_STATE, error)
            else:
                not_found_ticks = 0
                target_occurrence = 0

        remaining = spec.timeout - (clock() - start)
        if remaining <= 0:
            return timed_out()

        interval = min(next(delays), remaining)
        logger.debug(f"Sleeping {interval:.2f}s before poll {attempts + 1}")
        if not ctx.sleep(interval):
            return cancelled()

        if clock() - start >= spec.timeout:
            return timed_out()


def wait_for_payload(spec: WaitSpec[T], ctx: Optional[WaitContext] = None) -> Optional[T]:
    """Run a wait and return its payload, raising the outcome's error on failure."""
    return wait_for_state(spec, ctx).unwrap()


def labels(*values: str) -> LabelSet:
    """Build a label set; labels() with no arguments is the "resource is gone" target."""
    return frozenset(values)
