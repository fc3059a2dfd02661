"""
AWS Resource State Waiters Package.

This package turns eventually-consistent, asynchronously provisioned AWS
resources into synchronous operations. Every resource waits the same way:

1. A status refresh adapter reads the resource once and labels it
2. The convergence waiter polls that adapter with backoff
3. The wait ends on a target label, an unexpected label, a fatal AWS error,
   the timeout, or a cancellation of the caller's context
4. The caller turns the WaitOutcome into a payload or a user-facing error
"""

from .backoff import DEFAULT_BACKOFF, BackoffPolicy
from .context import WaitContext
from .core import OutcomeKind, WaitOutcome, WaitSpec, labels, wait_for_payload, wait_for_state
from .errors import (
    RemoteAPIError,
    ResourceNotFoundError,
    UnexpectedStateError,
    WaitCancelledError,
    WaitError,
    WaitTimeoutError,
    describe_outcome,
)
from .refresh import refresh_error_handler, status_refresh
from .types import ABSENT, PollResult

__all__ = [
    "ABSENT",
    "BackoffPolicy",
    "DEFAULT_BACKOFF",
    "OutcomeKind",
    "PollResult",
    "RemoteAPIError",
    "ResourceNotFoundError",
    "UnexpectedStateError",
    "WaitCancelledError",
    "WaitContext",
    "WaitError",
    "WaitOutcome",
    "WaitSpec",
    "WaitTimeoutError",
    "describe_outcome",
    "labels",
    "refresh_error_handler",
    "status_refresh",
    "wait_for_payload",
    "wait_for_state",
]
