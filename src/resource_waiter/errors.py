"""
Errors raised by the resource state waiters.

Every terminal failure of a wait maps to one exception type so callers can
tell "still provisioning" apart from "AWS rejected the request" and from
"the operation failed server-side".
"""

from typing import TYPE_CHECKING, Iterable, Optional, Union

if TYPE_CHECKING:
    from .core import WaitOutcome

LastError = Union[BaseException, str, None]


def _labels(labels: Iterable[str]) -> str:
    return ", ".join(sorted(labels)) or "<absent>"


class WaitError(Exception):
    """Base class for every wait failure."""

    def __init__(self, message: str, last_error: LastError = None) -> None:
        super().__init__(message)
        self.message = message
        self.last_error = last_error

    def set_last_error(self, last_error: LastError) -> None:
        """Attach an underlying cause, keeping the first one recorded."""
        if last_error and not self.last_error:
            self.last_error = last_error

    def __str__(self) -> str:
        if self.last_error:
            return f"{self.message}: {self.last_error}"
        return self.message


class WaitTimeoutError(WaitError):
    """A pending state persisted past the deadline."""

    def __init__(
        self,
        timeout: float,
        last_state: Optional[str],
        expected: Iterable[str],
        last_error: LastError = None,
    ) -> None:
        self.timeout = timeout
        self.last_state = last_state
        self.expected = frozenset(expected)
        message = f"timeout while waiting for state to become '{_labels(self.expected)}'"
        message += f" (last state: '{last_state or '<absent>'}', timeout: {timeout:g}s)"
        super().__init__(message, last_error)


class UnexpectedStateError(WaitError):
    """A label outside both the pending and the target sets was reported."""

    def __init__(self, state: str, expected: Iterable[str], last_error: LastError = None) -> None:
        self.state = state
        self.expected = frozenset(expected)
        message = f"unexpected state '{state or '<absent>'}', wanted target '{_labels(self.expected)}'"
        super().__init__(message, last_error)


class RemoteAPIError(WaitError):
    """The refresh function reported a non-transient error."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(f"error while polling for state: {error}", error)

    def __str__(self) -> str:
        return self.message


class WaitCancelledError(WaitError):
    """The caller cancelled the wait before it converged."""

    def __init__(self, reason: str = "wait cancelled") -> None:
        super().__init__(reason)


class ResourceNotFoundError(WaitError):
    """The remote resource does not exist."""

    def __init__(self, message: str = "couldn't find resource", last_error: LastError = None) -> None:
        super().__init__(message, last_error)


class EmptyResultError(ResourceNotFoundError):
    """The remote API answered without the expected resource in its response."""

    def __init__(self, request: object = None) -> None:
        super().__init__("empty result", None)
        self.request = request


class IncorrectPoolAssignmentError(ResourceNotFoundError):
    """A dedicated IP is assigned to a pool different from the expected one."""

    def __init__(self, ip: str, expected_pool: str, actual_pool: Optional[str]) -> None:
        super().__init__(f"incorrect pool assignment for {ip}: expected {expected_pool}, found {actual_pool}")
        self.ip = ip
        self.expected_pool = expected_pool
        self.actual_pool = actual_pool


def describe_outcome(outcome: "WaitOutcome", resource_name: str, resource_id: str) -> str:
    """
    Builds the user-facing message for a finished wait.

    Args:
        outcome: Result of wait_for_state
        resource_name: Human-readable resource type, e.g. "Lex Bot"
        resource_id: Identifier of the resource being waited on

    Returns:
        A message suitable for surfacing to the person running the operation
    """
    from .core import OutcomeKind

    subject = f"{resource_name} ({resource_id})"
    error = outcome.error

    if outcome.kind is OutcomeKind.SUCCESS:
        return f"{subject} reached state '{outcome.state or '<absent>'}'"
    if outcome.kind is OutcomeKind.TIMEOUT:
        minutes = error.timeout / 60 if isinstance(error, WaitTimeoutError) else outcome.elapsed / 60
        return (
            f"{subject} operation timed out after {minutes:g} minutes "
            f"(last state: '{outcome.state or '<absent>'}'); try increasing the timeout"
        )
    if outcome.kind is OutcomeKind.UNEXPECTED_STATE:
        message = f"{subject} entered unexpected state '{outcome.state or '<absent>'}'"
        if isinstance(error, WaitError) and error.last_error:
            message += f": {error.last_error}"
        return message
    if outcome.kind is OutcomeKind.NOT_FOUND:
        return f"{subject} not found"
    if outcome.kind is OutcomeKind.CANCELLED:
        return f"{subject} wait cancelled"
    return f"error reading {subject}: {error.last_error if isinstance(error, WaitError) else error}"
