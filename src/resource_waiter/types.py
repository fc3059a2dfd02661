"""
Type definitions for the AWS resource state waiters.

This module contains the client and payload aliases shared by the waiter core
and the service adapters, plus the typed result of a single poll.
"""

# AWS Client Types - Using Any for flexibility with boto3 clients
#
# boto3 generates service client methods at runtime, so there are no static
# classes to annotate with. The aliases document which client a function expects.
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Generic, Optional, TypeVar

LexModelsClient = Any
SESV2Client = Any

# boto3 response payloads
AWSResponse = Dict[str, Any]
GetBotOutput = AWSResponse
GetBotAliasOutput = AWSResponse
GetIntentVersionsOutput = AWSResponse
GetSlotTypeOutput = AWSResponse
DedicatedIp = AWSResponse

# Terraform resource data handed to CRUD handlers
ResourceData = Dict[str, Any]

LabelSet = FrozenSet[str]

# Label a refresh adapter reports when the remote resource does not exist
ABSENT = ""

T = TypeVar("T")


@dataclass(frozen=True)
class PollResult(Generic[T]):
    """Result of one call to a refresh function."""

    state: str
    payload: Optional[T] = None
    error: Optional[BaseException] = None


RefreshFunc = Callable[..., PollResult[T]]
FailureReasonFunc = Callable[[T], Optional[str]]
