"""
Status refresh adapters.

A refresh adapter performs exactly one remote read per call and translates the
answer into a PollResult: a not-found answer becomes the ABSENT label, any
other AWS error becomes PollResult.error, and a found resource is labelled by
its status field.
"""

import functools
from typing import Callable, Optional, TypeVar, cast

from botocore.exceptions import BotoCoreError, ClientError

from ..utils import is_not_found_error, setup_logging
from .context import WaitContext
from .errors import ResourceNotFoundError
from .types import ABSENT, PollResult, RefreshFunc, T

logger = setup_logging()

F = TypeVar("F", bound=Callable[..., PollResult])


def refresh_error_handler(func: F) -> F:
    """
    Decorator for consistent error translation in status refresh adapters.
    Maps not-found answers to the ABSENT label and returns every other AWS
    error inside the PollResult so the waiter can abort on it.
    """

    @functools.wraps(func)
    def wrapper(*args: object, **kwargs: object) -> PollResult:
        try:
            return func(*args, **kwargs)
        except ResourceNotFoundError as e:
            logger.debug(f"{func.__name__}: resource not found ({e})")
            return PollResult(ABSENT)
        except ClientError as e:
            if is_not_found_error(e):
                logger.debug(f"{func.__name__}: resource not found ({e})")
                return PollResult(ABSENT)
            logger.debug(f"AWS ClientError in {func.__name__}: {e}")
            return PollResult(ABSENT, error=e)
        except BotoCoreError as e:
            logger.debug(f"botocore error in {func.__name__}: {e}")
            return PollResult(ABSENT, error=e)

    return cast(F, wrapper)


def status_refresh(finder: Callable[[], Optional[T]], status_of: Callable[[T], str]) -> RefreshFunc[T]:
    """
    Build a refresh adapter from a finder and a status mapping.

    Args:
        finder: Performs the remote read; returns None or raises when the resource is missing
        status_of: Maps the found resource to a label

    Returns:
        A refresh function suitable for WaitSpec.refresh
    """

    @refresh_error_handler
    def refresh(ctx: Optional[WaitContext] = None) -> PollResult[T]:
        output = finder()
        if output is None:
            return PollResult(ABSENT)
        return PollResult(status_of(output), output)

    return refresh
