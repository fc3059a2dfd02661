"""
Utility functions for the AWS resource state waiters.
"""

import logging
from typing import Optional

from botocore.exceptions import ClientError

# Error codes AWS services use for a resource that does not exist
NOT_FOUND_ERROR_CODES = frozenset(
    {
        "NotFoundException",
        "ResourceNotFoundException",
        "NoSuchEntity",
        "NotFound",
    }
)

# Error codes botocore itself treats as throttling
THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottledException",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "TransactionInProgressException",
        "RequestLimitExceeded",
        "BandwidthLimitExceeded",
        "LimitExceededException",
        "RequestThrottled",
        "SlowDown",
        "PriorRequestNotComplete",
        "EC2ThrottledException",
    }
)


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Sets up logging configuration for the resource waiters.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("resource_waiter")
    logger.setLevel(getattr(logging, log_level.upper()))

    # Prevent duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def error_code(error: BaseException) -> Optional[str]:
    """
    Returns the AWS error code of a botocore ClientError, or None for anything else.
    """
    if not isinstance(error, ClientError):
        return None
    code = error.response.get("Error", {}).get("Code")
    return str(code) if code else None


def is_not_found_error(error: BaseException) -> bool:
    """True when the error is an AWS "resource does not exist" response."""
    return error_code(error) in NOT_FOUND_ERROR_CODES


def is_throttling_error(error: BaseException) -> bool:
    """True when the error is an AWS throttling response that is worth polling through."""
    return error_code(error) in THROTTLING_ERROR_CODES
