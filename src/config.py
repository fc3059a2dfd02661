"""
Configuration loader for the AWS resource state waiters.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class WaiterTimeouts:
    """Named per-resource wait durations, in seconds."""

    bot_version_created: float = 5 * 60
    bot_deleted: float = 5 * 60
    bot_alias_deleted: float = 5 * 60
    intent_deleted: float = 5 * 60
    slot_type_deleted: float = 5 * 60
    dedicated_ip_assignment_created: float = 30 * 60
    dedicated_ip_assignment_deleted: float = 30 * 60


@dataclass
class Config:
    """Configuration class for the resource waiters."""

    aws_region: Optional[str] = None
    log_level: str = "INFO"
    poll_interval_seconds: Optional[float] = None
    max_delay_seconds: float = 10.0
    default_timeout_seconds: Optional[float] = None
    timeouts: WaiterTimeouts = field(default_factory=WaiterTimeouts)


def _positive_number(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero, got {raw!r}")
    return value


def load_config() -> Config:
    """
    Loads and validates configuration from the environment.

    Returns:
        Config object with validated settings

    Raises:
        ValueError: If a configuration value is invalid
    """
    aws_region = os.environ.get("AWS_REGION")
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        raise ValueError(f"LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, got {log_level!r}")

    # Optional configuration with defaults
    raw_interval = os.environ.get("WAITER_POLL_INTERVAL_SECONDS")
    poll_interval = _positive_number("WAITER_POLL_INTERVAL_SECONDS", raw_interval) if raw_interval else None
    max_delay = _positive_number("WAITER_MAX_DELAY_SECONDS", os.environ.get("WAITER_MAX_DELAY_SECONDS", "10"))
    raw_timeout = os.environ.get("WAITER_DEFAULT_TIMEOUT_SECONDS")
    default_timeout = _positive_number("WAITER_DEFAULT_TIMEOUT_SECONDS", raw_timeout) if raw_timeout else None

    return Config(
        aws_region=aws_region,
        log_level=log_level,
        poll_interval_seconds=poll_interval,
        max_delay_seconds=max_delay,
        default_timeout_seconds=default_timeout,
    )
