"""
Lex Model Building Service Waiters Module.

This module contains finders, status refresh adapters and waiters for Amazon
Lex (V1) bots, bot aliases, intents and slot types.
"""

from typing import Optional

from botocore.exceptions import ClientError

from ...config import WaiterTimeouts
from ...utils import is_not_found_error, setup_logging
from ..backoff import DEFAULT_BACKOFF, BackoffPolicy
from ..context import WaitContext
from ..core import WaitSpec, labels, wait_for_state
from ..errors import EmptyResultError, ResourceNotFoundError
from ..refresh import refresh_error_handler, status_refresh
from ..types import (
    GetBotAliasOutput,
    GetBotOutput,
    GetIntentVersionsOutput,
    GetSlotTypeOutput,
    LexModelsClient,
    PollResult,
    RefreshFunc,
)

logger = setup_logging()

STATUS_BUILDING = "BUILDING"
STATUS_READY = "READY"
STATUS_READY_BASIC_TESTING = "READY_BASIC_TESTING"
STATUS_NOT_BUILT = "NOT_BUILT"
STATUS_FAILED = "FAILED"

# Aliases, intents and slot types have no status field; existing ones report this label
SERVICE_STATUS_CREATED = "CREATED"

# Label for a GetBot response without a status; in no pending or target set
STATUS_MISSING = "<no status>"

BOT_VERSION_LATEST = "$LATEST"
SLOT_TYPE_VERSION_LATEST = "$LATEST"

BOT_READY_STATUSES = labels(STATUS_NOT_BUILT, STATUS_READY, STATUS_READY_BASIC_TESTING)

DEFAULT_TIMEOUTS = WaiterTimeouts()


def bot_failure_reason(output: GetBotOutput) -> Optional[str]:
    """Return the failure reason of a bot in the FAILED state."""
    if output.get("status") == STATUS_FAILED:
        return output.get("failureReason") or "bot build failed"
    return None


def _not_found(error: ClientError) -> ResourceNotFoundError:
    return ResourceNotFoundError(last_error=error)


def find_bot_version_by_name(conn: LexModelsClient, name: str, version: str) -> GetBotOutput:
    """
    Fetch one version of a Lex bot.

    Raises:
        ResourceNotFoundError: If the bot or version does not exist
    """
    try:
        output = conn.get_bot(name=name, versionOrAlias=version)
    except ClientError as e:
        if is_not_found_error(e):
            raise _not_found(e) from e
        raise
    if not output:
        raise EmptyResultError({"name": name, "versionOrAlias": version})
    return output


def find_bot_alias(conn: LexModelsClient, bot_alias_name: str, bot_name: str) -> GetBotAliasOutput:
    try:
        output = conn.get_bot_alias(name=bot_alias_name, botName=bot_name)
    except ClientError as e:
        if is_not_found_error(e):
            raise _not_found(e) from e
        raise
    if not output:
        raise EmptyResultError({"name": bot_alias_name, "botName": bot_name})
    return output


def find_intent_versions(conn: LexModelsClient, intent_name: str) -> GetIntentVersionsOutput:
    """Fetch the versions of an intent; an intent without versions does not exist."""
    try:
        output = conn.get_intent_versions(name=intent_name)
    except ClientError as e:
        if is_not_found_error(e):
            raise _not_found(e) from e
        raise
    if not output or not output.get("intents"):
        raise EmptyResultError({"name": intent_name})
    return output


def find_slot_type_version_by_name(conn: LexModelsClient, name: str, version: str) -> GetSlotTypeOutput:
    try:
        output = conn.get_slot_type(name=name, version=version)
    except ClientError as e:
        if is_not_found_error(e):
            raise _not_found(e) from e
        raise
    if not output:
        raise EmptyResultError({"name": name, "version": version})
    return output


def status_bot_version(conn: LexModelsClient, name: str, version: str) -> RefreshFunc[GetBotOutput]:
    """Refresh adapter labelling a bot version by its build status."""

    @refresh_error_handler
    def refresh(ctx: Optional[WaitContext] = None) -> PollResult[GetBotOutput]:
        output = find_bot_version_by_name(conn, name, version)
        return PollResult(output.get("status") or STATUS_MISSING, output)

    return refresh


def status_bot_alias(conn: LexModelsClient, bot_alias_name: str, bot_name: str) -> RefreshFunc[GetBotAliasOutput]:
    return status_refresh(
        lambda: find_bot_alias(conn, bot_alias_name, bot_name),
        lambda _: SERVICE_STATUS_CREATED,
    )


def status_intent(conn: LexModelsClient, intent_name: str) -> RefreshFunc[GetIntentVersionsOutput]:
    return status_refresh(
        lambda: find_intent_versions(conn, intent_name),
        lambda _: SERVICE_STATUS_CREATED,
    )


def status_slot_type(conn: LexModelsClient, name: str, version: str) -> RefreshFunc[GetSlotTypeOutput]:
    return status_refresh(
        lambda: find_slot_type_version_by_name(conn, name, version),
        lambda _: SERVICE_STATUS_CREATED,
    )


def bot_version_created_spec(
    conn: LexModelsClient,
    name: str,
    version: str,
    timeout: float = DEFAULT_TIMEOUTS.bot_version_created,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> WaitSpec[GetBotOutput]:
    """A bot that ends up FAILED stops the wait with its failure reason attached."""
    return WaitSpec(
        pending=labels(STATUS_BUILDING),
        target=BOT_READY_STATUSES,
        refresh=status_bot_version(conn, name, version),
        timeout=timeout,
        backoff=backoff,
        failure_reason=bot_failure_reason,
    )


def bot_deleted_spec(
    conn: LexModelsClient,
    name: str,
    timeout: float = DEFAULT_TIMEOUTS.bot_deleted,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> WaitSpec[GetBotOutput]:
    return WaitSpec(
        pending=BOT_READY_STATUSES,
        target=labels(),
        refresh=status_bot_version(conn, name, BOT_VERSION_LATEST),
        timeout=timeout,
        backoff=backoff,
        failure_reason=bot_failure_reason,
    )


def bot_alias_deleted_spec(
    conn: LexModelsClient,
    bot_alias_name: str,
    bot_name: str,
    timeout: float = DEFAULT_TIMEOUTS.bot_alias_deleted,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> WaitSpec[GetBotAliasOutput]:
    return WaitSpec(
        pending=labels(SERVICE_STATUS_CREATED),
        target=labels(),
        refresh=status_bot_alias(conn, bot_alias_name, bot_name),
        timeout=timeout,
        backoff=backoff,
    )


def intent_deleted_spec(
    conn: LexModelsClient,
    intent_name: str,
    timeout: float = DEFAULT_TIMEOUTS.intent_deleted,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> WaitSpec[GetIntentVersionsOutput]:
    return WaitSpec(
        pending=labels(SERVICE_STATUS_CREATED),
        target=labels(),
        refresh=status_intent(conn, intent_name),
        timeout=timeout,
        backoff=backoff,
    )


def slot_type_deleted_spec(
    conn: LexModelsClient,
    name: str,
    timeout: float = DEFAULT_TIMEOUTS.slot_type_deleted,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> WaitSpec[GetSlotTypeOutput]:
    return WaitSpec(
        pending=labels(SERVICE_STATUS_CREATED),
        target=labels(),
        refresh=status_slot_type(conn, name, SLOT_TYPE_VERSION_LATEST),
        timeout=timeout,
        backoff=backoff,
    )


def wait_bot_version_created(
    conn: LexModelsClient,
    name: str,
    version: str,
    timeout: float = DEFAULT_TIMEOUTS.bot_version_created,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> Optional[GetBotOutput]:
    """
    Wait for a bot version to finish building.

    Args:
        conn: Boto3 lex-models client
        name: Bot name
        version: Bot version, usually BOT_VERSION_LATEST
        timeout: Seconds to wait before giving up
        ctx: Caller's cancellation context
        backoff: Delay policy between polls

    Returns:
        The last GetBot response

    Raises:
        WaitError: If the bot does not reach a ready state
    """
    logger.info(f"Waiting for Lex bot {name} version {version} to build")
    return wait_for_state(bot_version_created_spec(conn, name, version, timeout, backoff), ctx).unwrap()


def wait_bot_deleted(
    conn: LexModelsClient,
    name: str,
    timeout: float = DEFAULT_TIMEOUTS.bot_deleted,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> Optional[GetBotOutput]:
    """Wait for the latest version of a bot to disappear."""
    logger.info(f"Waiting for Lex bot {name} to be deleted")
    return wait_for_state(bot_deleted_spec(conn, name, timeout, backoff), ctx).unwrap()


def wait_bot_alias_deleted(
    conn: LexModelsClient,
    bot_alias_name: str,
    bot_name: str,
    timeout: float = DEFAULT_TIMEOUTS.bot_alias_deleted,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> Optional[GetBotAliasOutput]:
    logger.info(f"Waiting for Lex bot alias {bot_alias_name} of bot {bot_name} to be deleted")
    spec = bot_alias_deleted_spec(conn, bot_alias_name, bot_name, timeout, backoff)
    return wait_for_state(spec, ctx).unwrap()


def wait_intent_deleted(
    conn: LexModelsClient,
    intent_name: str,
    timeout: float = DEFAULT_TIMEOUTS.intent_deleted,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> Optional[GetIntentVersionsOutput]:
    logger.info(f"Waiting for Lex intent {intent_name} to be deleted")
    return wait_for_state(intent_deleted_spec(conn, intent_name, timeout, backoff), ctx).unwrap()


def wait_slot_type_deleted(
    conn: LexModelsClient,
    name: str,
    timeout: float = DEFAULT_TIMEOUTS.slot_type_deleted,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> Optional[GetSlotTypeOutput]:
    logger.info(f"Waiting for Lex slot type {name} to be deleted")
    return wait_for_state(slot_type_deleted_spec(conn, name, timeout, backoff), ctx).unwrap()
