"""
SESv2 Dedicated IP Assignment Module.

This module contains the finder, status refresh adapter, waiters and CRUD
handlers for assigning an SES dedicated IP address to a dedicated IP pool.
The resource ID is "<ip>,<destination_pool_name>".
"""

from typing import Optional, Tuple

from botocore.exceptions import ClientError

from ...config import WaiterTimeouts
from ...utils import is_not_found_error, setup_logging
from ..backoff import DEFAULT_BACKOFF, BackoffPolicy
from ..context import WaitContext
from ..core import WaitSpec, labels, wait_for_state
from ..errors import EmptyResultError, IncorrectPoolAssignmentError, ResourceNotFoundError
from ..refresh import status_refresh
from ..types import DedicatedIp, RefreshFunc, ResourceData, SESV2Client

logger = setup_logging()

RESOURCE_NAME = "SESV2 Dedicated IP Assignment"

# Standard pool managed by AWS. Removing an assignment moves the IP back here.
DEFAULT_DEDICATED_POOL_NAME = "ses-default-dedicated-pool"

STATUS_ASSIGNED = "ASSIGNED"

DEFAULT_TIMEOUTS = WaiterTimeouts()


def to_id(ip: str, destination_pool_name: str) -> str:
    return f"{ip},{destination_pool_name}"


def split_id(resource_id: str) -> Tuple[str, str]:
    """Split a resource ID into (ip, pool name); malformed IDs yield empty strings."""
    items = resource_id.split(",")
    if len(items) == 2:
        return items[0], items[1]
    return "", ""


def find_dedicated_ip_assignment_by_id(conn: SESV2Client, resource_id: str) -> DedicatedIp:
    """
    Fetch the dedicated IP of an assignment and check that it sits in the expected pool.

    Args:
        conn: Boto3 sesv2 client
        resource_id: Assignment ID, "<ip>,<pool>"

    Returns:
        The DedicatedIp structure from GetDedicatedIp

    Raises:
        ResourceNotFoundError: If the IP does not exist or is assigned to another pool
    """
    ip, destination_pool_name = split_id(resource_id)
    request = {"Ip": ip}

    try:
        output = conn.get_dedicated_ip(**request)
    except ClientError as e:
        if is_not_found_error(e):
            raise ResourceNotFoundError(last_error=e) from e
        raise

    dedicated_ip = (output or {}).get("DedicatedIp")
    if not dedicated_ip:
        raise EmptyResultError(request)

    pool_name = dedicated_ip.get("PoolName")
    if not pool_name or pool_name != destination_pool_name:
        raise IncorrectPoolAssignmentError(ip, destination_pool_name, pool_name)

    return dedicated_ip


def status_dedicated_ip_assignment(conn: SESV2Client, resource_id: str) -> RefreshFunc[DedicatedIp]:
    return status_refresh(
        lambda: find_dedicated_ip_assignment_by_id(conn, resource_id),
        lambda _: STATUS_ASSIGNED,
    )


def dedicated_ip_assignment_created_spec(
    conn: SESV2Client,
    resource_id: str,
    timeout: float = DEFAULT_TIMEOUTS.dedicated_ip_assignment_created,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> WaitSpec[DedicatedIp]:
    return WaitSpec(
        pending=labels(),
        target=labels(STATUS_ASSIGNED),
        refresh=status_dedicated_ip_assignment(conn, resource_id),
        timeout=timeout,
        backoff=backoff,
    )


def dedicated_ip_assignment_deleted_spec(
    conn: SESV2Client,
    resource_id: str,
    timeout: float = DEFAULT_TIMEOUTS.dedicated_ip_assignment_deleted,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> WaitSpec[DedicatedIp]:
    return WaitSpec(
        pending=labels(STATUS_ASSIGNED),
        target=labels(),
        refresh=status_dedicated_ip_assignment(conn, resource_id),
        timeout=timeout,
        backoff=backoff,
    )


def wait_dedicated_ip_assignment_created(
    conn: SESV2Client,
    resource_id: str,
    timeout: float = DEFAULT_TIMEOUTS.dedicated_ip_assignment_created,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> Optional[DedicatedIp]:
    """Wait until the IP shows up in its destination pool."""
    spec = dedicated_ip_assignment_created_spec(conn, resource_id, timeout, backoff)
    return wait_for_state(spec, ctx).unwrap()


def wait_dedicated_ip_assignment_deleted(
    conn: SESV2Client,
    resource_id: str,
    timeout: float = DEFAULT_TIMEOUTS.dedicated_ip_assignment_deleted,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> Optional[DedicatedIp]:
    """Wait until the IP has left the pool named in the resource ID."""
    spec = dedicated_ip_assignment_deleted_spec(conn, resource_id, timeout, backoff)
    return wait_for_state(spec, ctx).unwrap()


def create_dedicated_ip_assignment(
    conn: SESV2Client,
    data: ResourceData,
    timeouts: WaiterTimeouts = DEFAULT_TIMEOUTS,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> ResourceData:
    """
    Assign a dedicated IP to a pool and wait until the assignment is visible.

    Args:
        conn: Boto3 sesv2 client
        data: Resource data with "ip" and "destination_pool_name"
        timeouts: Named wait durations
        ctx: Caller's cancellation context
        backoff: Delay policy between polls

    Returns:
        The resource data with "id" set and attributes refreshed from AWS
    """
    ip = data["ip"]
    pool_name = data["destination_pool_name"]

    logger.info(f"Creating {RESOURCE_NAME} {ip} in pool {pool_name}")
    conn.put_dedicated_ip_in_pool(Ip=ip, DestinationPoolName=pool_name)

    data["id"] = to_id(ip, pool_name)
    wait_dedicated_ip_assignment_created(
        conn, data["id"], timeout=timeouts.dedicated_ip_assignment_created, ctx=ctx, backoff=backoff
    )

    return read_dedicated_ip_assignment(conn, data, is_new_resource=True)


def read_dedicated_ip_assignment(conn: SESV2Client, data: ResourceData, is_new_resource: bool = False) -> ResourceData:
    """
    Refresh resource data from AWS.

    An assignment that no longer exists is removed from state by clearing its
    "id", unless it was only just created.
    """
    try:
        dedicated_ip = find_dedicated_ip_assignment_by_id(conn, data["id"])
    except ResourceNotFoundError:
        if is_new_resource:
            raise
        logger.warning(f"{RESOURCE_NAME} ({data['id']}) not found, removing from state")
        data["id"] = ""
        return data

    data["ip"] = dedicated_ip.get("Ip")
    data["destination_pool_name"] = dedicated_ip.get("PoolName")
    return data


def delete_dedicated_ip_assignment(
    conn: SESV2Client,
    data: ResourceData,
    timeouts: WaiterTimeouts = DEFAULT_TIMEOUTS,
    ctx: Optional[WaitContext] = None,
    backoff: BackoffPolicy = DEFAULT_BACKOFF,
) -> None:
    """Move the IP back to the AWS-managed default pool."""
    ip, pool_name = split_id(data["id"])

    logger.info(f"Deleting {RESOURCE_NAME} {data['id']}")
    try:
        conn.put_dedicated_ip_in_pool(Ip=ip, DestinationPoolName=DEFAULT_DEDICATED_POOL_NAME)
    except ClientError as e:
        if is_not_found_error(e):
            return
        raise

    # The IP stays visible in the default pool by definition
    if pool_name == DEFAULT_DEDICATED_POOL_NAME:
        return

    wait_dedicated_ip_assignment_deleted(
        conn, data["id"], timeout=timeouts.dedicated_ip_assignment_deleted, ctx=ctx, backoff=backoff
    )
