#!/usr/bin/env python3
"""
Command-line interface for running a resource waiter against live AWS.

This script polls a single AWS resource until it converges, using the same
waiters the resource handlers use. It requires AWS credentials to be configured
(via AWS CLI, environment variables, or IAM roles).

Usage:
    python run_waiter.py bot-version --name OrderFlowers --version '$LATEST'
    python run_waiter.py bot-deleted --name OrderFlowers --region us-east-1
    python run_waiter.py dedicated-ip --ip 198.51.100.1 --pool my-pool --timeout-seconds 600
"""

import argparse
import json
import os
import signal
import sys
import time
from typing import Any, Dict, List, Optional

import boto3

# Add the src directory to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from src.config import Config, load_config
from src.resource_waiter import BackoffPolicy, WaitContext, WaitOutcome, describe_outcome, wait_for_state
from src.resource_waiter.core import WaitSpec
from src.resource_waiter.services import lexmodels, sesv2
from src.utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Wait for an AWS resource to reach a terminal state",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_waiter.py bot-version --name OrderFlowers
  python run_waiter.py slot-type-deleted --name FlowerTypes --log-level DEBUG
        """,
    )

    parser.add_argument("--region", default=None, help="AWS region for API calls (default: AWS_REGION or boto3 default)")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )

    parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=None,
        help="Overall wait timeout in seconds (default: the resource's named timeout)",
    )

    parser.add_argument(
        "--output-format",
        choices=["json", "pretty"],
        default="pretty",
        help="Output format for the wait result (default: pretty)",
    )

    subparsers = parser.add_subparsers(dest="resource", required=True)

    bot_version = subparsers.add_parser("bot-version", help="Wait for a Lex bot version to build")
    bot_version.add_argument("--name", required=True)
    bot_version.add_argument("--version", default=lexmodels.BOT_VERSION_LATEST)

    bot_deleted = subparsers.add_parser("bot-deleted", help="Wait for a Lex bot to be deleted")
    bot_deleted.add_argument("--name", required=True)

    alias_deleted = subparsers.add_parser("bot-alias-deleted", help="Wait for a Lex bot alias to be deleted")
    alias_deleted.add_argument("--name", required=True)
    alias_deleted.add_argument("--bot-name", required=True)

    intent_deleted = subparsers.add_parser("intent-deleted", help="Wait for a Lex intent to be deleted")
    intent_deleted.add_argument("--name", required=True)

    slot_type_deleted = subparsers.add_parser("slot-type-deleted", help="Wait for a Lex slot type to be deleted")
    slot_type_deleted.add_argument("--name", required=True)

    dedicated_ip = subparsers.add_parser("dedicated-ip", help="Wait for an SES dedicated IP pool assignment")
    dedicated_ip.add_argument("--ip", required=True)
    dedicated_ip.add_argument("--pool", required=True)

    return parser


def build_spec(args: argparse.Namespace, config: Config, backoff: BackoffPolicy) -> WaitSpec:
    """Map the parsed command line onto the WaitSpec of the matching resource."""
    timeouts = config.timeouts

    def timeout(named: float) -> float:
        if args.timeout_seconds is not None:
            return float(args.timeout_seconds)
        return config.default_timeout_seconds or named

    if args.resource == "dedicated-ip":
        conn = boto3.client("sesv2", region_name=args.region)
        resource_id = sesv2.to_id(args.ip, args.pool)
        return sesv2.dedicated_ip_assignment_created_spec(
            conn, resource_id, timeout(timeouts.dedicated_ip_assignment_created), backoff
        )

    conn = boto3.client("lex-models", region_name=args.region)
    if args.resource == "bot-version":
        return lexmodels.bot_version_created_spec(
            conn, args.name, args.version, timeout(timeouts.bot_version_created), backoff
        )
    if args.resource == "bot-deleted":
        return lexmodels.bot_deleted_spec(conn, args.name, timeout(timeouts.bot_deleted), backoff)
    if args.resource == "bot-alias-deleted":
        return lexmodels.bot_alias_deleted_spec(
            conn, args.name, args.bot_name, timeout(timeouts.bot_alias_deleted), backoff
        )
    if args.resource == "intent-deleted":
        return lexmodels.intent_deleted_spec(conn, args.name, timeout(timeouts.intent_deleted), backoff)
    return lexmodels.slot_type_deleted_spec(conn, args.name, timeout(timeouts.slot_type_deleted), backoff)


def resource_identity(args: argparse.Namespace) -> List[str]:
    """Human-readable resource type and identifier for messages."""
    if args.resource == "dedicated-ip":
        return [sesv2.RESOURCE_NAME, sesv2.to_id(args.ip, args.pool)]
    if args.resource == "bot-alias-deleted":
        return ["Lex Bot Alias", f"{args.bot_name}:{args.name}"]
    names = {
        "bot-version": "Lex Bot",
        "bot-deleted": "Lex Bot",
        "intent-deleted": "Lex Intent",
        "slot-type-deleted": "Lex Slot Type",
    }
    return [names[args.resource], args.name]


def outcome_report(outcome: WaitOutcome, resource_name: str, resource_id: str) -> Dict[str, Any]:
    return {
        "resource": resource_name,
        "id": resource_id,
        "outcome": outcome.kind.value,
        "state": outcome.state,
        "attempts": outcome.attempts,
        "elapsed_seconds": round(outcome.elapsed, 3),
        "message": describe_outcome(outcome, resource_name, resource_id),
        "payload": outcome.payload,
    }


def print_outcome_report(report: Dict[str, Any]) -> None:
    """Print a human-readable wait report."""
    print("\n" + "=" * 60)
    print("RESOURCE WAIT REPORT")
    print("=" * 60)
    print(f"Resource: {report['resource']} ({report['id']})")
    print(f"Outcome:  {report['outcome']}")
    print(f"State:    {report['state'] or '<absent>'}")
    print(f"Polls:    {report['attempts']} in {report['elapsed_seconds']}s")
    print(f"\n{report['message']}")
    print("\n" + "=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line waiter."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    logger = setup_logging(args.log_level or config.log_level)
    args.region = args.region or config.aws_region

    backoff = BackoffPolicy(
        max_delay=max(config.max_delay_seconds, BackoffPolicy.initial_delay),
        poll_interval=config.poll_interval_seconds,
    )
    spec = build_spec(args, config, backoff)
    resource_name, resource_id = resource_identity(args)

    clock = time.monotonic
    ctx = WaitContext(clock=clock)

    # Ctrl-C cancels the wait so it still ends with a report
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: ctx.cancel("interrupted by user"))
    logger.info(f"Waiting on {resource_name} ({resource_id}) for up to {spec.timeout:g}s")
    try:
        outcome = wait_for_state(spec, ctx, clock=clock)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    report = outcome_report(outcome, resource_name, resource_id)
    if args.output_format == "json":
        print(json.dumps(report, indent=2, default=str))
    else:
        print_outcome_report(report)

    if outcome.ok:
        logger.info("Wait succeeded. Exiting with code 0")
        return 0
    logger.warning(f"Wait failed ({outcome.kind.value}). Exiting with code 1")
    return 1


if __name__ == "__main__":
    sys.exit(main())
