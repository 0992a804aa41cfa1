"""Command-line entrypoint for starting an EC2 instance with capacity retries."""
from __future__ import annotations

import argparse
import sys
from typing import Optional

from opsctl.cli_utils import UsageParser, configure_logging
from opsctl.config import get_config
from opsctl.ec2.backends import BACKENDS, create_backend
from opsctl.ec2.orchestrator import DEFAULT_WAIT_TIMEOUT, InstanceStartOrchestrator
from opsctl.ec2.types import RetryPolicy
from opsctl.errors import PreflightError
from opsctl.notify import build_notifier

EPILOG = """Environment Variables:
  NTFY_TOPIC          Topic for ntfy notifications (optional)
  NTFY_SERVER         ntfy server URL (default: https://ntfy.sh)
"""


def _positive_int(value: str) -> int:
    if not value.isdigit() or int(value) < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return int(value)


def _non_negative_int(value: str) -> int:
    if not value.isdigit():
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value!r}")
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = UsageParser(
        prog="ec2-start",
        description="Start an EC2 instance, retrying 'Insufficient capacity' errors with exponential backoff",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("instance_id", nargs="?", default=None, help="EC2 instance ID to start (required)")
    parser.add_argument("--max-retries", dest="max_retries", type=_positive_int, default=10, help="Maximum number of retry attempts (default: 10)")
    parser.add_argument("--base-delay", dest="base_delay", type=_non_negative_int, default=30, help="Base delay in seconds between retries (default: 30)")
    parser.add_argument("--wait-timeout", dest="wait_timeout", type=_positive_int, default=DEFAULT_WAIT_TIMEOUT, help=f"Seconds to wait for the running state per attempt (default: {DEFAULT_WAIT_TIMEOUT})")
    parser.add_argument("--backend", choices=sorted(BACKENDS), default="awscli", help="How to reach EC2 (default: awscli)")
    parser.add_argument("--region", type=str, default=None, help="AWS region (defaults to AWS_REGION / CLI profile)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.instance_id:
        parser.error("Instance ID is required")
    return args


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = get_config()
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        backend = create_backend(args.backend, region=args.region or config.aws_region)
        backend.preflight()
    except PreflightError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    orchestrator = InstanceStartOrchestrator(
        backend=backend,
        policy=RetryPolicy(max_attempts=args.max_retries, base_delay_seconds=args.base_delay),
        notifier=build_notifier(config),
        wait_timeout=args.wait_timeout,
    )

    print(f"Starting EC2 instance: {args.instance_id}")
    print(f"Max retries: {args.max_retries}")
    print(f"Base delay: {args.base_delay} seconds")
    print("-" * 50)

    outcome = orchestrator.run(args.instance_id)

    if outcome.succeeded:
        print(f"Script completed successfully in {int(outcome.elapsed_seconds)}s")
    else:
        print(f"Script failed after {int(outcome.elapsed_seconds)}s")
    return outcome.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
