"""Command-line entrypoint for wiping local Docker resources."""
from __future__ import annotations

import argparse
import sys
from typing import Optional

from opsctl.cli_utils import UsageParser, configure_logging
from opsctl.config import get_config
from opsctl.docker_cleanup.reaper import DockerCleanupConfig, DockerReaper
from opsctl.errors import PreflightError
from opsctl.notify import build_notifier

EPILOG = """WARNING: This script will remove ALL Docker containers, images, volumes,
         networks, and build cache. Use with extreme caution!
"""


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = UsageParser(
        prog="docker-cleanup",
        description="Remove all Docker containers, images, volumes, networks and caches",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-d", "--dry-run", dest="dry_run", action="store_true", help="Run in dry-run mode (show commands without executing)")
    parser.add_argument("-y", "--yes", dest="yes", action="store_true", help="Skip the warning prompt (use with caution!)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = get_config()
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    reaper = DockerReaper(
        DockerCleanupConfig(dry_run=args.dry_run, skip_confirmation=args.yes),
        notifier=build_notifier(config),
    )

    try:
        reaper.preflight()
    except PreflightError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    reaper.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
