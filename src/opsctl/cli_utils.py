"""
Shared command-line plumbing for the opsctl tools.
"""
import argparse
import logging
import sys
from typing import NoReturn


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on invalid invocations."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s", stream=sys.stdout)
    else:
        root.setLevel(level)
