"""Remove every Docker container, image, volume, custom network and cache."""
from __future__ import annotations

import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from opsctl.errors import MissingToolError
from opsctl.notify import NullNotifier

logger = logging.getLogger(__name__)

WARNING_BANNER = """WARNING: This script will remove ALL Docker resources:
 - All containers (running or stopped)
 - All images (used or unused)
 - All volumes
 - All networks
 - All build cache

This action is IRREVERSIBLE and will remove ALL Docker data on this system.
"""


@dataclass(frozen=True, slots=True)
class DockerCleanupConfig:
    dry_run: bool = False
    skip_confirmation: bool = False


@dataclass(frozen=True, slots=True)
class RemovalStep:
    """List resource ids with one command, then remove them with another."""

    title: str
    noun: str
    list_command: List[str]
    remove_command: List[str]


@dataclass(slots=True)
class CleanupReport:
    dry_run: bool
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    commands: List[str] = field(default_factory=list)


REMOVAL_STEPS = (
    RemovalStep("Removing all containers...", "containers",
                ["docker", "container", "ls", "-aq"], ["docker", "container", "rm", "-f"]),
    RemovalStep("Removing all images...", "images",
                ["docker", "image", "ls", "-aq"], ["docker", "image", "rm", "-f"]),
    RemovalStep("Removing all volumes...", "volumes",
                ["docker", "volume", "ls", "-q"], ["docker", "volume", "rm", "-f"]),
    RemovalStep("Removing all custom networks...", "custom networks",
                ["docker", "network", "ls", "-q", "-f", "type=custom"], ["docker", "network", "rm"]),
)

PRUNE_COMMAND = ["docker", "system", "prune", "-af", "--volumes"]

STATUS_COMMANDS = (
    ("Containers:", ["docker", "ps", "-a"]),
    ("Images:", ["docker", "images"]),
    ("Volumes:", ["docker", "volume", "ls"]),
    ("Networks:", ["docker", "network", "ls"]),
)


def format_elapsed(seconds: float) -> str:
    """Format seconds as HH:MM:SS."""
    total = int(seconds)
    return f"{total // 3600:02d}:{total % 3600 // 60:02d}:{total % 60:02d}"


class DockerReaper:
    """Stop and delete all Docker resources, or describe what would be deleted."""

    def __init__(
        self,
        config: DockerCleanupConfig,
        notifier=None,
        prompt: Callable[[str], str] = input,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.notifier = notifier or NullNotifier()
        self._prompt = prompt
        self._clock = clock

    def preflight(self) -> None:
        if self.config.dry_run:
            return
        if shutil.which("docker") is None:
            raise MissingToolError("Docker CLI is not installed or not in PATH")

    def confirm(self) -> bool:
        if self.config.skip_confirmation:
            return True

        print(WARNING_BANNER)
        if self.config.dry_run:
            print("Running in DRY RUN mode. No actual changes will be made.\n")

        try:
            reply = self._prompt("Are you sure you want to continue? (y/N) ").strip()
        except EOFError:
            reply = ""
        return reply[:1] in ("y", "Y")

    def run(self) -> CleanupReport:
        started_at = self._clock()
        report = CleanupReport(dry_run=self.config.dry_run)

        if not self.confirm():
            print("Operation cancelled.")
            report.cancelled = True
            return report

        print("Starting Docker cleanup...")
        self._stop_running_containers(report)
        for step in REMOVAL_STEPS:
            self._remove(step, report)

        print("\nCleaning up all unused Docker resources...")
        self._execute(PRUNE_COMMAND, report)

        if self.config.dry_run:
            print("\nDRY RUN COMPLETE. No changes were made.")
        else:
            print("\nDocker cleanup completed!")
            self._show_status()

        report.elapsed_seconds = self._clock() - started_at
        elapsed = format_elapsed(report.elapsed_seconds)
        print(f"\nScript completed in {elapsed}.")

        if self.config.dry_run:
            self.notifier.send(f"Docker cleanup DRY RUN completed in {elapsed}")
        else:
            self.notifier.send(f"Docker cleanup completed in {elapsed}")
        return report

    def _stop_running_containers(self, report: CleanupReport) -> None:
        print("\nStopping all running containers...")
        if self.config.dry_run:
            print("[DRY RUN] Would stop all running containers")
            return

        running = self._list_ids(["docker", "ps", "-q"])
        if not running:
            print("No running containers found.")
            return
        self._execute(["docker", "stop", *running], report)

    def _remove(self, step: RemovalStep, report: CleanupReport) -> None:
        print(f"\n{step.title}")
        if self.config.dry_run:
            planned = " ".join(step.remove_command) + " $(" + " ".join(step.list_command) + ")"
            print(f"[DRY RUN] Would execute: {planned}")
            report.commands.append(planned)
            return

        ids = self._list_ids(step.list_command)
        if not ids:
            print(f"No {step.noun} to remove")
            return
        self._execute([*step.remove_command, *ids], report)

    def _execute(self, command: List[str], report: CleanupReport) -> Optional[subprocess.CompletedProcess]:
        line = " ".join(command)
        report.commands.append(line)
        if self.config.dry_run:
            print(f"[DRY RUN] Would execute: {line}")
            return None

        print(f"Executing: {line}")
        result = subprocess.run(command, capture_output=True, text=True)
        if result.stdout.strip():
            print(result.stdout.rstrip())
        if result.returncode != 0:
            logger.warning("Command failed (exit %s): %s", result.returncode, result.stderr.strip())
        return result

    @staticmethod
    def _list_ids(command: List[str]) -> List[str]:
        result = subprocess.run(command, capture_output=True, text=True)
        if result.returncode != 0:
            logger.warning("Listing failed (%s): %s", " ".join(command), result.stderr.strip())
            return []
        return result.stdout.split()

    @staticmethod
    def _show_status() -> None:
        print("\nCurrent Docker status:")
        for title, command in STATUS_COMMANDS:
            print(f"\n{title}")
            result = subprocess.run(command, capture_output=True, text=True)
            print(result.stdout.rstrip())
