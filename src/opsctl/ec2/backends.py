"""EC2 control-plane bindings: the aws CLI and boto3."""
from __future__ import annotations

import logging
import math
import re
import shutil
import subprocess
import time
from typing import Callable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from opsctl.ec2.types import NOT_FOUND_STATE, RUNNING_STATE, InstanceRef
from opsctl.errors import Ec2CommandError, MissingCredentialsError, MissingToolError, PreflightError

logger = logging.getLogger(__name__)

ERROR_CODE_PATTERN = re.compile(r"An error occurred \(([^)]+)\)")
STATE_QUERY = "Reservations[0].Instances[0].State.Name"
TERMINAL_STATES = frozenset({"shutting-down", "terminated"})
DEFAULT_COMMAND_TIMEOUT = 60
DEFAULT_POLL_INTERVAL = 15


def parse_error_code(output: str) -> Optional[str]:
    """Extract the AWS error code from CLI stderr, e.g. 'InsufficientInstanceCapacity'."""
    match = ERROR_CODE_PATTERN.search(output or "")
    return match.group(1) if match else None


class AwsCliBackend:
    """Drive EC2 through the aws command line tool."""

    def __init__(
        self,
        region: Optional[str] = None,
        executable: str = "aws",
        command_timeout: int = DEFAULT_COMMAND_TIMEOUT,
        poll_interval: int = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if command_timeout <= 0:
            raise ValueError("command_timeout must be a positive integer")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be a positive integer")
        self.region = region
        self.executable = executable
        self.command_timeout = command_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    def _command(self, args: List[str]) -> List[str]:
        command = [self.executable, *args]
        if self.region:
            command.extend(["--region", self.region])
        return command

    def _run(self, args: List[str], timeout: Optional[int] = None) -> subprocess.CompletedProcess:
        command = self._command(args)
        logger.debug("Running: %s", " ".join(command))
        return subprocess.run(
            command,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=timeout or self.command_timeout,
        )

    def preflight(self) -> None:
        if shutil.which(self.executable) is None:
            raise MissingToolError("AWS CLI is not installed or not in PATH")

        try:
            result = self._run(["sts", "get-caller-identity"])
        except (subprocess.TimeoutExpired, OSError) as exc:
            raise MissingCredentialsError(f"AWS credentials check failed: {exc}") from exc

        if result.returncode != 0:
            raise MissingCredentialsError("AWS credentials not configured or invalid")

    def describe_instance(self, ref: InstanceRef) -> str:
        try:
            result = self._run([
                "ec2", "describe-instances",
                "--instance-ids", ref,
                "--query", STATE_QUERY,
                "--output", "text",
            ])
        except (subprocess.TimeoutExpired, OSError) as exc:
            logger.warning("describe-instances failed for %s: %s", ref, exc)
            return NOT_FOUND_STATE

        if result.returncode != 0:
            logger.debug("describe-instances exited %s: %s", result.returncode, result.stderr.strip())
            return NOT_FOUND_STATE

        state = result.stdout.strip()
        if not state or state == "None":
            return NOT_FOUND_STATE
        return state

    def start_instance(self, ref: InstanceRef) -> None:
        result = self._run(["ec2", "start-instances", "--instance-ids", ref, "--output", "json"])
        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            if not output:
                output = f"aws exited with status {result.returncode}"
            raise Ec2CommandError(output, code=parse_error_code(output))

    def wait_until_running(self, ref: InstanceRef, timeout: int) -> bool:
        """
        Poll describe-instances until the instance is running or ``timeout`` seconds pass.

        ``aws ec2 wait instance-running`` stops after a fixed 40 polls, so it cannot honour
        an arbitrary timeout.
        """
        deadline = self._clock() + timeout
        while True:
            state = self.describe_instance(ref)
            if state == RUNNING_STATE:
                return True
            if state in TERMINAL_STATES:
                logger.warning("Instance %s entered state %s while waiting", ref, state)
                return False

            remaining = deadline - self._clock()
            if remaining <= 0:
                return False
            logger.debug("Instance %s is %s, polling again in %ss", ref, state, self.poll_interval)
            self._sleep(min(self.poll_interval, remaining))


class Boto3Backend:
    """Drive EC2 through boto3, using the structured error codes it exposes."""

    WAITER_DELAY = 15

    def __init__(self, region: Optional[str] = None, session: Optional[boto3.session.Session] = None) -> None:
        self.session = session or boto3.session.Session(region_name=region)
        try:
            self.ec2 = self.session.client("ec2")
        except BotoCoreError as exc:
            raise PreflightError(f"Unable to create EC2 client: {exc}") from exc

    def preflight(self) -> None:
        try:
            self.session.client("sts").get_caller_identity()
        except (ClientError, BotoCoreError) as exc:
            raise MissingCredentialsError(f"AWS credentials not configured or invalid: {exc}") from exc

    def describe_instance(self, ref: InstanceRef) -> str:
        try:
            response = self.ec2.describe_instances(InstanceIds=[ref])
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if not code.startswith("InvalidInstanceID"):
                logger.warning("describe_instances failed for %s: %s", ref, exc)
            return NOT_FOUND_STATE
        except BotoCoreError as exc:
            logger.warning("describe_instances failed for %s: %s", ref, exc)
            return NOT_FOUND_STATE

        reservations = response.get("Reservations") or []
        instances = reservations[0].get("Instances") if reservations else None
        if not instances:
            return NOT_FOUND_STATE
        return instances[0]["State"]["Name"]

    def start_instance(self, ref: InstanceRef) -> None:
        try:
            self.ec2.start_instances(InstanceIds=[ref])
        except ClientError as exc:
            error = exc.response.get("Error", {})
            raise Ec2CommandError(str(exc), code=error.get("Code")) from exc

    def wait_until_running(self, ref: InstanceRef, timeout: int) -> bool:
        waiter = self.ec2.get_waiter("instance_running")
        max_attempts = max(1, math.ceil(timeout / self.WAITER_DELAY))
        try:
            waiter.wait(
                InstanceIds=[ref],
                WaiterConfig={"Delay": self.WAITER_DELAY, "MaxAttempts": max_attempts},
            )
        except WaiterError as exc:
            logger.debug("instance_running waiter gave up on %s: %s", ref, exc)
            return False
        return True


BACKENDS = {
    "awscli": AwsCliBackend,
    "boto3": Boto3Backend,
}


def create_backend(name: str, region: Optional[str] = None):
    """Instantiate the backend registered under ``name``."""
    try:
        backend_cls = BACKENDS[name]
    except KeyError:
        raise ValueError(f"Unknown backend {name!r}; choose from {sorted(BACKENDS)}") from None
    return backend_cls(region=region)
