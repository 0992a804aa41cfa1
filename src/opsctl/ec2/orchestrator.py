"""Start an EC2 instance, retrying capacity errors with exponential backoff."""
import logging
import time
from typing import Callable, Optional

from opsctl.ec2.types import (
    NOT_FOUND_STATE,
    RUNNING_STATE,
    AttemptKind,
    AttemptResult,
    InstanceRef,
    OutcomeKind,
    RetryPolicy,
    RunOutcome,
    looks_like_instance_id,
)
from opsctl.errors import Ec2CommandError
from opsctl.notify import NullNotifier

logger = logging.getLogger(__name__)

CAPACITY_ERROR_CODES = frozenset({"InsufficientInstanceCapacity"})
CAPACITY_ERROR_SIGNATURES = ("InsufficientInstanceCapacity", "Insufficient capacity")
DEFAULT_WAIT_TIMEOUT = 600


def is_capacity_error(error: Ec2CommandError) -> bool:
    """Check the structured error code first, then fall back to the message text."""
    if error.code:
        return error.code in CAPACITY_ERROR_CODES
    return any(signature in error.message for signature in CAPACITY_ERROR_SIGNATURES)


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return text.strip()


class InstanceStartOrchestrator:
    """Drive one instance to the running state: check → start → wait → report."""

    def __init__(
        self,
        backend,
        policy: Optional[RetryPolicy] = None,
        notifier=None,
        wait_timeout: int = DEFAULT_WAIT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            backend: Object providing describe_instance, start_instance and wait_until_running.
            policy: Retry policy for capacity errors. Defaults to 10 attempts, 30s base delay.
            notifier: Object with a send(message) method. Defaults to a no-op notifier.
            wait_timeout: Upper bound in seconds for each wait-until-running call.
            sleep: Backoff sleep function (injectable for tests).
            clock: Monotonic clock used for elapsed time.
        """
        if wait_timeout <= 0:
            raise ValueError("wait_timeout must be a positive integer")
        self.backend = backend
        self.policy = policy or RetryPolicy()
        self.notifier = notifier or NullNotifier()
        self.wait_timeout = wait_timeout
        self._sleep = sleep
        self._clock = clock

    def run(self, instance_id: InstanceRef) -> RunOutcome:
        """
        Start the instance unless it is already running.

        Returns:
            RunOutcome describing how the run ended. The notifier is called exactly once.

        Raises:
            ValueError: If instance_id is empty.
        """
        if not instance_id or not isinstance(instance_id, str) or not instance_id.strip():
            raise ValueError("instance_id must be a non-empty string")
        if not looks_like_instance_id(instance_id):
            logger.warning("Instance ID format looks unusual: %s", instance_id)

        started_at = self._clock()
        outcome = self._drive(instance_id, started_at)
        self._report(outcome)
        return outcome

    def _elapsed(self, started_at: float) -> float:
        return self._clock() - started_at

    def _drive(self, instance_id: InstanceRef, started_at: float) -> RunOutcome:
        check = self._check(instance_id)
        if check is not None:
            kind = OutcomeKind.FAILED_NOT_FOUND if check.kind is AttemptKind.NOT_FOUND else OutcomeKind.ALREADY_RUNNING
            return RunOutcome(kind, instance_id, self._elapsed(started_at))

        max_attempts = self.policy.max_attempts
        for attempt in range(1, max_attempts + 1):
            logger.info("Attempt %d/%d: Starting instance %s...", attempt, max_attempts, instance_id)
            result = self._attempt(instance_id)

            if result.kind is AttemptKind.STARTED:
                return RunOutcome(OutcomeKind.STARTED, instance_id, self._elapsed(started_at), attempts=attempt)

            if result.kind is AttemptKind.WAIT_TIMED_OUT:
                logger.warning("Timeout waiting for instance to reach running state")
                if attempt < max_attempts:
                    continue
                return RunOutcome(
                    OutcomeKind.FAILED_OTHER,
                    instance_id,
                    self._elapsed(started_at),
                    attempts=attempt,
                    error=f"did not reach running state within {self.wait_timeout}s",
                )

            if result.kind is AttemptKind.CAPACITY_EXHAUSTED:
                logger.warning("Error on attempt %d: Insufficient capacity detected", attempt)
                if attempt < max_attempts:
                    delay = self.policy.delay_for(attempt)
                    logger.info("Waiting %d seconds before retry...", delay)
                    self._sleep(delay)
                    continue
                return RunOutcome(
                    OutcomeKind.FAILED_CAPACITY,
                    instance_id,
                    self._elapsed(started_at),
                    attempts=attempt,
                    error="Insufficient capacity",
                )

            # Non-capacity errors are not transient.
            return RunOutcome(
                OutcomeKind.FAILED_OTHER,
                instance_id,
                self._elapsed(started_at),
                attempts=attempt,
                error=result.message,
            )

        return RunOutcome(
            OutcomeKind.FAILED_OTHER,
            instance_id,
            self._elapsed(started_at),
            attempts=max_attempts,
            error="retry budget exhausted",
        )

    def _check(self, instance_id: InstanceRef) -> Optional[AttemptResult]:
        """Classify the current state; None means a start is needed."""
        logger.info("Checking instance %s...", instance_id)
        try:
            state = self.backend.describe_instance(instance_id)
        except Exception as exc:
            logger.warning("Describe failed for %s: %s", instance_id, exc)
            state = NOT_FOUND_STATE

        if state == NOT_FOUND_STATE:
            return AttemptResult(AttemptKind.NOT_FOUND)

        logger.info("Instance %s current state: %s", instance_id, state)
        if state == RUNNING_STATE:
            return AttemptResult(AttemptKind.RUNNING)
        return None

    def _attempt(self, instance_id: InstanceRef) -> AttemptResult:
        try:
            self.backend.start_instance(instance_id)
        except Ec2CommandError as exc:
            if is_capacity_error(exc):
                return AttemptResult(AttemptKind.CAPACITY_EXHAUSTED, _first_line(exc.message))
            return AttemptResult(AttemptKind.OTHER_ERROR, _first_line(exc.message))
        except Exception as exc:
            logger.debug("Unexpected start failure", exc_info=True)
            return AttemptResult(AttemptKind.OTHER_ERROR, f"{type(exc).__name__}: {exc}")

        logger.info("Start command successful. Waiting for instance to be running...")
        try:
            running = self.backend.wait_until_running(instance_id, self.wait_timeout)
        except Exception as exc:
            logger.debug("Unexpected wait failure", exc_info=True)
            return AttemptResult(AttemptKind.OTHER_ERROR, f"{type(exc).__name__}: {exc}")

        if running:
            return AttemptResult(AttemptKind.STARTED)
        return AttemptResult(AttemptKind.WAIT_TIMED_OUT)

    def _report(self, outcome: RunOutcome) -> None:
        message = outcome.message()
        logger.debug("Run finished: %s after %d attempt(s)", outcome.kind.value, outcome.attempts)
        print(message)
        try:
            self.notifier.send(message)
        except Exception as exc:
            logger.warning("Notifier raised %s; continuing", exc)
