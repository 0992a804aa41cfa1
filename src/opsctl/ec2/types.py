"""Type definitions for the EC2 instance starter."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

InstanceRef = str

INSTANCE_ID_PATTERN = re.compile(r"^i-[0-9a-f]{8,17}$")

RUNNING_STATE = "running"
NOT_FOUND_STATE = "NOT_FOUND"


def looks_like_instance_id(ref: InstanceRef) -> bool:
    return bool(INSTANCE_ID_PATTERN.match(ref))


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded exponential backoff for capacity errors."""

    max_attempts: int = 10
    base_delay_seconds: int = 30

    def __post_init__(self) -> None:
        if not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer")
        if not isinstance(self.base_delay_seconds, int) or self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be a non-negative integer")

    def delay_for(self, attempt: int) -> int:
        """Seconds to wait after a capacity failure on the given 1-based attempt."""
        if attempt < 1:
            raise ValueError("attempt is 1-based")
        return self.base_delay_seconds * (2 ** (attempt - 1))


class AttemptKind(str, Enum):
    RUNNING = "running"
    STARTED = "started"
    CAPACITY_EXHAUSTED = "capacity_exhausted"
    WAIT_TIMED_OUT = "wait_timed_out"
    OTHER_ERROR = "other_error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class AttemptResult:
    kind: AttemptKind
    message: Optional[str] = None


class OutcomeKind(str, Enum):
    ALREADY_RUNNING = "already_running"
    STARTED = "started"
    FAILED_CAPACITY = "failed_capacity"
    FAILED_OTHER = "failed_other"
    FAILED_NOT_FOUND = "failed_not_found"


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Terminal result of one orchestrator run."""

    kind: OutcomeKind
    instance_id: InstanceRef
    elapsed_seconds: float
    attempts: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.kind in (OutcomeKind.ALREADY_RUNNING, OutcomeKind.STARTED)

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def message(self) -> str:
        """Human-readable summary used for console output and notifications."""
        elapsed = int(self.elapsed_seconds)
        if self.kind is OutcomeKind.ALREADY_RUNNING:
            return f"✅ Instance {self.instance_id} is already running (checked in {elapsed}s)"
        if self.kind is OutcomeKind.STARTED:
            return f"✅ Instance {self.instance_id} started successfully in {elapsed}s (attempt {self.attempts})"
        if self.kind is OutcomeKind.FAILED_NOT_FOUND:
            return f"❌ Instance {self.instance_id} not found"
        if self.kind is OutcomeKind.FAILED_CAPACITY:
            return (
                f"❌ Instance {self.instance_id} failed to start after {self.attempts} attempts "
                f"({elapsed}s). Final error: Insufficient capacity"
            )
        return f"❌ Instance {self.instance_id} failed to start ({elapsed}s). Error: {self.error}"
