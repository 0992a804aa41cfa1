"""EC2 instance starter with capacity-aware retries."""

from opsctl.ec2.backends import AwsCliBackend, Boto3Backend, create_backend
from opsctl.ec2.orchestrator import InstanceStartOrchestrator, is_capacity_error
from opsctl.ec2.types import AttemptKind, AttemptResult, OutcomeKind, RetryPolicy, RunOutcome

__all__ = [
    "AwsCliBackend",
    "Boto3Backend",
    "create_backend",
    "InstanceStartOrchestrator",
    "is_capacity_error",
    "AttemptKind",
    "AttemptResult",
    "OutcomeKind",
    "RetryPolicy",
    "RunOutcome",
]
