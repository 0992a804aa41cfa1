"""Exception types shared by the opsctl tools."""
from __future__ import annotations

from typing import Optional


class OpsError(RuntimeError):
    """Base class for opsctl failures."""


class PreflightError(OpsError):
    """Raised when the environment cannot support a run at all."""


class MissingToolError(PreflightError):
    """Raised when a required executable is not on PATH."""


class MissingCredentialsError(PreflightError):
    """Raised when cloud credentials are absent or rejected."""


class Ec2CommandError(OpsError):
    """Raised when the EC2 control plane rejects a request."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
