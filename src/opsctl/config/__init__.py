"""
Configuration module for opsctl.
Loads optional .env settings for notifications and AWS region selection.
"""
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_NTFY_SERVER = "https://ntfy.sh"
DEFAULT_NTFY_TIMEOUT = 10


class OpsConfig:
    """Load configuration from the environment and an optional .env file."""

    def __init__(self, env_file: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            env_file: Path to .env file. If None, looks for .env in the current directory.

        Raises:
            ValueError: If NTFY_TIMEOUT is not a positive integer.
        """
        self._load_env_file(env_file)
        self.ntfy_topic = self._get_optional_env("NTFY_TOPIC")
        self.ntfy_server = (os.getenv("NTFY_SERVER") or DEFAULT_NTFY_SERVER).rstrip("/")
        self.ntfy_timeout = self._get_positive_int("NTFY_TIMEOUT", DEFAULT_NTFY_TIMEOUT)
        self.aws_region = self._get_optional_env("AWS_REGION") or self._get_optional_env("AWS_DEFAULT_REGION")

    @property
    def notifications_enabled(self) -> bool:
        return self.ntfy_topic is not None

    @staticmethod
    def _load_env_file(env_file: Optional[Path]) -> None:
        """Load .env file if it exists. Variables already set in the environment win."""
        if env_file is None:
            env_file = Path.cwd() / ".env"

        if env_file.exists():
            logger.debug("Loading settings from %s", env_file)
            load_dotenv(env_file, override=False)

    @staticmethod
    def _get_optional_env(key: str) -> Optional[str]:
        value = os.getenv(key)
        if value is None or not value.strip():
            return None
        return value.strip()

    @staticmethod
    def _get_positive_int(key: str, default: int) -> int:
        raw = os.getenv(key)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise ValueError(f"Environment variable '{key}' must be an integer, got {raw!r}") from exc
        if value <= 0:
            raise ValueError(f"Environment variable '{key}' must be positive, got {value}")
        return value


def get_config(env_file: Optional[Path] = None) -> OpsConfig:
    """
    Get opsctl configuration.

    Args:
        env_file: Path to .env file (for testing).

    Returns:
        OpsConfig instance.
    """
    return OpsConfig(env_file)
