"""Best-effort outcome notifications delivered through ntfy."""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import requests

from opsctl.config import DEFAULT_NTFY_SERVER, DEFAULT_NTFY_TIMEOUT, OpsConfig

logger = logging.getLogger(__name__)


class NullNotifier:
    """Notifier used when no topic is configured."""

    def send(self, message: str) -> bool:
        logger.debug("Notifications disabled; not sending: %s", message)
        return False


class NtfyNotifier:
    """Publish plain-text messages to an ntfy topic."""

    def __init__(
        self,
        topic: str,
        server: str = DEFAULT_NTFY_SERVER,
        timeout: int = DEFAULT_NTFY_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not topic or not isinstance(topic, str) or not topic.strip():
            raise ValueError("topic must be a non-empty string")
        if timeout <= 0:
            raise ValueError("timeout must be a positive integer")

        self.topic = topic.strip()
        self.url = f"{server.rstrip('/')}/{quote(self.topic, safe='')}"
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, message: str) -> bool:
        """
        Deliver a message. Never raises.

        Returns:
            True if the server accepted the message, False otherwise.
        """
        try:
            response = self.session.post(self.url, data=message.encode("utf-8"), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Failed to send notification to %s: %s", self.topic, exc)
            return False

        logger.info("Notification sent to %s", self.topic)
        return True


def build_notifier(config: OpsConfig):
    """Return an ntfy notifier when a topic is configured, else a no-op one."""
    if not config.notifications_enabled:
        return NullNotifier()
    return NtfyNotifier(config.ntfy_topic, server=config.ntfy_server, timeout=config.ntfy_timeout)
