"""Base driver and message type for alert delivery.

A driver turns a NotificationMessage into something delivered over one
channel. Bodies come from the channel's Jinja2 template, so every driver
renders the same build details.

Public API:
- NotificationMessage
- BaseNotifyDriver
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from apps.notify.templating import NotificationTemplatingService

logger = logging.getLogger(__name__)

SEVERITIES = ("critical", "warning", "info", "success")


@dataclass
class NotificationMessage:
    """A channel-agnostic notification."""

    title: str
    message: str
    severity: str  # one of SEVERITIES

    channel: str = "default"
    tags: dict[str, str] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.severity = (self.severity or "").lower()
        if self.severity not in SEVERITIES:
            self.severity = "info"

    @property
    def subject(self) -> str:
        return f"[{self.severity.upper()}] {self.title}"

    @property
    def build(self) -> dict[str, Any]:
        """Build details carried in the context, if any."""
        return self.context.get("build") or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "message": self.message,
            "severity": self.severity,
            "channel": self.channel,
            "tags": self.tags,
            "context": self.context,
        }


class BaseNotifyDriver(ABC):
    """Abstract base class for notification drivers."""

    name: str = "base"

    templating = NotificationTemplatingService()

    # X-Priority style: 1 is highest
    PRIORITY_MAP = {
        "critical": "1",
        "warning": "2",
        "info": "3",
        "success": "3",
    }

    @abstractmethod
    def validate_config(self, config: dict[str, Any]) -> bool:
        """Return True when ``config`` has what this driver needs to send."""

    @abstractmethod
    def send(self, message: NotificationMessage, config: dict[str, Any]) -> dict[str, Any]:
        """Deliver a message.

        Returns:
            Dictionary with keys like:
            - success: bool
            - message_id: str (if available)
            - error: str (if failed)
            - metadata: dict (any additional info)
        """

    def render_body(self, message: NotificationMessage, config: dict[str, Any]) -> str:
        """Render the plain-text body from the driver's template.

        Raises:
            ValueError: If the template is missing or renders to nothing.
        """
        rendered = self.templating.render_message_templates(self.name, message.to_dict(), config)
        text = rendered.get("text")
        if not text:
            raise ValueError(f"{self.name} template rendered an empty body")
        return text

    def priority(self, message: NotificationMessage) -> str:
        return self.PRIORITY_MAP.get(message.severity, "3")

    def failure(self, e: Exception, action: str) -> dict[str, Any]:
        """Log ``e`` and return the failed-send result."""
        logger.exception(f"{self.name} driver failed to {action}: {e}")
        return {"success": False, "error": f"Failed to {action}: {e}"}
