"""Email notification driver.

Without an ``smtp_host`` in the config, sends are simulated: the email is
captured in ``EmailNotifyDriver.outbox`` and logged instead of delivered.
"""

import logging
import smtplib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """An email captured by a simulated send."""

    from_address: str
    to: list[str]
    subject: str
    body: str
    message_id: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EmailNotifyDriver(BaseNotifyDriver):
    """
    Sends build alerts by email.

    Config keys:
        from_address (required), to_addresses, smtp_host, smtp_port (587),
        use_tls (True), use_ssl (False), username, password, timeout (30)
    """

    name = "email"

    def __init__(self) -> None:
        self.outbox: list[SentEmail] = []

    def validate_config(self, config: dict[str, Any]) -> bool:
        return bool(config.get("from_address"))

    def is_simulated(self, config: dict[str, Any]) -> bool:
        return not config.get("smtp_host")

    def recipients(self, message: NotificationMessage, config: dict[str, Any]) -> list[str]:
        """Configured recipients, else an address-like channel, else the sender."""
        if config.get("to_addresses"):
            return list(config["to_addresses"])
        if "@" in message.channel:
            return [message.channel]
        return [config["from_address"]]

    def send(self, message: NotificationMessage, config: dict[str, Any]) -> dict[str, Any]:
        if not self.validate_config(config):
            return {
                "success": False,
                "error": "Invalid email configuration (from_address required)",
            }

        try:
            body = self.render_body(message, config)
        except ValueError as e:
            return self.failure(e, "render email body")

        return self.send_mail(
            config["from_address"],
            self.recipients(message, config),
            message.subject,
            body,
            config,
            priority=self.priority(message),
        )

    def send_mail(
        self,
        from_address: str,
        to: list[str],
        subject: str,
        body: str,
        config: dict[str, Any] | None = None,
        priority: str = "3",
    ) -> dict[str, Any]:
        """Send (or, without an SMTP host, capture) a plain-text email."""
        config = config or {}
        message_id = str(uuid.uuid4())
        metadata = {"to": list(to), "from": from_address, "subject": subject}

        if self.is_simulated(config):
            self.outbox.append(
                SentEmail(
                    from_address=from_address,
                    to=list(to),
                    subject=subject,
                    body=body,
                    message_id=message_id,
                )
            )
            logger.info(f"Email simulated (no SMTP host configured): {subject} -> {to}")
            return {
                "success": True,
                "message_id": message_id,
                "metadata": {**metadata, "simulated": True},
            }

        smtp_host = config["smtp_host"]
        email = EmailMessage()
        email["Subject"] = subject
        email["From"] = from_address
        email["To"] = ", ".join(to)
        email["X-Priority"] = priority
        email["Message-ID"] = f"<{message_id}@{smtp_host}>"
        email.set_content(body)

        try:
            self._deliver(email, from_address, to, config)
        except smtplib.SMTPAuthenticationError as e:
            return self.failure(e, "authenticate with SMTP")
        except smtplib.SMTPException as e:
            return self.failure(e, "send via SMTP")
        except OSError as e:
            return self.failure(e, "connect to SMTP")

        logger.info(f"Email sent: {message_id} -> {to}")
        return {"success": True, "message_id": message_id, "metadata": metadata}

    def _deliver(
        self, email: EmailMessage, from_address: str, to: list[str], config: dict[str, Any]
    ) -> None:
        smtp_host = config["smtp_host"]
        smtp_port = config.get("smtp_port", 587)
        timeout = config.get("timeout", 30)
        use_ssl = config.get("use_ssl", False)

        server: smtplib.SMTP
        if use_ssl:
            server = smtplib.SMTP_SSL(smtp_host, smtp_port, timeout=timeout)
        else:
            server = smtplib.SMTP(smtp_host, smtp_port, timeout=timeout)

        try:
            if config.get("use_tls", True) and not use_ssl:
                server.starttls()
            if config.get("username") and config.get("password"):
                server.login(config["username"], config["password"])
            server.sendmail(from_address, list(to), email.as_string())
        finally:
            try:
                server.quit()
            except smtplib.SMTPException:
                logger.debug("SMTP quit failed after send", exc_info=True)
