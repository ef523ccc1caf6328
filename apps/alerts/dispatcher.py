"""
Alert dispatcher for failing builds.

Guarantees at most one BuildAlert row per build. The existence check and the
write are one atomic statement: inserting the alert row either succeeds (this
caller owns the alert) or violates the unique constraint (someone already
alerted). Delivery is best effort; when it fails the claim is removed so a
later failing observation of the same build can try again.
"""

import logging
from typing import Any

from django.db import DatabaseError, IntegrityError, transaction

from apps.alerts.models import BuildAlert
from apps.builds.config import AlertingConfig
from apps.builds.exceptions import NotificationError
from apps.builds.providers.base import ParsedBuild
from apps.notify.drivers import BaseNotifyDriver, NotificationMessage, get_driver

logger = logging.getLogger(__name__)


class AlertDispatcher:
    """
    Sends one failure notification per build.

    Usage:
        dispatcher = AlertDispatcher(config.alerting)
        sent = dispatcher.maybe_alert(build_id, parsed_build)
    """

    def __init__(
        self,
        config: AlertingConfig | None = None,
        driver: BaseNotifyDriver | None = None,
    ):
        self.config = config or AlertingConfig()
        self.driver = driver or get_driver(self.config.channel)

    def maybe_alert(self, build_id: int, parsed: ParsedBuild) -> bool:
        """
        Alert for a failing build unless an alert already exists.

        Args:
            build_id: Stored id returned by the upsert.
            parsed: The build as observed in this ingestion.

        Returns:
            True if a notification was sent by this call.
        """
        if not parsed.is_failure:
            # Only definitive failures alert; "unknown" never does.
            return False

        claim = self._claim(build_id)
        if claim is None:
            return False

        try:
            result = self._deliver(parsed)
        except NotificationError as e:
            logger.error(f"Alert delivery failed for build {build_id}: {e}")
            self._release(claim)
            return False

        logger.info(
            f"Alert sent for build {parsed.tool}/{parsed.external_id} "
            f"(id={build_id}, message_id={result.get('message_id')})"
        )
        return True

    def compose(self, parsed: ParsedBuild) -> NotificationMessage:
        """Build the notification message for a failing build."""
        target = parsed.repo or parsed.tool
        title = f"Build failed: {target}"
        if parsed.branch:
            title += f" ({parsed.branch})"

        return NotificationMessage(
            title=title,
            message=f"{parsed.tool} build {parsed.external_id} finished with "
            f"conclusion '{parsed.conclusion}'.",
            severity="critical",
            channel=self.config.channel,
            tags={"tool": str(parsed.tool), "external_id": parsed.external_id},
            context={"build": parsed.to_dict()},
        )

    def _claim(self, build_id: int) -> BuildAlert | None:
        """Insert the alert row; None if one already exists."""
        try:
            with transaction.atomic():
                return BuildAlert.objects.create(
                    build_id=build_id,
                    recipient=", ".join(self.config.recipients),
                    channel=self.config.channel,
                )
        except IntegrityError:
            logger.debug(f"Alert already recorded for build {build_id}; skipping")
            return None
        except DatabaseError as e:
            # Alerting never fails ingestion. Without a claim nothing is sent,
            # and the next failing observation of this build tries again.
            logger.error(f"Could not record alert for build {build_id}: {e}")
            return None

    def _release(self, claim: BuildAlert) -> None:
        try:
            claim.delete()
        except DatabaseError as e:
            logger.error(f"Could not release alert claim for build {claim.build_id}: {e}")

    def _deliver(self, parsed: ParsedBuild) -> dict[str, Any]:
        message = self.compose(parsed)
        try:
            result = self.driver.send(message, self.config.driver_config())
        except Exception as e:
            raise NotificationError(str(e)) from e

        if not result.get("success"):
            raise NotificationError(result.get("error") or "delivery failed")
        return result
