"""
Alert records for failing builds.

A BuildAlert row is the dedup authority: at most one exists per build.
"""

from django.db import models


class AlertChannel(models.TextChoices):
    """Channels an alert can be sent over."""

    EMAIL = "email", "Email"


class BuildAlert(models.Model):
    """
    Records that a failure notification was sent for a build.

    ``build`` is a lookup-only reference: no database constraint and no
    cascade, so alert rows never influence the build's lifecycle.
    """

    build = models.OneToOneField(
        "builds.Build",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="alert",
        help_text="Build this alert was sent for (unique: one alert per build).",
    )
    recipient = models.CharField(
        max_length=1024,
        blank=True,
        default="",
        help_text="Comma-separated recipients the alert was addressed to.",
    )
    channel = models.CharField(
        max_length=32,
        choices=AlertChannel.choices,
        default=AlertChannel.EMAIL,
        db_index=True,
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Alert for build {self.build_id} via {self.channel}"
