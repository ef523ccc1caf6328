"""
Canonical build records aggregated from CI providers.
"""

from django.db import models


class BuildTool(models.TextChoices):
    """CI providers a build can come from."""

    GITHUB_ACTIONS = "github_actions", "GitHub Actions"
    JENKINS = "jenkins", "Jenkins"


class BuildStatus(models.TextChoices):
    """Lifecycle status of a build."""

    QUEUED = "queued", "Queued"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    UNKNOWN = "unknown", "Unknown"


class BuildConclusion(models.TextChoices):
    """Outcome of a completed build (NULL while the build has no outcome)."""

    SUCCESS = "success", "Success"
    FAILURE = "failure", "Failure"
    CANCELLED = "cancelled", "Cancelled"
    UNKNOWN = "unknown", "Unknown"


class Build(models.Model):
    """
    A single CI run, normalized across providers.

    The pair (tool, external_id) identifies at most one row. Re-observing the
    same pair, by polling or by webhook, updates the row in place.
    """

    tool = models.CharField(
        max_length=32,
        choices=BuildTool.choices,
        db_index=True,
    )
    external_id = models.CharField(
        max_length=255,
        help_text="Provider-native run identifier, unique per tool.",
    )

    repo = models.CharField(max_length=255, null=True, blank=True)
    branch = models.CharField(max_length=255, null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=BuildStatus.choices,
        default=BuildStatus.UNKNOWN,
        db_index=True,
    )
    conclusion = models.CharField(
        max_length=20,
        choices=BuildConclusion.choices,
        null=True,
        blank=True,
        db_index=True,
    )

    # Provider clock
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    duration_seconds = models.PositiveIntegerField(default=0)

    url = models.URLField(max_length=1024, null=True, blank=True)
    logs = models.TextField(
        null=True,
        blank=True,
        help_text="Build log excerpt. Kept when a later observation carries no logs.",
    )
    raw_payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Provider payload of the most recent observation.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-started_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tool", "external_id"],
                name="builds_build_tool_external_id_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["-started_at"], name="builds_started_at_idx"),
            models.Index(fields=["-completed_at"], name="builds_completed_at_idx"),
        ]

    def __str__(self):
        return f"[{self.tool}] {self.repo or '-'}#{self.external_id} ({self.conclusion or self.status})"

    @property
    def is_failure(self) -> bool:
        return self.conclusion == BuildConclusion.FAILURE
