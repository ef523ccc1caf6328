from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Build",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "tool",
                    models.CharField(
                        choices=[("github_actions", "GitHub Actions"), ("jenkins", "Jenkins")],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                (
                    "external_id",
                    models.CharField(
                        help_text="Provider-native run identifier, unique per tool.",
                        max_length=255,
                    ),
                ),
                ("repo", models.CharField(blank=True, max_length=255, null=True)),
                ("branch", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "Queued"),
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("unknown", "Unknown"),
                        ],
                        db_index=True,
                        default="unknown",
                        max_length=20,
                    ),
                ),
                (
                    "conclusion",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("success", "Success"),
                            ("failure", "Failure"),
                            ("cancelled", "Cancelled"),
                            ("unknown", "Unknown"),
                        ],
                        db_index=True,
                        max_length=20,
                        null=True,
                    ),
                ),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("duration_seconds", models.PositiveIntegerField(default=0)),
                ("url", models.URLField(blank=True, max_length=1024, null=True)),
                (
                    "logs",
                    models.TextField(
                        blank=True,
                        help_text="Build log excerpt. Kept when a later observation carries no logs.",
                        null=True,
                    ),
                ),
                (
                    "raw_payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Provider payload of the most recent observation.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-started_at"],
                "indexes": [
                    models.Index(fields=["-started_at"], name="builds_started_at_idx"),
                    models.Index(fields=["-completed_at"], name="builds_completed_at_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tool", "external_id"),
                        name="builds_build_tool_external_id_uniq",
                    )
                ],
            },
        ),
    ]
