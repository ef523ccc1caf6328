import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("builds", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="BuildAlert",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "recipient",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Comma-separated recipients the alert was addressed to.",
                        max_length=1024,
                    ),
                ),
                (
                    "channel",
                    models.CharField(
                        choices=[("email", "Email")],
                        db_index=True,
                        default="email",
                        max_length=32,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "build",
                    models.OneToOneField(
                        db_constraint=False,
                        help_text="Build this alert was sent for (unique: one alert per build).",
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="alert",
                        to="builds.build",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
