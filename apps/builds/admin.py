"""Admin configuration for builds."""

from django.contrib import admin
from django.db import models as db_models
from django.utils.html import format_html
from django_json_widget.widgets import JSONEditorWidget
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.builds.config import IngestionConfig
from apps.builds.models import Build, BuildConclusion
from apps.builds.providers.base import ParsedBuild


@admin.register(Build)
class BuildAdmin(DjangoObjectActions, admin.ModelAdmin):
    """Admin for Build model."""

    list_display = [
        "external_id",
        "tool",
        "repo",
        "branch",
        "status",
        "conclusion_badge",
        "duration_seconds",
        "started_at",
        "alerted",
    ]
    list_filter = ["tool", "status", "conclusion"]
    search_fields = ["external_id", "repo", "branch"]
    readonly_fields = ["created_at", "updated_at"]
    date_hierarchy = "started_at"
    formfield_overrides = {db_models.JSONField: {"widget": JSONEditorWidget}}
    change_actions = ["send_failure_alert"]

    fieldsets = [
        (
            "Identification",
            {
                "fields": ["tool", "external_id", "repo", "branch", "url"],
            },
        ),
        (
            "Outcome",
            {
                "fields": ["status", "conclusion", "duration_seconds"],
            },
        ),
        (
            "Logs",
            {
                "fields": ["logs"],
                "classes": ["collapse"],
            },
        ),
        (
            "Raw Payload",
            {
                "fields": ["raw_payload"],
                "classes": ["collapse"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": ["started_at", "completed_at", "created_at", "updated_at"],
            },
        ),
    ]

    @object_action(label="Send alert", description="Send the failure alert if none was sent yet")
    def send_failure_alert(self, request, obj):
        from apps.alerts.dispatcher import AlertDispatcher

        if obj.conclusion != BuildConclusion.FAILURE:
            self.message_user(request, "Only failed builds can be alerted.", level="warning")
            return

        parsed = ParsedBuild(
            tool=obj.tool,
            external_id=obj.external_id,
            status=obj.status,
            conclusion=obj.conclusion,
            repo=obj.repo,
            branch=obj.branch,
            started_at=obj.started_at,
            completed_at=obj.completed_at,
            duration_seconds=obj.duration_seconds,
            url=obj.url,
        )
        dispatcher = AlertDispatcher(IngestionConfig.from_settings().alerting)
        if dispatcher.maybe_alert(obj.pk, parsed):
            self.message_user(request, f"Alert sent for build {obj.external_id}.")
        else:
            self.message_user(request, "Alert already sent or delivery failed.", level="warning")

    @admin.display(description="Conclusion")
    def conclusion_badge(self, obj):
        colors = {
            "success": "#28a745",
            "failure": "#dc3545",
            "cancelled": "#6c757d",
        }
        if not obj.conclusion:
            return "-"
        color = colors.get(obj.conclusion, "#ffc107")
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            color,
            obj.conclusion.upper(),
        )

    @admin.display(description="Alerted", boolean=True)
    def alerted(self, obj):
        return hasattr(obj, "alert")
