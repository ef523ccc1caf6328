"""Admin configuration for alerts models."""

from django.contrib import admin
from django.utils.html import format_html

from apps.alerts.models import BuildAlert


@admin.register(BuildAlert)
class BuildAlertAdmin(admin.ModelAdmin):
    """Admin for BuildAlert model."""

    list_display = ["build_link", "channel", "recipient", "created_at"]
    list_filter = ["channel"]
    search_fields = ["recipient", "build__external_id", "build__repo"]
    readonly_fields = ["build", "channel", "recipient", "created_at"]
    date_hierarchy = "created_at"

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("build")

    def has_add_permission(self, request):
        """Alerts are recorded by the dispatcher only."""
        return False

    def has_change_permission(self, request, obj=None):
        return False

    @admin.display(description="Build")
    def build_link(self, obj):
        return format_html(
            '<a href="/admin/builds/build/{}/change/">{}</a>',
            obj.build_id,
            obj.build_id,
        )
