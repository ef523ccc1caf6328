"""
URL configuration for the builds app.
"""

from django.urls import path

from apps.builds.views import BuildListView, BuildWebhookView, HealthView, MetricsView

app_name = "builds"

urlpatterns = [
    path("", BuildListView.as_view(), name="list"),
    path("health/", HealthView.as_view(), name="health"),
    path("metrics/", MetricsView.as_view(), name="metrics"),
    path("webhook/<str:provider>/", BuildWebhookView.as_view(), name="webhook"),
]
