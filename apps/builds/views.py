"""
Views for the build webhook receiver and the read endpoints.
"""

import json
import logging

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.builds.config import IngestionConfig
from apps.builds.exceptions import MalformedIngestionPayload, PersistenceError
from apps.builds.providers import get_provider
from apps.builds.services import BuildIngestionService, BuildQueryService

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({"status": "error", "message": message}, status=status)


@method_decorator(csrf_exempt, name="dispatch")
class BuildWebhookView(View):
    """
    Webhook endpoint for build events pushed by a CI provider.

    POST /builds/webhook/<provider>/

    The payload is mapped by the provider's adapter and written through the
    same ingestion path as polling, so a build observed both ways ends up as
    one row with at most one alert.
    """

    def post(self, request, provider):
        try:
            payload = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Invalid JSON payload for {provider} webhook: {e}")
            return _error("Invalid JSON payload", 400)

        if not isinstance(payload, dict):
            return _error("Payload must be a JSON object", 400)

        config = IngestionConfig.from_settings()
        try:
            adapter = get_provider(provider, config)
        except KeyError:
            return _error(f"Unknown provider: {provider}", 404)

        try:
            if not adapter.validate(payload):
                raise MalformedIngestionPayload(f"Payload not recognized by {provider} adapter")
            parsed = adapter.parse(payload)
        except MalformedIngestionPayload as e:
            logger.warning(f"Rejected {provider} webhook: {e}")
            return _error(str(e), 400)

        try:
            outcome = BuildIngestionService(config).ingest(parsed)
        except PersistenceError as e:
            logger.error(f"Could not store {provider} webhook build: {e}")
            return _error("Build could not be stored", 503)

        logger.info(
            f"Webhook ingested {parsed.tool}/{parsed.external_id} "
            f"(conclusion={outcome.conclusion}, alerted={outcome.alerted})"
        )
        return JsonResponse(
            {
                "status": "success",
                "build_id": outcome.build_id,
                "conclusion": outcome.conclusion,
                "alerted": outcome.alerted,
            }
        )

    def get(self, request, provider):
        """Readiness probe."""
        return JsonResponse(
            {
                "status": "ok",
                "message": "Build webhook endpoint is ready",
                "provider": provider,
            }
        )


class HealthView(View):
    """
    GET /builds/health/
    """

    def get(self, request):
        if BuildQueryService.check_database():
            return JsonResponse({"ok": True})
        return JsonResponse({"ok": False}, status=500)


class MetricsView(View):
    """
    GET /builds/metrics/
    """

    def get(self, request):
        return JsonResponse(BuildQueryService.get_metrics())


class BuildListView(View):
    """
    GET /builds/?limit=N

    Recent builds, newest first.
    """

    def get(self, request):
        try:
            limit = int(request.GET.get("limit", BuildQueryService.DEFAULT_LIMIT))
        except ValueError:
            return _error("limit must be an integer", 400)
        if limit < 0:
            return _error("limit must not be negative", 400)

        builds = BuildQueryService.get_recent_builds(limit)
        return JsonResponse({"count": len(builds), "builds": builds})
