"""Celery tasks for periodic provider polling.

Flow:
1) beat fires ``poll_all_providers`` every POLL_INTERVAL_SECONDS
2) it fans out one ``poll_provider_task`` per enabled provider as a group,
   so providers poll concurrently on the workers
3) each provider task runs under its single-flight token; a task that finds
   the previous cycle still running returns a "skipped" outcome
"""

from __future__ import annotations

import logging
from typing import Any

from celery import group, shared_task
from django.core.cache import caches
from django.core.cache.backends.locmem import LocMemCache

logger = logging.getLogger(__name__)


def _scheduler():
    from apps.builds.config import IngestionConfig
    from apps.builds.scheduler import PollScheduler

    return PollScheduler(IngestionConfig.from_settings())


def build_poll_group(provider_names: list[str]):
    """Build the Celery group polling each provider."""
    return group(poll_provider_task.s(name) for name in provider_names)


@shared_task
def poll_all_providers() -> dict[str, Any]:
    """Entry-point task: dispatch one polling task per enabled provider."""
    from apps.builds.config import IngestionConfig
    from apps.builds.providers import get_enabled_providers

    names = list(get_enabled_providers(IngestionConfig.from_settings()))
    if not names:
        return {"status": "idle", "providers": []}

    if isinstance(caches["default"], LocMemCache):
        logger.warning(
            "Poll locks use a per-process local-memory cache; overlapping worker "
            "polls will not see each other. Set REDIS_URL to share them."
        )

    res = build_poll_group(names).apply_async()
    return {"status": "queued", "providers": names, "group_id": res.id}


@shared_task
def poll_provider_task(provider_name: str) -> dict[str, Any]:
    """Poll a single provider and return its outcome."""
    return _scheduler().poll_provider(provider_name).to_dict()
