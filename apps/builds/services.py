"""
Build ingestion services.

This module contains the single write path for canonical builds (used by both
the webhook receiver and the poll scheduler) and the read-side queries behind
the metrics endpoints.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from django.db import DatabaseError, connection
from django.db.models import Avg, Count, F, Q

from apps.builds.config import IngestionConfig
from apps.builds.exceptions import PersistenceError
from apps.builds.models import Build, BuildConclusion
from apps.builds.providers.base import ParsedBuild

logger = logging.getLogger(__name__)

# Overwritten on every re-observation. "logs" is added only when the incoming
# record carries logs; "created_at" is never overwritten.
UPSERT_UPDATE_FIELDS = [
    "repo",
    "branch",
    "status",
    "conclusion",
    "started_at",
    "completed_at",
    "duration_seconds",
    "url",
    "raw_payload",
    "updated_at",
]


@dataclass(frozen=True)
class UpsertResult:
    """Stored identity and conclusion after an upsert."""

    build_id: int
    conclusion: str | None

    @property
    def is_failure(self) -> bool:
        return self.conclusion == BuildConclusion.FAILURE


@dataclass(frozen=True)
class IngestOutcome:
    build_id: int
    conclusion: str | None
    alerted: bool = False


@dataclass
class IngestionResult:
    """Result of ingesting a batch of builds."""

    ingested: int = 0
    alerts_sent: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


class BuildIngestionService:
    """
    Single write path for canonical builds.

    1. Upserts the build atomically on (tool, external_id)
    2. Hands failing builds to the alert dispatcher, using the conclusion
       returned by the upsert rather than re-reading the row

    Usage:
        service = BuildIngestionService(config)
        outcome = service.ingest(parsed_build)
    """

    def __init__(self, config: IngestionConfig | None = None, dispatcher: Any = None):
        self.config = config or IngestionConfig()
        if dispatcher is None:
            from apps.alerts.dispatcher import AlertDispatcher

            dispatcher = AlertDispatcher(self.config.alerting)
        self.dispatcher = dispatcher

    def upsert(self, parsed: ParsedBuild) -> UpsertResult:
        """
        Insert or update a build in one INSERT ... ON CONFLICT statement.

        Args:
            parsed: Normalized build record.

        Returns:
            UpsertResult with the stored id and conclusion.

        Raises:
            PersistenceError: If the database rejects or cannot apply the write.
        """
        build = Build(
            tool=parsed.tool,
            external_id=parsed.external_id,
            repo=parsed.repo,
            branch=parsed.branch,
            status=parsed.status,
            conclusion=parsed.conclusion,
            started_at=parsed.started_at,
            completed_at=parsed.completed_at,
            duration_seconds=parsed.duration_seconds or 0,
            url=parsed.url,
            logs=parsed.logs,
            raw_payload=parsed.raw_payload or {},
        )

        update_fields = list(UPSERT_UPDATE_FIELDS)
        if parsed.logs is not None:
            update_fields.append("logs")

        try:
            Build.objects.bulk_create(
                [build],
                update_conflicts=True,
                unique_fields=["tool", "external_id"],
                update_fields=update_fields,
            )
            build_id = build.pk
            if build_id is None:
                # Backends that cannot return rows from the upsert.
                build_id = Build.objects.values_list("pk", flat=True).get(
                    tool=parsed.tool, external_id=parsed.external_id
                )
        except DatabaseError as e:
            logger.error(f"Upsert failed for {parsed.tool}/{parsed.external_id}: {e}")
            raise PersistenceError(
                f"Could not store build {parsed.tool}/{parsed.external_id}: {e}"
            ) from e

        logger.debug(
            f"Upserted build {parsed.tool}/{parsed.external_id} "
            f"(id={build_id}, conclusion={parsed.conclusion})"
        )
        return UpsertResult(build_id=build_id, conclusion=parsed.conclusion)

    def ingest(self, parsed: ParsedBuild) -> IngestOutcome:
        """Upsert a build and alert on failure."""
        stored = self.upsert(parsed)

        alerted = False
        if stored.is_failure:
            alerted = self.dispatcher.maybe_alert(stored.build_id, parsed)

        return IngestOutcome(
            build_id=stored.build_id,
            conclusion=stored.conclusion,
            alerted=alerted,
        )

    def ingest_many(self, builds: Iterable[ParsedBuild]) -> IngestionResult:
        """Ingest builds one at a time; a failed write does not stop the rest."""
        result = IngestionResult()
        for parsed in builds:
            try:
                outcome = self.ingest(parsed)
            except PersistenceError as e:
                result.errors.append(str(e))
                continue
            result.ingested += 1
            if outcome.alerted:
                result.alerts_sent += 1
        return result


class BuildQueryService:
    """
    Read-only queries over stored builds.
    """

    DEFAULT_LIMIT = 50
    MAX_LIMIT = 200

    @staticmethod
    def check_database() -> bool:
        """Return True when the database answers a trivial query."""
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except DatabaseError as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    @staticmethod
    def get_metrics() -> dict[str, Any]:
        """Success/failure rates, average duration and the latest build."""
        stats = Build.objects.aggregate(
            successes=Count("id", filter=Q(conclusion=BuildConclusion.SUCCESS)),
            failures=Count("id", filter=Q(conclusion=BuildConclusion.FAILURE)),
            avg_duration=Avg("duration_seconds"),
        )
        successes = stats["successes"] or 0
        failures = stats["failures"] or 0
        total = successes + failures

        last = (
            Build.objects.order_by(
                F("completed_at").desc(nulls_last=True),
                F("started_at").desc(nulls_last=True),
            )
            .values("status", "conclusion", "repo", "tool", "completed_at")
            .first()
        )

        return {
            "successRate": successes / total if total else 0,
            "failureRate": failures / total if total else 0,
            "avgBuildTimeSeconds": float(stats["avg_duration"] or 0),
            "lastBuild": last,
        }

    @classmethod
    def get_recent_builds(cls, limit: int | None = None) -> list[dict[str, Any]]:
        """Most recently started builds, newest first. ``limit=0`` returns nothing."""
        if limit is None:
            limit = cls.DEFAULT_LIMIT
        if limit < 1:
            return []
        limit = min(limit, cls.MAX_LIMIT)
        return list(
            Build.objects.order_by(F("started_at").desc(nulls_last=True)).values(
                "id",
                "external_id",
                "tool",
                "repo",
                "branch",
                "status",
                "conclusion",
                "duration_seconds",
                "url",
                "started_at",
                "completed_at",
            )[:limit]
        )
