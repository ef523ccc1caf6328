"""Base provider and data structures for build ingestion.

Providers normalize CI payloads from different sources (GitHub Actions,
Jenkins) into a common internal format. The same per-record mapping is used
for polled records and webhook deliveries, so both paths produce identical
ParsedBuild values for the same run.

Public API:
- ParsedBuild
- FetchResult
- BaseBuildProvider
- derive_duration
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from datetime import timezone as dt_tz
from typing import Any

from django.utils.dateparse import parse_datetime

from apps.builds.config import IngestionConfig
from apps.builds.transport import HttpTransport

logger = logging.getLogger(__name__)

STATUSES = ("queued", "in_progress", "completed", "unknown")
CONCLUSIONS = ("success", "failure", "cancelled", "unknown")

STATUS_ALIASES = {
    "pending": "queued",
    "requested": "queued",
    "waiting": "queued",
    "running": "in_progress",
    "started": "in_progress",
    "building": "in_progress",
    "finished": "completed",
    "finalized": "completed",
}

CONCLUSION_ALIASES = {
    "aborted": "cancelled",
    "canceled": "cancelled",
    "timed_out": "failure",
    "startup_failure": "failure",
}


def derive_duration(started_at: datetime | None, completed_at: datetime | None) -> int:
    """Whole seconds between start and completion, never negative."""
    if started_at is None or completed_at is None:
        return 0
    return max(0, round((completed_at - started_at).total_seconds()))


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC3339 string or epoch milliseconds into an aware datetime.

    Epoch milliseconds may arrive as a number or as a digit-only string.
    """
    if value in (None, ""):
        return None

    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value <= 0:
            return None
        return datetime.fromtimestamp(value / 1000, tz=dt_tz.utc)

    if isinstance(value, datetime):
        parsed: datetime | None = value
    else:
        try:
            parsed = parse_datetime(str(value))
        except ValueError:
            parsed = None

    if parsed is None:
        logger.debug("Unparseable timestamp: %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_tz.utc)
    return parsed


def _normalize_conclusion(value: Any) -> str | None:
    if value in (None, ""):
        return None
    conclusion = str(value).lower()
    conclusion = CONCLUSION_ALIASES.get(conclusion, conclusion)
    return conclusion if conclusion in CONCLUSIONS else "unknown"


@dataclass
class ParsedBuild:
    """Canonical build record that all providers produce."""

    # Required fields
    tool: str
    external_id: str

    # Optional fields with defaults
    status: str = "unknown"
    conclusion: str | None = None  # None means "absent"
    repo: str | None = None
    branch: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: int | None = None  # None means "derive from timestamps"
    url: str | None = None
    logs: str | None = None
    raw_payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate and normalize fields after initialization."""
        self.external_id = str(self.external_id)

        status = (self.status or "").lower()
        status = STATUS_ALIASES.get(status, status)
        self.status = status if status in STATUSES else "unknown"

        self.conclusion = _normalize_conclusion(self.conclusion)

        # An empty log blob carries no information.
        if not self.logs:
            self.logs = None

        if self.duration_seconds is None:
            self.duration_seconds = derive_duration(self.started_at, self.completed_at)
        else:
            self.duration_seconds = max(0, int(round(self.duration_seconds)))

    @property
    def is_failure(self) -> bool:
        return self.conclusion == "failure"

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "external_id": self.external_id,
            "status": self.status,
            "conclusion": self.conclusion,
            "repo": self.repo,
            "branch": self.branch,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "url": self.url,
        }


@dataclass
class FetchResult:
    """Result of one polling fetch for a provider."""

    provider: str
    builds: list[ParsedBuild] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


class BaseBuildProvider(ABC):
    """Abstract base class for CI provider adapters."""

    name: str = "base"
    tool: str = ""

    def __init__(
        self,
        config: IngestionConfig | None = None,
        transport: HttpTransport | None = None,
    ):
        self.config = config or IngestionConfig()
        self.transport = transport or HttpTransport(self.name, self.config.transport)

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True when credentials/endpoints for polling are present."""

    @abstractmethod
    def fetch_builds(self) -> FetchResult:
        """Fetch recent builds from the provider.

        Transient provider errors are contained: the affected unit of work is
        skipped and reported in ``FetchResult.errors``.
        """

    @abstractmethod
    def validate(self, payload: dict[str, Any]) -> bool:
        """Check that a webhook payload carries the provider-native identifier."""

    @abstractmethod
    def parse(self, payload: dict[str, Any]) -> ParsedBuild:
        """Parse a webhook payload into a ParsedBuild.

        Raises:
            MalformedIngestionPayload: If the identifier is missing.
        """
