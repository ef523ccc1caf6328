"""
Jenkins provider.

Polls the JSON API with a single tree query (jobs with their most recent
builds) and accepts build notifications.
See: https://www.jenkins.io/doc/book/using/remote-access-api/
"""

import base64
import logging
from datetime import timedelta
from typing import Any

from apps.builds.exceptions import MalformedIngestionPayload, TransientProviderError
from apps.builds.models import BuildTool
from apps.builds.providers.base import (
    BaseBuildProvider,
    FetchResult,
    ParsedBuild,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

# Notification plugin phases sent once the build has a result.
FINISHED_PHASES = {"COMPLETED", "FINALIZED"}


class JenkinsProvider(BaseBuildProvider):
    """
    Provider for Jenkins builds.

    The tree query returns:
    {
        "jobs": [
            {
                "name": "api",
                "builds": [
                    {"number": 42, "result": "FAILURE", "timestamp": 1704067200000,
                     "duration": 125000, "url": "https://ci.example.com/job/api/42/"}
                ]
            }
        ]
    }

    A build with a zero or missing duration is still running, unless a
    notification reports a COMPLETED or FINALIZED phase.

    Webhooks accept the flattened shape
    ``{name|jobName, number, timestamp, duration, result, url}`` or the
    notification plugin shape with a nested ``build`` object.
    """

    name = "jenkins"
    tool = BuildTool.JENKINS

    def is_configured(self) -> bool:
        return self.config.jenkins.enabled

    def fetch_builds(self) -> FetchResult:
        result = FetchResult(provider=self.name)
        if not self.is_configured():
            # Missing URL or credentials disables the adapter.
            return result

        try:
            jobs = self._fetch_jobs()
        except TransientProviderError as e:
            logger.warning(f"Jenkins job list fetch failed, skipping this cycle: {e}")
            result.errors.append(str(e))
            return result

        for job in jobs:
            job_name = job.get("name")
            if not job_name:
                continue
            for build in job.get("builds") or []:
                if not isinstance(build, dict):
                    continue
                try:
                    result.builds.append(self.map_build(job_name, build))
                except MalformedIngestionPayload as e:
                    logger.warning(f"Skipping build without number in {job_name}: {e}")

        return result

    def _fetch_jobs(self) -> list[dict[str, Any]]:
        jenkins = self.config.jenkins
        limit = jenkins.builds_per_job
        url = (
            f"{jenkins.url}/api/json?tree=jobs[name,url,"
            f"builds[number,result,timestamp,duration,url]{{0,{limit}}}]"
        )
        credentials = base64.b64encode(f"{jenkins.user}:{jenkins.token}".encode()).decode()
        data = self.transport.get_json(url, headers={"Authorization": f"Basic {credentials}"})
        if not isinstance(data, dict):
            raise TransientProviderError(self.name, f"unexpected response shape from {url}")
        return [job for job in data.get("jobs") or [] if isinstance(job, dict)]

    def validate(self, payload: dict[str, Any]) -> bool:
        _, build = self._unwrap(payload)
        return build.get("number") not in (None, "")

    def parse(self, payload: dict[str, Any]) -> ParsedBuild:
        """Parse a webhook delivery."""
        job_name, build = self._unwrap(payload)
        parsed = self.map_build(job_name or "unknown", build)
        parsed.raw_payload = payload
        return parsed

    def map_build(self, job_name: str, build: dict[str, Any]) -> ParsedBuild:
        """Map a single build object to a ParsedBuild."""
        number = build.get("number")
        if number in (None, ""):
            raise MalformedIngestionPayload("Jenkins payload is missing the build number")

        started_at = parse_timestamp(build.get("timestamp"))
        duration_ms = self._to_number(build.get("duration"))
        result = build.get("result") or build.get("status")
        finished = str(build.get("phase") or "").upper() in FINISHED_PHASES

        if duration_ms or finished:
            status = "completed"
            completed_at = started_at + timedelta(milliseconds=duration_ms) if started_at else None
            conclusion = result or "unknown"
            duration_seconds: int | None = round(duration_ms / 1000)
        else:
            status = "in_progress"
            completed_at = None
            conclusion = None
            duration_seconds = 0

        return ParsedBuild(
            tool=self.tool,
            external_id=f"{job_name}-{number}",
            status=status,
            conclusion=conclusion.lower() if conclusion else None,
            repo=job_name,
            branch=build.get("branch"),
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=duration_seconds,
            url=build.get("full_url") or build.get("url"),
            logs=build.get("log") or build.get("logs"),
            raw_payload=build,
        )

    def _unwrap(self, payload: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        """Return (job name, build object) for flattened or nested payloads."""
        job_name = payload.get("name") or payload.get("jobName") or payload.get("job_name")
        nested = payload.get("build")
        if isinstance(nested, dict):
            build = dict(nested)
            for key in ("timestamp", "duration", "result", "phase", "url"):
                if key not in build and key in payload:
                    build[key] = payload[key]
            return job_name, build
        return job_name, payload

    @staticmethod
    def _to_number(value: Any) -> float:
        try:
            return float(value or 0)
        except (TypeError, ValueError):
            return 0.0
