"""
GitHub Actions provider.

Polls the workflow runs endpoint for each configured repository and accepts
``workflow_run`` webhook deliveries.
See: https://docs.github.com/en/rest/actions/workflow-runs
"""

import logging
from typing import Any
from urllib.parse import quote

from apps.builds.exceptions import MalformedIngestionPayload, TransientProviderError
from apps.builds.models import BuildTool
from apps.builds.providers.base import (
    BaseBuildProvider,
    FetchResult,
    ParsedBuild,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class GitHubActionsProvider(BaseBuildProvider):
    """
    Provider for GitHub Actions workflow runs.

    The list-runs endpoint returns:
    {
        "total_count": 2,
        "workflow_runs": [
            {
                "id": 555,
                "status": "completed",
                "conclusion": "success",
                "head_branch": "main",
                "run_started_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:02:05Z",
                "html_url": "https://github.com/org/repo/actions/runs/555",
                "repository": {"full_name": "org/repo"}
            }
        ]
    }

    Webhooks may deliver the same run object, a ``{"workflow_run": {...}}``
    event envelope, or flattened aliases (``run_id``, ``branch``, ``repo``,
    ``url``, ``started_at``, ``completed_at``).
    """

    name = "github_actions"
    tool = BuildTool.GITHUB_ACTIONS

    def is_configured(self) -> bool:
        return self.config.github.enabled

    def fetch_builds(self) -> FetchResult:
        result = FetchResult(provider=self.name)
        if not self.is_configured():
            return result

        for repo in self.config.github.repos:
            try:
                runs = self._fetch_repo_runs(repo)
            except TransientProviderError as e:
                # Skip this repo only; the others are still fetched.
                logger.warning(f"Skipping {repo}: {e}")
                result.errors.append(str(e))
                continue

            for run in runs:
                try:
                    result.builds.append(self.map_run(run, default_repo=repo))
                except MalformedIngestionPayload as e:
                    logger.warning(f"Skipping run without id in {repo}: {e}")

        return result

    def _fetch_repo_runs(self, repo: str) -> list[dict[str, Any]]:
        github = self.config.github
        url = (
            f"{github.api_url}/repos/{quote(repo, safe='/')}/actions/runs"
            f"?per_page={github.per_page}"
        )
        data = self.transport.get_json(
            url,
            headers={
                "Authorization": f"Bearer {github.token}",
                "Accept": "application/vnd.github+json",
            },
        )
        if not isinstance(data, dict):
            raise TransientProviderError(self.name, f"unexpected response shape from {url}")
        runs = data.get("workflow_runs") or []
        return [run for run in runs if isinstance(run, dict)]

    def validate(self, payload: dict[str, Any]) -> bool:
        run = self._unwrap(payload)
        return self._run_id(run) is not None

    def parse(self, payload: dict[str, Any]) -> ParsedBuild:
        """Parse a webhook delivery."""
        return self.map_run(self._unwrap(payload))

    def map_run(self, run: dict[str, Any], default_repo: str | None = None) -> ParsedBuild:
        """Map a single run object (native or flattened) to a ParsedBuild."""
        run_id = self._run_id(run)
        if run_id is None:
            raise MalformedIngestionPayload("GitHub Actions payload is missing the run id")

        status = (run.get("status") or "").lower()
        conclusion = run.get("conclusion")
        if not conclusion and status == "completed":
            conclusion = "unknown"

        finished = status == "completed" or bool(conclusion)
        completed_at = None
        if finished:
            completed_at = parse_timestamp(run.get("completed_at") or run.get("updated_at"))

        repository = run.get("repository")
        repo = None
        if isinstance(repository, dict):
            repo = repository.get("full_name")
        elif isinstance(repository, str):
            repo = repository
        repo = repo or run.get("repo") or default_repo

        return ParsedBuild(
            tool=self.tool,
            external_id=str(run_id),
            status=status or ("completed" if conclusion else "unknown"),
            conclusion=conclusion,
            repo=repo,
            branch=run.get("head_branch") or run.get("branch"),
            started_at=parse_timestamp(
                run.get("run_started_at") or run.get("started_at") or run.get("created_at")
            ),
            completed_at=completed_at,
            url=run.get("html_url") or run.get("url"),
            logs=run.get("logs"),
            raw_payload=run,
        )

    def _unwrap(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Return the run object from an event envelope or a bare run."""
        envelope = payload.get("workflow_run")
        if isinstance(envelope, dict):
            run = dict(envelope)
            repository = payload.get("repository")
            if "repository" not in run and isinstance(repository, dict):
                run["repository"] = repository
            return run
        return payload

    @staticmethod
    def _run_id(run: dict[str, Any]) -> Any:
        for key in ("id", "run_id"):
            value = run.get(key)
            if value not in (None, ""):
                return value
        return None
