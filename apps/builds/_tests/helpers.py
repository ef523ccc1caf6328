"""Shared fakes for builds tests."""

from typing import Any

from apps.builds.config import AlertingConfig, GitHubActionsConfig, IngestionConfig, JenkinsConfig


class FakeTransport:
    """Stands in for HttpTransport: maps URL substrings to responses.

    A response that is an exception instance is raised instead of returned.
    """

    def __init__(self, responses: dict[str, Any]):
        self.responses = responses
        self.calls: list[tuple[str, dict[str, str]]] = []

    def get_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        self.calls.append((url, headers or {}))
        for fragment, response in self.responses.items():
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"Unexpected URL: {url}")


def make_config(repos=("org/repo",), jenkins=False, **alerting) -> IngestionConfig:
    return IngestionConfig(
        github=GitHubActionsConfig(token="ghp_test", repos=tuple(repos)),
        jenkins=(
            JenkinsConfig(url="https://ci.example.com", user="bot", token="secret")
            if jenkins
            else JenkinsConfig()
        ),
        alerting=AlertingConfig(recipients=("team@example.com",), **alerting),
    )


def github_run(run_id=555, conclusion="success", **overrides) -> dict[str, Any]:
    run = {
        "id": run_id,
        "status": "completed",
        "conclusion": conclusion,
        "head_branch": "main",
        "run_started_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:02:05Z",
        "html_url": f"https://github.com/org/repo/actions/runs/{run_id}",
        "repository": {"full_name": "org/repo"},
    }
    run.update(overrides)
    return run
