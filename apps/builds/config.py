"""Immutable runtime configuration for the ingestion pipeline.

Built once at startup (``IngestionConfig.from_settings()``) and passed into
each provider, scheduler and dispatcher constructor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class GitHubActionsConfig:
    token: str = ""
    repos: tuple[str, ...] = ()
    api_url: str = "https://api.github.com"
    per_page: int = 20

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.repos)


@dataclass(frozen=True)
class JenkinsConfig:
    url: str = ""
    user: str = ""
    token: str = ""
    builds_per_job: int = 20

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.user and self.token)


@dataclass(frozen=True)
class TransportConfig:
    timeout_s: float = 10.0
    max_retries: int = 2
    backoff_factor: float = 2.0


@dataclass(frozen=True)
class AlertingConfig:
    channel: str = "email"
    from_address: str = "ci-alerts@localhost"
    recipients: tuple[str, ...] = ()
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    use_tls: bool = True
    use_ssl: bool = False

    def driver_config(self) -> dict[str, Any]:
        """Return the notify driver configuration for this channel."""
        config: dict[str, Any] = {
            "from_address": self.from_address,
            "to_addresses": list(self.recipients),
            "smtp_port": self.smtp_port,
            "use_tls": self.use_tls,
            "use_ssl": self.use_ssl,
        }
        if self.smtp_host:
            config["smtp_host"] = self.smtp_host
        if self.smtp_user:
            config["username"] = self.smtp_user
            config["password"] = self.smtp_password
        return config


@dataclass(frozen=True)
class IngestionConfig:
    github: GitHubActionsConfig = field(default_factory=GitHubActionsConfig)
    jenkins: JenkinsConfig = field(default_factory=JenkinsConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    alerting: AlertingConfig = field(default_factory=AlertingConfig)
    poll_interval_s: int = 60
    poll_initial_delay_s: int = 5
    poll_lock_ttl_s: int = 600

    @classmethod
    def from_settings(cls, settings: Any = None) -> "IngestionConfig":
        """Build the configuration from Django settings."""
        if settings is None:
            from django.conf import settings

        return cls(
            github=GitHubActionsConfig(
                token=settings.GITHUB_TOKEN,
                repos=tuple(settings.GITHUB_REPOS),
                api_url=settings.GITHUB_API_URL.rstrip("/"),
            ),
            jenkins=JenkinsConfig(
                url=settings.JENKINS_URL.rstrip("/"),
                user=settings.JENKINS_USER,
                token=settings.JENKINS_TOKEN,
            ),
            transport=TransportConfig(
                timeout_s=settings.PROVIDER_TIMEOUT_SECONDS,
                max_retries=settings.PROVIDER_MAX_RETRIES,
                backoff_factor=settings.PROVIDER_BACKOFF_FACTOR,
            ),
            alerting=AlertingConfig(
                channel=settings.ALERT_CHANNEL,
                from_address=settings.ALERT_EMAIL_FROM,
                recipients=tuple(settings.ALERT_EMAIL_TO),
                smtp_host=settings.SMTP_HOST,
                smtp_port=settings.SMTP_PORT,
                smtp_user=settings.SMTP_USER,
                smtp_password=settings.SMTP_PASSWORD,
                use_tls=settings.SMTP_USE_TLS,
                use_ssl=settings.SMTP_USE_SSL,
            ),
            poll_interval_s=settings.POLL_INTERVAL_SECONDS,
            poll_initial_delay_s=settings.POLL_INITIAL_DELAY_SECONDS,
            poll_lock_ttl_s=settings.POLL_LOCK_TTL_SECONDS,
        )
