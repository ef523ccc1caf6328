"""
Provider adapters for ingesting builds from CI systems.
"""

from apps.builds.config import IngestionConfig
from apps.builds.providers.base import (
    BaseBuildProvider,
    FetchResult,
    ParsedBuild,
    derive_duration,
    parse_timestamp,
)
from apps.builds.providers.github_actions import GitHubActionsProvider
from apps.builds.providers.jenkins import JenkinsProvider
from apps.builds.transport import HttpTransport

__all__ = [
    "BaseBuildProvider",
    "FetchResult",
    "ParsedBuild",
    "GitHubActionsProvider",
    "JenkinsProvider",
    "PROVIDER_REGISTRY",
    "derive_duration",
    "parse_timestamp",
    "get_provider",
    "get_enabled_providers",
]

# Registry of available providers
PROVIDER_REGISTRY: dict[str, type[BaseBuildProvider]] = {
    "github_actions": GitHubActionsProvider,
    "jenkins": JenkinsProvider,
}


def get_provider(
    name: str,
    config: IngestionConfig | None = None,
    transport: HttpTransport | None = None,
) -> BaseBuildProvider:
    """
    Get a provider instance by name.

    Args:
        name: Provider name (e.g., "github_actions", "jenkins").
        config: Ingestion configuration passed to the provider.
        transport: Optional transport override.

    Returns:
        Provider instance.

    Raises:
        KeyError: If provider name is not found.
    """
    if name not in PROVIDER_REGISTRY:
        raise KeyError(
            f"Unknown provider: {name}. Available: {', '.join(PROVIDER_REGISTRY.keys())}"
        )
    return PROVIDER_REGISTRY[name](config=config, transport=transport)


def get_enabled_providers(config: IngestionConfig) -> dict[str, BaseBuildProvider]:
    """
    Instantiate every provider whose credentials are configured.

    A provider missing its credentials is left out without affecting the others.
    """
    providers = {name: cls(config=config) for name, cls in PROVIDER_REGISTRY.items()}
    return {name: provider for name, provider in providers.items() if provider.is_configured()}
