"""Error taxonomy for build ingestion.

- TransientProviderError: provider fetch failed; contained in the adapter,
  the affected unit of work (one repo, or one job-list fetch) is skipped.
- MalformedIngestionPayload: webhook payload lacks the provider identifier;
  rejected at the boundary before any write.
- PersistenceError: the store is unreachable or the upsert failed; the only
  error allowed to surface as a failed ingestion.
- NotificationError: alert delivery failed; caught and logged by the
  dispatcher.
"""


class BuildIngestionError(Exception):
    """Base class for build ingestion errors."""


class TransientProviderError(BuildIngestionError):
    """Network failure or non-success response from a CI provider."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class MalformedIngestionPayload(BuildIngestionError):
    """Webhook payload is missing the provider-native run/build identifier."""


class PersistenceError(BuildIngestionError):
    """The build store could not apply an upsert."""


class NotificationError(BuildIngestionError):
    """A notification could not be delivered."""
