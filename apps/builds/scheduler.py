"""
Poll scheduling for the CI providers.

Each provider polls under its own single-flight token: if the previous cycle
for a provider is still running when the next one is due, the new cycle is
skipped rather than queued. Providers poll concurrently and a failure in one
never affects the other.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from django.core.cache import cache as default_cache
from django.db import close_old_connections

from apps.builds.config import IngestionConfig
from apps.builds.providers import BaseBuildProvider, get_enabled_providers
from apps.builds.services import BuildIngestionService

logger = logging.getLogger(__name__)


class SingleFlightGuard:
    """
    Per-key lock on Django's cache.

    ``cache.add`` only stores the key when it is absent, which makes
    acquisition atomic on every shared cache backend. The TTL bounds how long
    a crashed holder can block polling.
    """

    KEY_PREFIX = "builds:poll:inflight:"

    def __init__(self, ttl_s: int = 600, cache: Any = None):
        self.ttl_s = ttl_s
        self.cache = cache or default_cache

    def _key(self, name: str) -> str:
        return f"{self.KEY_PREFIX}{name}"

    def acquire(self, name: str) -> str | None:
        """Return a token if the lock was taken, None if already held."""
        token = uuid.uuid4().hex
        if self.cache.add(self._key(name), token, timeout=self.ttl_s):
            return token
        return None

    def release(self, name: str, token: str) -> None:
        """Release the lock if it is still held by ``token``.

        The read and the delete are two cache calls, not one atomic step. If
        the TTL lapses between them and another worker takes the lock, that
        worker's lock is removed. Keep the TTL well above the longest poll so
        a holder never outlives it.
        """
        key = self._key(name)
        if self.cache.get(key) == token:
            self.cache.delete(key)

    def is_held(self, name: str) -> bool:
        return self.cache.get(self._key(name)) is not None


@dataclass
class PollOutcome:
    """Result of polling one provider."""

    provider: str
    skipped: bool = False
    fetched: int = 0
    ingested: int = 0
    alerts_sent: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PollScheduler:
    """
    Runs provider polling cycles.

    Usage:
        scheduler = PollScheduler(IngestionConfig.from_settings())
        outcomes = scheduler.run_cycle()
    """

    def __init__(
        self,
        config: IngestionConfig | None = None,
        ingestion: BuildIngestionService | None = None,
        guard: SingleFlightGuard | None = None,
        providers: dict[str, BaseBuildProvider] | None = None,
    ):
        self.config = config or IngestionConfig()
        self.ingestion = ingestion or BuildIngestionService(self.config)
        self.guard = guard or SingleFlightGuard(ttl_s=self.config.poll_lock_ttl_s)
        self.providers = providers if providers is not None else get_enabled_providers(self.config)

    def poll_provider(self, name: str) -> PollOutcome:
        """Poll one provider under its single-flight token."""
        outcome = PollOutcome(provider=name)

        provider = self.providers.get(name)
        if provider is None:
            outcome.skipped = True
            outcome.errors.append(f"Provider not enabled: {name}")
            return outcome

        token = self.guard.acquire(name)
        if token is None:
            logger.info(f"Previous {name} poll still running; skipping this cycle")
            outcome.skipped = True
            return outcome

        try:
            fetched = provider.fetch_builds()
            outcome.fetched = len(fetched.builds)
            outcome.errors.extend(fetched.errors)

            result = self.ingestion.ingest_many(fetched.builds)
            outcome.ingested = result.ingested
            outcome.alerts_sent = result.alerts_sent
            outcome.errors.extend(result.errors)
        finally:
            self.guard.release(name, token)

        logger.info(
            f"Polled {name}: {outcome.fetched} fetched, {outcome.ingested} ingested, "
            f"{outcome.alerts_sent} alerts, {len(outcome.errors)} errors"
        )
        return outcome

    def _poll_in_thread(self, name: str) -> PollOutcome:
        close_old_connections()
        try:
            return self.poll_provider(name)
        finally:
            close_old_connections()

    def run_cycle(self, concurrent_providers: bool = True) -> dict[str, PollOutcome]:
        """Poll every enabled provider once."""
        names = list(self.providers)
        if not names:
            logger.debug("No providers configured; nothing to poll")
            return {}

        if not concurrent_providers or len(names) == 1:
            return {name: self._safe_poll(name) for name in names}

        outcomes: dict[str, PollOutcome] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(names)) as ex:
            futures = {ex.submit(self._poll_in_thread, name): name for name in names}
            for future in concurrent.futures.as_completed(futures):
                name = futures[future]
                outcomes[name] = self._safe_result(name, future)
        return outcomes

    def _safe_poll(self, name: str) -> PollOutcome:
        try:
            return self.poll_provider(name)
        except Exception as e:
            logger.exception(f"Polling {name} failed")
            return PollOutcome(provider=name, errors=[str(e)])

    def _safe_result(self, name: str, future: concurrent.futures.Future) -> PollOutcome:
        try:
            return future.result()
        except Exception as e:
            logger.exception(f"Polling {name} failed")
            return PollOutcome(provider=name, errors=[str(e)])

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Wait the initial delay, then run a cycle every poll interval until stopped."""
        stop_event = stop_event or threading.Event()

        logger.info(
            f"Poller starting in {self.config.poll_initial_delay_s}s "
            f"(interval {self.config.poll_interval_s}s, providers: {', '.join(self.providers) or 'none'})"
        )
        if stop_event.wait(self.config.poll_initial_delay_s):
            return

        while not stop_event.is_set():
            self.run_cycle()
            if stop_event.wait(self.config.poll_interval_s):
                break
