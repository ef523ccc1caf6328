"""HTTP transport used by the polling providers.

Every provider call goes through ``HttpTransport.get_json`` which enforces a
per-call timeout and a small bounded retry with exponential backoff. The
``opener`` and ``sleep`` callables are injectable so tests can run without
network access or real delays.
"""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Callable

from apps.builds.config import TransportConfig
from apps.builds.exceptions import TransientProviderError

logger = logging.getLogger(__name__)

USER_AGENT = "CIBuildHealth/1.0"

# Client errors worth another attempt.
RETRYABLE_STATUS_CODES = {408, 429}


class HttpTransport:
    """JSON-over-HTTP GET with deadline and bounded retry."""

    def __init__(
        self,
        provider: str,
        config: TransportConfig | None = None,
        opener: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.provider = provider
        self.config = config or TransportConfig()
        self._opener = opener or urllib.request.urlopen
        self._sleep = sleep or time.sleep

    def get_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """GET ``url`` and decode the JSON body.

        Raises:
            TransientProviderError: When every attempt failed, on a
                non-retryable HTTP status, or when the body is not JSON.
        """
        request_headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        request_headers.update(headers or {})

        attempts = max(0, self.config.max_retries) + 1
        last_error: TransientProviderError | None = None

        for attempt in range(1, attempts + 1):
            request = urllib.request.Request(url, headers=request_headers, method="GET")
            try:
                with self._opener(request, timeout=self.config.timeout_s) as response:
                    body = response.read().decode("utf-8")
                break
            except urllib.error.HTTPError as e:
                last_error = TransientProviderError(
                    self.provider, f"HTTP {e.code} from {url}", status_code=e.code
                )
                if e.code < 500 and e.code not in RETRYABLE_STATUS_CODES:
                    raise last_error from e
            except urllib.error.URLError as e:
                last_error = TransientProviderError(
                    self.provider, f"connection to {url} failed: {e.reason}"
                )
            except (TimeoutError, OSError) as e:
                last_error = TransientProviderError(
                    self.provider, f"request to {url} failed: {e}"
                )
            except (http.client.HTTPException, UnicodeDecodeError) as e:
                # Truncated or undecodable body.
                last_error = TransientProviderError(
                    self.provider, f"unreadable response from {url}: {e!r}"
                )

            if attempt < attempts:
                backoff_time = self.config.backoff_factor ** (attempt - 1)
                logger.warning(
                    "%s (attempt %d/%d), retrying in %.1fs",
                    last_error,
                    attempt,
                    attempts,
                    backoff_time,
                )
                self._sleep(backoff_time)
        else:
            raise last_error or TransientProviderError(self.provider, f"no response from {url}")

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise TransientProviderError(self.provider, f"invalid JSON from {url}: {e}") from e
