"""Readiness probe for the application under test.

Checks that the app's base URL answers before a suite opens any visual
check session, so an app that is down fails fast with one clear error
instead of once per test.
"""

import logging
import time
from typing import Optional

import requests

from ..errors import InfrastructureError
from .retry_policy import RetryPolicy, default_retry_policy

logger = logging.getLogger(__name__)


class AppProbe:
    """HTTP readiness check against the app's base URL."""

    def __init__(
        self,
        base_url: str,
        retry_policy: Optional[RetryPolicy] = None,
        request_timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the probe.

        Args:
            base_url: Base URL of the app (e.g., http://localhost:3000).
            retry_policy: Retry policy while the app is unreachable.
            request_timeout: Timeout per request in seconds.
            session: requests session to use. A new one is created if None.
        """
        self.base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy or default_retry_policy()
        self.request_timeout = request_timeout
        self._session = session or requests.Session()

    def is_reachable(self) -> bool:
        """Check once whether the app answers without a server error.

        Returns:
            True if the app responds with a status below 500.
        """
        try:
            response = self._session.get(self.base_url, timeout=self.request_timeout)
            return response.status_code < 500
        except (requests.ConnectionError, requests.Timeout):
            return False

    def wait_until_ready(self) -> None:
        """Poll the app until it answers, following the retry policy.

        Raises:
            InfrastructureError: If the app never answers.
        """
        last_error: Optional[str] = None
        delays = self.retry_policy.delays()

        for attempt in range(self.retry_policy.total_attempts):
            try:
                response = self._session.get(self.base_url, timeout=self.request_timeout)
                if response.status_code < 500:
                    logger.info("App ready at %s (HTTP %d)", self.base_url, response.status_code)
                    return
                last_error = f"HTTP {response.status_code}"

            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = f"{type(e).__name__}: {e}"

            delay = next(delays, None)
            if delay is None:
                break
            logger.debug(
                "App at %s not ready (%s), retry %d in %.1fs",
                self.base_url, last_error, attempt + 1, delay,
            )
            time.sleep(delay)

        raise InfrastructureError(
            f"App at {self.base_url} is not reachable after "
            f"{self.retry_policy.total_attempts} attempts: {last_error}"
        )

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
