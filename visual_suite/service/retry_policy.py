"""Backoff schedules for waiting on the application under test."""

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff between readiness attempts.

    ``max_retries`` counts the attempts after the first one, so a policy
    with no retries still tries once.
    """
    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def get_delay(self, retry: int) -> float:
        """Seconds to sleep before the given retry (0 is the first retry)."""
        return min(self.initial_delay * self.backoff_factor ** retry, self.max_delay)

    def delays(self) -> Iterator[float]:
        return (self.get_delay(retry) for retry in range(self.max_retries))


def default_retry_policy() -> RetryPolicy:
    """An app that should already be up: 4 attempts over about 7s."""
    return RetryPolicy()


def startup_retry_policy() -> RetryPolicy:
    """A dev server that may still be booting: 11 attempts, at most 5s apart."""
    return RetryPolicy(max_retries=10, initial_delay=0.5, backoff_factor=1.5, max_delay=5.0)


def no_retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=0)
