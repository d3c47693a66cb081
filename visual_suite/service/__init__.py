"""Service module - browser and visual testing collaborators."""

from .base import (
    BrowserSession,
    Outcome,
    ServiceRunner,
    ServiceSession,
    StepOutcome,
    TestOutcome,
    VisualCheckService,
)
from .app_probe import AppProbe
from .applitools import ApplitoolsService
from .retry_policy import (
    RetryPolicy,
    default_retry_policy,
    no_retry_policy,
    startup_retry_policy,
)

__all__ = [
    "BrowserSession",
    "Outcome",
    "ServiceRunner",
    "ServiceSession",
    "StepOutcome",
    "TestOutcome",
    "VisualCheckService",
    "AppProbe",
    "ApplitoolsService",
    "RetryPolicy",
    "default_retry_policy",
    "no_retry_policy",
    "startup_retry_policy",
]
