"""Interfaces of the two external collaborators.

The harness never drives a browser or compares images itself. It talks to
a browser session (a Playwright ``Page`` satisfies BrowserSession) and to a
visual testing service through the protocols below.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol

if TYPE_CHECKING:
    from ..config.schema import RunConfiguration, RunMode


class Outcome(str, Enum):
    """Result of one checkpoint on one target. Never raised."""
    PASSED = "passed"
    DIFF = "diff"
    NEW = "new"
    MISSING = "missing"
    ERROR = "error"

    @property
    def is_passing(self) -> bool:
        return self in (Outcome.PASSED, Outcome.NEW)


@dataclass
class StepOutcome:
    """Outcome the service reported for one checkpoint."""
    label: str
    outcome: Outcome


@dataclass
class TestOutcome:
    """Everything the service reported for one test on one target."""
    app_name: str
    test_name: str
    target: str
    status: Outcome
    steps: list[StepOutcome] = field(default_factory=list)
    error: Optional[str] = None
    url: Optional[str] = None

    # Not a pytest test class
    __test__ = False


class Locator(Protocol):
    def text_content(self) -> Optional[str]: ...


class BrowserSession(Protocol):
    """What the harness needs from a browser page."""

    def goto(self, url: str) -> Any: ...

    def fill(self, selector: str, value: str) -> None: ...

    def click(self, selector: str) -> None: ...

    def locator(self, selector: str) -> Locator: ...


class ServiceSession(Protocol):
    """One test's connection to the visual testing service."""

    def open(self, browser: BrowserSession, app_name: str, test_name: str) -> None: ...

    def check(self, label: str, full_page: bool) -> None: ...

    def close(self, wait: bool) -> list[TestOutcome]:
        """Close the test. Returns outcomes when wait is True, else []."""
        ...

    def abort(self) -> None: ...


class ServiceRunner(Protocol):
    """Runner that owns every service session of a suite."""

    def new_session(self, configuration: "RunConfiguration") -> ServiceSession: ...

    def get_all_results(self, wait: bool) -> list[TestOutcome]: ...


class VisualCheckService(Protocol):
    """Factory for service runners."""

    def create_runner(self, mode: "RunMode", concurrency: int) -> ServiceRunner: ...
