"""Run configuration models for visual check suites.

Defines the batch, browser matrix and suite settings shared by every
check session in a run.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

logger = logging.getLogger(__name__)


class RunMode(str, Enum):
    """How checkpoints are rendered and compared."""
    PARALLEL = "parallel"
    LOCAL = "local"

    @property
    def display_name(self) -> str:
        if self is RunMode.PARALLEL:
            return "Ultrafast Grid"
        return "Classic runner"


class BrowserKind(str, Enum):
    """Desktop browsers available for parallel rendering."""
    CHROME = "chrome"
    FIREFOX = "firefox"
    SAFARI = "safari"
    EDGE_CHROMIUM = "edgechromium"


class Orientation(str, Enum):
    """Screen orientation for device emulation."""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class UnclosedPolicy(str, Enum):
    """How sessions that were not cleanly closed count in the summary."""
    FAIL = "fail"
    EXCLUDE = "exclude"


VALID_MODES = {e.value for e in RunMode}
VALID_BROWSERS = {e.value for e in BrowserKind}
VALID_ORIENTATIONS = {e.value for e in Orientation}
VALID_UNCLOSED_POLICIES = {e.value for e in UnclosedPolicy}

DEFAULT_APP_NAME = "ToDo"
DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_CONCURRENCY = 5

# Target label used for every checkpoint in local mode
LOCAL_TARGET = "local"


@dataclass(frozen=True)
class BatchDescriptor:
    """Named group of checkpoints in the service's reporting UI."""
    name: str
    id: str
    notify_on_completion: bool = False


@dataclass(frozen=True)
class ViewportBrowser:
    """A desktop browser rendered at a fixed viewport."""
    width: int
    height: int
    browser: BrowserKind = BrowserKind.CHROME

    @property
    def label(self) -> str:
        return f"{self.browser.value} {self.width}x{self.height}"


@dataclass(frozen=True)
class DeviceEmulation:
    """A mobile device emulated in a given orientation."""
    device_name: str
    orientation: Orientation = Orientation.PORTRAIT

    @property
    def label(self) -> str:
        return f"{self.device_name} {self.orientation.value}"


BrowserTarget = Union[ViewportBrowser, DeviceEmulation]


def default_browser_targets() -> list[BrowserTarget]:
    """Three desktop browsers and two emulated devices."""
    return [
        ViewportBrowser(800, 600, BrowserKind.CHROME),
        ViewportBrowser(1600, 1200, BrowserKind.FIREFOX),
        ViewportBrowser(1024, 768, BrowserKind.SAFARI),
        DeviceEmulation("iPhone 11", Orientation.PORTRAIT),
        DeviceEmulation("Nexus 10", Orientation.LANDSCAPE),
    ]


def default_batch_name(app_name: str, mode: RunMode) -> str:
    return f"{app_name} - {mode.display_name}"


@dataclass
class RunConfiguration:
    """Batch and browser matrix for one suite run.

    Built once per suite and shared read-only by all check sessions.
    Targets should be added before the first session opens; the
    configuration is sealed at that point and later additions are logged.
    """
    batch: BatchDescriptor
    mode: RunMode = RunMode.PARALLEL
    concurrency: int = DEFAULT_CONCURRENCY
    targets: list[BrowserTarget] = field(default_factory=list)
    _sealed: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        self._sealed = True

    def add_browser_target(self, target: BrowserTarget) -> "RunConfiguration":
        if self._sealed:
            logger.warning(
                "Browser target %s added after the first session opened; "
                "sessions already open will not render it",
                target.label,
            )
        if self.mode is RunMode.LOCAL:
            logger.debug("Ignoring browser target %s in local mode", target.label)
        self.targets.append(target)
        return self

    def add_browser(
        self, width: int, height: int, browser: BrowserKind = BrowserKind.CHROME
    ) -> "RunConfiguration":
        return self.add_browser_target(ViewportBrowser(width, height, BrowserKind(browser)))

    def add_device_emulation(
        self, device_name: str, orientation: Orientation = Orientation.PORTRAIT
    ) -> "RunConfiguration":
        return self.add_browser_target(DeviceEmulation(device_name, Orientation(orientation)))

    @property
    def effective_targets(self) -> list[BrowserTarget]:
        """Targets actually rendered (none in local mode)."""
        if self.mode is RunMode.LOCAL:
            return []
        return list(self.targets)

    @property
    def target_labels(self) -> list[str]:
        """Labels every checkpoint is expected to report results for."""
        if self.mode is RunMode.LOCAL:
            return [LOCAL_TARGET]
        return [t.label for t in self.targets]


def build_run_configuration(
    mode: RunMode,
    batch_name: str,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    notify_on_completion: bool = False,
    batch_id: Optional[str] = None,
) -> RunConfiguration:
    """Create the run configuration for a suite.

    Args:
        mode: Parallel (grid) or local (classic) execution.
        batch_name: Batch name shown in the service dashboard.
        concurrency: Checkpoints the service may render at once (parallel only).
        notify_on_completion: Ask the service to notify when the batch ends.
        batch_id: Explicit batch id. Generated when omitted; pass the same id
            from every worker process to report into one batch.

    Returns:
        A new, unsealed RunConfiguration with no targets.
    """
    mode = RunMode(mode)
    batch = BatchDescriptor(
        name=batch_name,
        id=batch_id or uuid.uuid4().hex,
        notify_on_completion=notify_on_completion,
    )
    return RunConfiguration(batch=batch, mode=mode, concurrency=concurrency)


@dataclass
class SuiteSettings:
    """Everything read once at suite start (file, environment, options)."""
    app_name: str = DEFAULT_APP_NAME
    base_url: str = DEFAULT_BASE_URL
    mode: RunMode = RunMode.PARALLEL
    concurrency: int = DEFAULT_CONCURRENCY
    batch_name: Optional[str] = None
    batch_id: Optional[str] = None
    notify_on_completion: bool = False
    targets: list[BrowserTarget] = field(default_factory=list)
    close_synchronously: bool = False
    wait_for_results: bool = True
    unclosed_sessions: UnclosedPolicy = UnclosedPolicy.FAIL
    probe_app: bool = True
    api_key: Optional[str] = field(default=None, repr=False)
    server_url: Optional[str] = None

    def __post_init__(self):
        self.mode = RunMode(self.mode)
        self.unclosed_sessions = UnclosedPolicy(self.unclosed_sessions)

    @property
    def resolved_batch_name(self) -> str:
        if self.batch_name is not None:
            return self.batch_name
        return default_batch_name(self.app_name, self.mode)

    def build_run_configuration(self) -> RunConfiguration:
        """Build the suite's RunConfiguration, with default targets if none set."""
        configuration = build_run_configuration(
            self.mode,
            self.resolved_batch_name,
            concurrency=self.concurrency,
            notify_on_completion=self.notify_on_completion,
            batch_id=self.batch_id,
        )
        if self.mode is RunMode.PARALLEL:
            for target in self.targets or default_browser_targets():
                configuration.add_browser_target(target)
        return configuration


@dataclass
class ValidationError:
    """A single validation error."""
    path: str
    message: str
    severity: str = "error"  # "error" or "warning"


@dataclass
class ValidationResult:
    """Result of settings validation."""
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def __str__(self) -> str:
        if self.valid:
            msg = "Valid"
            if self.warnings:
                msg += f" ({self.warning_count} warnings)"
            return msg
        return f"Invalid: {self.error_count} errors, {self.warning_count} warnings"
