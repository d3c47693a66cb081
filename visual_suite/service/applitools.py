"""Applitools Eyes adapter for the visual check service protocols.

Wraps ``applitools.playwright`` (the ``eyes-playwright`` distribution):
the Ultrafast Grid runner for parallel mode, the classic runner for local
mode. Mismatches are returned as Outcome values; the SDK is always asked
not to raise on a diff.
"""

import importlib
import logging
from types import ModuleType
from typing import Any, Iterable, Optional

from ..config.schema import (
    DeviceEmulation,
    LOCAL_TARGET,
    RunConfiguration,
    RunMode,
    ViewportBrowser,
)
from .base import BrowserSession, Outcome, StepOutcome, TestOutcome

logger = logging.getLogger(__name__)

SDK_MODULE = "applitools.playwright"

_STATUS_OUTCOMES = {
    "passed": Outcome.PASSED,
    "unresolved": Outcome.DIFF,
    "failed": Outcome.DIFF,
}


def load_sdk() -> ModuleType:
    """Import the Eyes Playwright SDK."""
    return importlib.import_module(SDK_MODULE)


class ApplitoolsService:
    """Creates Eyes runners for a suite."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        server_url: Optional[str] = None,
        sdk: Optional[ModuleType] = None,
    ):
        """Initialize the service.

        Args:
            api_key: Eyes API key. The SDK reads APPLITOOLS_API_KEY when None.
            server_url: Eyes server for dedicated clouds.
            sdk: Module exposing the Eyes SDK names. Imported lazily when None.
        """
        self.api_key = api_key
        self.server_url = server_url
        self._sdk = sdk

    @classmethod
    def from_settings(cls, settings) -> "ApplitoolsService":
        return cls(api_key=settings.api_key, server_url=settings.server_url)

    @property
    def sdk(self) -> ModuleType:
        if self._sdk is None:
            self._sdk = load_sdk()
        return self._sdk

    def create_runner(self, mode: RunMode, concurrency: int) -> "ApplitoolsRunner":
        sdk = self.sdk
        if RunMode(mode) is RunMode.PARALLEL:
            logger.info("Creating Ultrafast Grid runner (concurrency %d)", concurrency)
            runner = sdk.VisualGridRunner(sdk.RunnerOptions().test_concurrency(concurrency))
        else:
            logger.info("Creating classic runner")
            runner = sdk.ClassicRunner()
        return ApplitoolsRunner(self, runner, RunMode(mode))

    def build_configuration(self, configuration: RunConfiguration) -> Any:
        """Translate a RunConfiguration into an Eyes Configuration."""
        sdk = self.sdk
        batch = sdk.BatchInfo(configuration.batch.name)
        batch.id = configuration.batch.id
        batch.notify_on_completion = configuration.batch.notify_on_completion

        eyes_config = sdk.Configuration()
        eyes_config.set_batch(batch)
        if self.api_key:
            eyes_config.set_api_key(self.api_key)
        if self.server_url:
            eyes_config.set_server_url(self.server_url)

        for target in configuration.effective_targets:
            if isinstance(target, ViewportBrowser):
                eyes_config.add_browser(
                    target.width, target.height, sdk.BrowserType(target.browser.value)
                )
            elif isinstance(target, DeviceEmulation):
                eyes_config.add_device_emulation(
                    sdk.DeviceName(target.device_name),
                    sdk.ScreenOrientation(target.orientation.value),
                )

        return eyes_config


class ApplitoolsRunner:
    """One Eyes runner shared by every session of a suite."""

    def __init__(self, service: ApplitoolsService, runner: Any, mode: RunMode):
        self.service = service
        self.runner = runner
        self.mode = mode

    def new_session(self, configuration: RunConfiguration) -> "ApplitoolsSession":
        eyes = self.service.sdk.Eyes(self.runner)
        eyes.set_configuration(self.service.build_configuration(configuration))
        return ApplitoolsSession(
            self.service.sdk, eyes, self.mode, configuration.target_labels
        )

    def get_all_results(self, wait: bool) -> list[TestOutcome]:
        # The SDK call always blocks until rendering ends; False means
        # "do not raise on diffs"
        summary = self.runner.get_all_test_results(False)
        return [
            outcome
            for container in _iter_containers(summary)
            for outcome in [container_to_outcome(container, self.mode)]
            if outcome is not None
        ]


class ApplitoolsSession:
    """Wraps one Eyes instance for one test."""

    def __init__(
        self,
        sdk: ModuleType,
        eyes: Any,
        mode: RunMode,
        targets: Optional[list[str]] = None,
    ):
        self.sdk = sdk
        self.eyes = eyes
        self.mode = mode
        self.targets = list(targets or [LOCAL_TARGET])

    def open(self, browser: BrowserSession, app_name: str, test_name: str) -> None:
        self.eyes.open(browser, app_name, test_name)

    def check(self, label: str, full_page: bool) -> None:
        self.eyes.check(label, self.sdk.Target.window().fully(full_page))

    def close(self, wait: bool) -> list[TestOutcome]:
        if not wait:
            self.eyes.close_async()
            return []
        results = self.eyes.close(False)
        if results is None:
            return []
        if self.mode is RunMode.LOCAL:
            return [results_to_outcome(results, LOCAL_TARGET)]

        containers = getattr(results, "all_results", None)
        if containers is not None:
            return [
                outcome
                for outcome in (container_to_outcome(c, self.mode) for c in containers)
                if outcome is not None
            ]
        # Aggregate over every target of the test; the runner's per-target
        # results replace these at collection time
        return [results_to_outcome(results, target) for target in self.targets]

    def abort(self) -> None:
        self.eyes.abort()


def _iter_containers(summary: Any) -> Iterable[Any]:
    if summary is None:
        return []
    all_results = getattr(summary, "all_results", None)
    if all_results is not None:
        return all_results
    return summary


def container_to_outcome(container: Any, mode: RunMode) -> Optional[TestOutcome]:
    """Map one SDK result container (results or exception, per target)."""
    target = LOCAL_TARGET if mode is RunMode.LOCAL else target_label(
        getattr(container, "browser_info", None)
    )
    exception = getattr(container, "exception", None)
    # Eyes errors such as DiffsFoundError carry the test's results
    results = getattr(container, "test_results", None) or getattr(exception, "test_results", None)

    if results is None and exception is None:
        return None

    if results is None:
        # Unnamed; the collector gives it to the session missing this target
        return TestOutcome(
            app_name="",
            test_name="",
            target=target,
            status=Outcome.ERROR,
            error=str(exception),
        )

    outcome = results_to_outcome(results, target)
    if exception is not None:
        outcome.status = Outcome.ERROR
        outcome.error = str(exception)
    return outcome


def results_to_outcome(results: Any, target: str) -> TestOutcome:
    """Map SDK TestResults to a TestOutcome."""
    status = _status_outcome(results)
    steps = [
        StepOutcome(label=str(getattr(step, "name", "") or ""), outcome=_step_outcome(step, status))
        for step in (getattr(results, "steps_info", None) or [])
    ]
    return TestOutcome(
        app_name=str(getattr(results, "app_name", "") or ""),
        test_name=str(getattr(results, "name", "") or ""),
        target=target,
        status=status,
        steps=steps,
        url=getattr(results, "url", None),
    )


def target_label(browser_info: Any) -> str:
    """Label an SDK browser info the way BrowserTarget.label does."""
    if browser_info is None:
        return "unknown"

    device_name = getattr(browser_info, "device_name", None)
    if device_name is not None:
        orientation = getattr(browser_info, "screen_orientation", None) or "portrait"
        return f"{_enum_value(device_name)} {_enum_value(orientation)}"

    width = getattr(browser_info, "width", None)
    height = getattr(browser_info, "height", None)
    browser = getattr(browser_info, "browser_type", None) or getattr(browser_info, "browser", None)
    if browser is not None and width and height:
        return f"{_enum_value(browser)} {width}x{height}"
    return str(browser_info)


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value))


def _status_outcome(results: Any) -> Outcome:
    if getattr(results, "is_new", False):
        return Outcome.NEW
    status = _enum_value(getattr(results, "status", "")).lower()
    return _STATUS_OUTCOMES.get(status, Outcome.MISSING)


def _step_outcome(step: Any, test_status: Outcome) -> Outcome:
    if getattr(step, "has_baseline_image", True) is False:
        return Outcome.NEW
    is_different = getattr(step, "is_different", None)
    if is_different is None:
        return test_status
    return Outcome.DIFF if is_different else Outcome.PASSED
