"""Test orchestrator - sequences a visual check suite.

Coordinates the suite lifecycle:
1. Wait for the app under test
2. Build the run configuration (batch, browser matrix)
3. Create the runner for the run mode
4. Per test: open a check session, run the body, close the session
5. Collect all results once at the end
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from ..config.schema import RunConfiguration, SuiteSettings
from ..errors import HarnessError, InfrastructureError, UsageError
from ..service.app_probe import AppProbe
from ..service.base import BrowserSession, VisualCheckService
from .check_session import CheckSession
from .results import ResultSummary
from .runner_handle import RunnerHandle, create_runner_handle

logger = logging.getLogger(__name__)

TestBody = Callable[[BrowserSession, CheckSession], None]


@dataclass
class TestRun:
    """Outcome of running one test body through the orchestrator."""
    test_name: str
    passed: bool = False
    error: Optional[str] = None
    duration_ms: int = 0
    session: Optional[CheckSession] = None

    __test__ = False


class TestOrchestrator:
    """Runs tests against one shared configuration and runner.

    The configuration and runner are built once by start() and passed
    explicitly to every session; nothing is kept at module level.
    """

    __test__ = False

    def __init__(
        self,
        settings: SuiteSettings,
        service: VisualCheckService,
        probe: Optional[AppProbe] = None,
    ):
        """Initialize the orchestrator.

        Args:
            settings: Suite settings read at suite start.
            service: Visual testing service.
            probe: Readiness probe for the app. Built from settings when None
                and settings.probe_app is set.
        """
        self.settings = settings
        self.service = service
        self.probe = probe
        self.configuration: Optional[RunConfiguration] = None
        self.runner: Optional[RunnerHandle] = None
        self.summary: Optional[ResultSummary] = None
        self.runs: list[TestRun] = []

    @property
    def started(self) -> bool:
        return self.runner is not None

    def start(self) -> RunnerHandle:
        """Build the configuration and runner for the suite.

        Raises:
            UsageError: If the suite was already started.
            InfrastructureError: If the app under test is not reachable.
        """
        if self.runner is not None:
            raise UsageError("Suite already started")

        if self.settings.probe_app:
            probe = self.probe or AppProbe(self.settings.base_url)
            probe.wait_until_ready()

        self.configuration = self.settings.build_run_configuration()
        self.runner = create_runner_handle(
            self.configuration,
            self.service,
            self.settings.unclosed_sessions,
        )
        logger.info(
            "Suite started: batch %r (%s), %s mode, targets: %s",
            self.configuration.batch.name,
            self.configuration.batch.id,
            self.configuration.mode.value,
            ", ".join(self.configuration.target_labels),
        )
        return self.runner

    @contextmanager
    def session(
        self,
        browser: BrowserSession,
        test_name: str,
        app_name: Optional[str] = None,
    ) -> Iterator[CheckSession]:
        """Open a check session for one test and close it on every exit path.

        Errors raised by the body are logged with the test name and the
        last checkpoint, the session is closed, then the error propagates.
        """
        runner = self._require_started()
        session = runner.new_session()
        try:
            session.open(browser, app_name or self.settings.app_name, test_name)
        except UsageError:
            runner.discard_session(session)
            raise

        body_error: Optional[BaseException] = None
        try:
            yield session
        except Exception as e:
            body_error = e
            logger.error(
                "Test %r failed (last checkpoint %r): %s: %s",
                test_name, session.last_label, type(e).__name__, e,
            )
            raise
        finally:
            self._close(session, body_error)

    def run_test(
        self,
        test_name: str,
        browser: BrowserSession,
        body: TestBody,
        app_name: Optional[str] = None,
    ) -> TestRun:
        """Run one test body in its own check session.

        Failures are recorded on the returned TestRun instead of raised so
        the next test still runs.
        """
        start_time = time.time()
        run = TestRun(test_name=test_name)
        logger.info("Running test: %r", test_name)

        try:
            with self.session(browser, test_name, app_name) as session:
                run.session = session
                body(browser, session)
            run.passed = True

        except UsageError as e:
            run.error = f"Usage error: {e}"

        except InfrastructureError as e:
            run.error = f"Infrastructure error: {e}"

        except AssertionError as e:
            run.error = f"Assertion failed: {e}"

        except Exception as e:
            run.error = f"Unexpected error: {type(e).__name__}: {e}"

        finally:
            run.duration_ms = int((time.time() - start_time) * 1000)

        if run.error:
            logger.error("Test %r failed: %s", test_name, run.error)
        else:
            logger.info("Test %r done", test_name)

        self.runs.append(run)
        return run

    def finish(self, wait: Optional[bool] = None) -> ResultSummary:
        """Collect all results of the suite. Call exactly once.

        Args:
            wait: Wait for the service to finish. Defaults to settings.

        Raises:
            UsageError: If the suite was not started or already finished.
        """
        runner = self._require_started()
        if self.summary is not None:
            raise UsageError("Suite already finished")

        if wait is None:
            wait = self.settings.wait_for_results

        self.summary = runner.collect_all_results(wait)
        _log_summary(self.summary)
        return self.summary

    @contextmanager
    def suite(self) -> Iterator["TestOrchestrator"]:
        """start() on entry, finish() on exit."""
        self.start()
        try:
            yield self
        finally:
            if self.summary is None:
                self.finish()

    def _require_started(self) -> RunnerHandle:
        if self.runner is None:
            raise UsageError("Suite not started; call start() first")
        return self.runner

    def _close(self, session: CheckSession, body_error: Optional[BaseException]) -> None:
        try:
            session.close(synchronous=self.settings.close_synchronously)
        except HarnessError as e:
            if body_error is None:
                raise
            # The body's error is the one reported
            logger.error("Closing check session %r also failed: %s", session.test_name, e)


def _log_summary(summary: ResultSummary) -> None:
    logger.info(
        "Results for batch %r: %d/%d tests passed, %d checkpoints%s",
        summary.batch_name,
        summary.passed_count,
        summary.total_count,
        summary.checkpoint_count,
        "" if summary.complete else " (incomplete)",
    )
    for session in summary.sessions:
        for checkpoint in session.checkpoints:
            logger.info(
                "  [%s] %s / %s",
                checkpoint.outcome.value.upper(), session.test_name, checkpoint.label,
            )
    if summary.error:
        logger.error("Result collection reported: %s", summary.error)
