"""Runner handle - owns every check session of a suite run.

The handle is the only party that asks the service for batch-level
results. Sessions report their lifecycle to it so it can tell whether a
collection is complete.
"""

import logging
from typing import Optional

from ..config.schema import RunConfiguration, RunMode, UnclosedPolicy
from ..errors import UsageError
from ..service.base import ServiceRunner, TestOutcome, VisualCheckService
from .check_session import CheckSession, CheckSessionState
from .result_collector import ResultCollector
from .results import ResultSummary

logger = logging.getLogger(__name__)


class RunnerHandle:
    """Coordinates check sessions and result collection for one run."""

    def __init__(
        self,
        configuration: RunConfiguration,
        service_runner: ServiceRunner,
        unclosed_policy: UnclosedPolicy = UnclosedPolicy.FAIL,
    ):
        """Initialize the runner handle.

        Args:
            configuration: Run configuration shared by all sessions.
            service_runner: Service runner created for the run mode.
            unclosed_policy: How sessions not cleanly closed count in summaries.
        """
        self.configuration = configuration
        self.unclosed_policy = UnclosedPolicy(unclosed_policy)
        self._service_runner = service_runner
        self.sessions: list[CheckSession] = []
        self.opened_count = 0
        self.closed_count = 0
        self._collected = False

    @property
    def mode(self) -> RunMode:
        return self.configuration.mode

    @property
    def concurrency(self) -> Optional[int]:
        """Concurrency bound, meaningful in parallel mode only."""
        if self.mode is RunMode.PARALLEL:
            return self.configuration.concurrency
        return None

    @property
    def pending_sessions(self) -> list[CheckSession]:
        """Sessions not closed yet."""
        return [s for s in self.sessions if s.state is not CheckSessionState.CLOSED]

    @property
    def collected(self) -> bool:
        return self._collected

    def new_session(self) -> CheckSession:
        """Create an unopened check session bound to this run."""
        if self._collected:
            raise UsageError("Cannot create a check session after results were collected")

        service_session = self._service_runner.new_session(self.configuration)
        session = CheckSession(service_session, self.configuration, runner=self)
        self.sessions.append(session)
        return session

    def discard_session(self, session: CheckSession) -> None:
        """Forget a session that was never opened."""
        if session.state is not CheckSessionState.UNOPENED:
            raise UsageError(f"Cannot discard a {session.state.value} check session")
        self.sessions.remove(session)

    def session_opened(self, session: CheckSession) -> None:
        self.opened_count += 1
        duplicates = [
            s for s in self.sessions
            if s is not session
            and s.state is not CheckSessionState.UNOPENED
            and (s.app_name, s.test_name) == (session.app_name, session.test_name)
        ]
        if duplicates:
            logger.warning(
                "Check session %r (app %r) opened %d times; the service reports "
                "results by name, so their outcomes cannot be told apart",
                session.test_name, session.app_name, len(duplicates) + 1,
            )

    def session_closed(self, session: CheckSession) -> None:
        self.closed_count += 1

    def collect_all_results(self, wait_for_completion: bool = True) -> ResultSummary:
        """Collect results of every session in the run.

        Call once, after every session is closed. Called earlier it returns
        an incomplete summary built from what the sessions already hold,
        without asking the service, and can be called again later. Service
        failures are reported on the summary instead of raised.

        Args:
            wait_for_completion: Block until the service finished rendering.

        Returns:
            ResultSummary for the run.

        Raises:
            UsageError: If a complete collection already happened.
        """
        if self._collected:
            raise UsageError("collect_all_results() called twice for the same run")

        collector = ResultCollector(self.configuration, self.unclosed_policy)

        pending = self.pending_sessions
        if pending:
            # The service runner hands out results once per run
            logger.warning(
                "Collecting results with %d session(s) not closed: %s",
                len(pending), ", ".join(repr(s.test_name) for s in pending),
            )
            return collector.collect(self.sessions, [], complete=False, fetched=False)

        outcomes: list[TestOutcome] = []
        error: Optional[str] = None
        try:
            outcomes = self._service_runner.get_all_results(wait_for_completion)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.error("Result collection failed: %s", error)

        self._collected = True
        return collector.collect(self.sessions, outcomes, error=error)


def create_runner_handle(
    configuration: RunConfiguration,
    service: VisualCheckService,
    unclosed_policy: UnclosedPolicy = UnclosedPolicy.FAIL,
) -> RunnerHandle:
    """Create the runner for the configuration's mode.

    Parallel mode passes the concurrency bound to the service; local mode
    checks synchronously and ignores it.
    """
    service_runner = service.create_runner(configuration.mode, configuration.concurrency)
    return RunnerHandle(configuration, service_runner, unclosed_policy)
