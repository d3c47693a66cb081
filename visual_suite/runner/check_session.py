"""Check session state machine.

One CheckSession per test: UNOPENED -> OPEN -> CLOSED, exactly once.
Sessions are single-use; a test that needs another display name gets a new
session after closing the current one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..errors import InfrastructureError, UsageError
from ..service.base import BrowserSession, ServiceSession, TestOutcome

if TYPE_CHECKING:
    from ..config.schema import RunConfiguration
    from .runner_handle import RunnerHandle

logger = logging.getLogger(__name__)


class CheckSessionState(str, Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class CheckpointRecord:
    """A checkpoint submitted while the session was open."""
    label: str
    full_page: bool = True


class CheckSession:
    """One test's sequence of visual checkpoints."""

    def __init__(
        self,
        service_session: ServiceSession,
        configuration: "RunConfiguration",
        runner: Optional["RunnerHandle"] = None,
    ):
        self._service = service_session
        self._runner = runner
        self.configuration = configuration
        self.state = CheckSessionState.UNOPENED
        self.app_name: Optional[str] = None
        self.test_name: Optional[str] = None
        self.records: list[CheckpointRecord] = []
        self.outcomes: list[TestOutcome] = []
        self.error: Optional[str] = None
        self.aborted = False

    def __repr__(self) -> str:
        return f"<CheckSession {self.test_name!r} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return self.state is CheckSessionState.OPEN

    @property
    def is_closed(self) -> bool:
        return self.state is CheckSessionState.CLOSED

    @property
    def closed_cleanly(self) -> bool:
        """Closed through close() with no service failure."""
        return self.is_closed and not self.aborted and self.error is None

    @property
    def last_label(self) -> Optional[str]:
        return self.records[-1].label if self.records else None

    @property
    def labels(self) -> list[str]:
        return [r.label for r in self.records]

    def open(self, browser: BrowserSession, app_name: str, test_name: str) -> "CheckSession":
        """Open the session against a live browser page.

        Raises:
            UsageError: If the session was already opened, or browser is not live.
            InfrastructureError: If the service cannot start the test.
        """
        if self.state is CheckSessionState.OPEN:
            raise UsageError(f"Check session {self.test_name!r} is already open")
        if self.state is CheckSessionState.CLOSED:
            raise UsageError(
                f"Check session {self.test_name!r} is closed; "
                "create a new session to check under another name"
            )
        if browser is None or _browser_closed(browser):
            raise UsageError(f"Check session {test_name!r} needs a live browser session")

        self.app_name = app_name
        self.test_name = test_name
        self.configuration.seal()

        try:
            self._service.open(browser, app_name, test_name)
        except Exception as e:
            self.error = f"open failed: {type(e).__name__}: {e}"
            self._release()
            raise InfrastructureError(
                f"Could not open visual session: {e}", test_name=test_name
            ) from e

        self.state = CheckSessionState.OPEN
        logger.info("Opened check session %r (app %r)", test_name, app_name)
        if self._runner is not None:
            self._runner.session_opened(self)
        return self

    def checkpoint(self, label: str, full_page: bool = True) -> CheckpointRecord:
        """Capture and compare the current page state.

        The comparison result arrives later, on close or at collection time.

        Raises:
            UsageError: If the session is not open.
            InfrastructureError: If the service rejects the checkpoint.
        """
        if self.state is not CheckSessionState.OPEN:
            raise UsageError(
                f"Checkpoint {label!r} submitted to a {self.state.value} session "
                f"({self.test_name!r})"
            )

        logger.debug("Checkpoint %r on %r (full_page=%s)", label, self.test_name, full_page)
        try:
            self._service.check(label, full_page)
        except Exception as e:
            self.error = f"checkpoint {label!r} failed: {type(e).__name__}: {e}"
            raise InfrastructureError(
                f"Checkpoint failed: {e}", test_name=self.test_name, label=label
            ) from e

        record = CheckpointRecord(label=label, full_page=full_page)
        self.records.append(record)
        return record

    def close(self, synchronous: bool = True) -> list[TestOutcome]:
        """Close the session.

        Args:
            synchronous: Wait for this test's results. When False, results
                are left for the runner's collect_all_results().

        Returns:
            Outcomes reported on close (empty for asynchronous close).

        Raises:
            UsageError: If the session was never opened or is already closed.
            InfrastructureError: If the service fails to close the test. The
                session is CLOSED either way.
        """
        if self.state is CheckSessionState.UNOPENED:
            raise UsageError("close() called on a check session that was never opened")
        if self.state is CheckSessionState.CLOSED:
            raise UsageError(f"Check session {self.test_name!r} closed twice")

        self.state = CheckSessionState.CLOSED
        try:
            outcomes = self._service.close(synchronous)
        except Exception as e:
            self.error = f"close failed: {type(e).__name__}: {e}"
            raise InfrastructureError(
                f"Could not close visual session: {e}", test_name=self.test_name
            ) from e
        finally:
            logger.info(
                "Closed check session %r (%d checkpoints, %s)",
                self.test_name, len(self.records), "sync" if synchronous else "async",
            )
            if self._runner is not None:
                self._runner.session_closed(self)

        self.outcomes.extend(outcomes or [])
        return self.outcomes

    def abort(self) -> None:
        """Release an open session without waiting for results."""
        if self.state is not CheckSessionState.OPEN:
            return
        self._release()
        if self._runner is not None:
            self._runner.session_closed(self)

    def _release(self) -> None:
        self.state = CheckSessionState.CLOSED
        self.aborted = True
        try:
            self._service.abort()
        except Exception:
            logger.warning("Abort of check session %r failed", self.test_name, exc_info=True)


def _browser_closed(browser: BrowserSession) -> bool:
    is_closed = getattr(browser, "is_closed", None)
    if callable(is_closed):
        return bool(is_closed())
    return False
