"""Result summary returned by a runner at the end of a suite.

Visual mismatches are values here (Outcome.DIFF), not exceptions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config.schema import UnclosedPolicy
from ..service.base import Outcome, TestOutcome
from .check_session import CheckSessionState

# Worst outcome first
_OUTCOME_SEVERITY = [
    Outcome.ERROR,
    Outcome.DIFF,
    Outcome.MISSING,
    Outcome.NEW,
    Outcome.PASSED,
]


def worst_outcome(outcomes: list[Outcome]) -> Outcome:
    """Aggregate several outcomes; no outcomes means MISSING."""
    if not outcomes:
        return Outcome.MISSING
    return min(outcomes, key=_OUTCOME_SEVERITY.index)


class SessionStatus(str, Enum):
    """Verdict for one test. UNKNOWN when the service never reported on it."""
    PASSED = "passed"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class TargetResult:
    """Outcome of one checkpoint on one browser target."""
    target: str
    outcome: Outcome
    error: Optional[str] = None
    url: Optional[str] = None


@dataclass
class CheckpointResult:
    """One checkpoint with its per-target outcomes."""
    label: str
    full_page: bool
    targets: list[TargetResult] = field(default_factory=list)

    @property
    def outcome(self) -> Outcome:
        return worst_outcome([t.outcome for t in self.targets])

    @property
    def passed(self) -> bool:
        return self.outcome.is_passing


@dataclass
class SessionResult:
    """All checkpoints of one test, in submission order."""
    app_name: str
    test_name: str
    state: CheckSessionState
    checkpoints: list[CheckpointResult] = field(default_factory=list)
    error: Optional[str] = None
    closed_cleanly: bool = True
    results_known: bool = True

    @property
    def labels(self) -> list[str]:
        return [c.label for c in self.checkpoints]

    @property
    def outcome(self) -> Outcome:
        if self.error is not None:
            return Outcome.ERROR
        return worst_outcome([c.outcome for c in self.checkpoints]) if self.checkpoints else Outcome.PASSED

    @property
    def status(self) -> SessionStatus:
        if self.state is not CheckSessionState.CLOSED:
            return SessionStatus.UNKNOWN
        if not self.closed_cleanly or self.error is not None:
            return SessionStatus.FAILED
        if not self.results_known and self.checkpoints:
            return SessionStatus.UNKNOWN
        return SessionStatus.PASSED if self.outcome.is_passing else SessionStatus.FAILED

    @property
    def passed(self) -> bool:
        return self.status is SessionStatus.PASSED


@dataclass
class ResultSummary:
    """Results of every check session of a run.

    ``complete`` is False when collection happened while sessions were
    still open, or when the service failed during collection (``error``).
    Sessions that were not cleanly closed count according to
    ``unclosed_policy``: as failures (FAIL) or not at all (EXCLUDE).
    """
    batch_name: str
    batch_id: str
    mode: str
    sessions: list[SessionResult] = field(default_factory=list)
    complete: bool = True
    error: Optional[str] = None
    unclosed_policy: UnclosedPolicy = UnclosedPolicy.FAIL
    unmatched: list[TestOutcome] = field(default_factory=list)

    @property
    def counted_sessions(self) -> list[SessionResult]:
        if self.unclosed_policy is UnclosedPolicy.EXCLUDE:
            return [s for s in self.sessions if s.closed_cleanly]
        return list(self.sessions)

    @property
    def excluded_count(self) -> int:
        return len(self.sessions) - len(self.counted_sessions)

    @property
    def all_passed(self) -> bool:
        return all(s.passed for s in self.counted_sessions)

    @property
    def total_count(self) -> int:
        return len(self.counted_sessions)

    @property
    def passed_count(self) -> int:
        return sum(1 for s in self.counted_sessions if s.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for s in self.counted_sessions if s.status is SessionStatus.FAILED)

    @property
    def unknown_count(self) -> int:
        """Tests whose results never arrived (collection failed or ran early)."""
        return sum(1 for s in self.counted_sessions if s.status is SessionStatus.UNKNOWN)

    @property
    def checkpoint_count(self) -> int:
        return sum(len(s.checkpoints) for s in self.counted_sessions)

    def session(self, test_name: str) -> Optional[SessionResult]:
        """First session recorded under a test name."""
        for s in self.sessions:
            if s.test_name == test_name:
                return s
        return None
