"""Result collector for visual check runs.

Joins the checkpoints each session recorded with the outcomes the service
reported, one result per checkpoint and browser target.
"""

import logging
from typing import Optional

from ..config.schema import RunConfiguration, UnclosedPolicy
from ..service.base import Outcome, TestOutcome
from .check_session import CheckSession, CheckpointRecord
from .results import CheckpointResult, ResultSummary, SessionResult, TargetResult

logger = logging.getLogger(__name__)


class ResultCollector:
    """Builds a ResultSummary from sessions and service outcomes."""

    def __init__(
        self,
        configuration: RunConfiguration,
        unclosed_policy: UnclosedPolicy = UnclosedPolicy.FAIL,
    ):
        self.configuration = configuration
        self.unclosed_policy = unclosed_policy

    def collect(
        self,
        sessions: list[CheckSession],
        outcomes: list[TestOutcome],
        complete: bool = True,
        error: Optional[str] = None,
        fetched: bool = True,
    ) -> ResultSummary:
        """Build the summary.

        Args:
            sessions: Sessions in creation order.
            outcomes: Outcomes reported by the service runner.
            complete: Whether every session was closed before collecting.
            error: Service failure during collection, if any.
            fetched: Whether ``outcomes`` came from the service runner. When
                False, sessions without outcomes of their own are UNKNOWN
                rather than failed.

        Returns:
            ResultSummary with sessions and checkpoints in submission order.
        """
        summary = ResultSummary(
            batch_name=self.configuration.batch.name,
            batch_id=self.configuration.batch.id,
            mode=self.configuration.mode.value,
            complete=complete and error is None,
            error=error,
            unclosed_policy=self.unclosed_policy,
        )

        reported: dict[int, list[TestOutcome]] = {id(s): [] for s in sessions}
        matched: set[int] = set()
        for index, outcome in enumerate(outcomes):
            for session in sessions:
                if _matches(session, outcome):
                    reported[id(session)].append(outcome)
                    matched.add(index)

        # Render failures can arrive without test names; they belong to the
        # one session still missing a result for that target
        for index, outcome in enumerate(outcomes):
            if index in matched or outcome.test_name:
                continue
            owners = [
                s for s in sessions
                if s.test_name and s.records
                and outcome.target not in _targets(s.outcomes + reported[id(s)])
            ]
            if len(owners) == 1:
                reported[id(owners[0])].append(outcome)
                matched.add(index)

        for session in sessions:
            summary.sessions.append(
                self._session_result(session, reported[id(session)], fetched and error is None)
            )

        summary.unmatched = [o for i, o in enumerate(outcomes) if i not in matched]
        for outcome in summary.unmatched:
            logger.warning(
                "Service reported %s for %r on %s with no matching session: %s",
                outcome.status.value, outcome.test_name, outcome.target, outcome.error,
            )

        return summary

    def _session_result(
        self, session: CheckSession, runner_outcomes: list[TestOutcome], fetched: bool
    ) -> SessionResult:
        # Runner outcomes are final; they replace outcomes returned on close
        by_target: dict[str, TestOutcome] = {}
        for outcome in session.outcomes + runner_outcomes:
            by_target[outcome.target] = outcome

        targets = list(self.configuration.target_labels)
        targets.extend(t for t in by_target if t not in targets)

        checkpoints = [
            CheckpointResult(
                label=record.label,
                full_page=record.full_page,
                targets=[
                    _target_result(target, by_target.get(target), index, record)
                    for target in targets
                ],
            )
            for index, record in enumerate(session.records)
        ]

        return SessionResult(
            app_name=session.app_name or "",
            test_name=session.test_name or "",
            state=session.state,
            checkpoints=checkpoints,
            error=session.error,
            closed_cleanly=session.closed_cleanly,
            results_known=fetched or bool(by_target),
        )


def _matches(session: CheckSession, outcome: TestOutcome) -> bool:
    if not outcome.test_name or outcome.test_name != session.test_name:
        return False
    return not outcome.app_name or outcome.app_name == session.app_name


def _target_result(
    target: str,
    outcome: Optional[TestOutcome],
    index: int,
    record: CheckpointRecord,
) -> TargetResult:
    if outcome is None:
        return TargetResult(target=target, outcome=Outcome.MISSING)

    if index < len(outcome.steps):
        step = outcome.steps[index]
        if step.label and step.label != record.label:
            logger.warning(
                "Step %d of %r on %s is %r, expected %r",
                index, outcome.test_name, target, step.label, record.label,
            )
        return TargetResult(target=target, outcome=step.outcome, error=outcome.error, url=outcome.url)

    # No step detail: the test-level status stands for every checkpoint
    if not outcome.steps or outcome.status is Outcome.ERROR:
        return TargetResult(target=target, outcome=outcome.status, error=outcome.error, url=outcome.url)

    return TargetResult(target=target, outcome=Outcome.MISSING, url=outcome.url)


def _targets(outcomes: list[TestOutcome]) -> set[str]:
    return {o.target for o in outcomes}
