"""Tests for RunnerHandle and result collection."""

import logging

import pytest

from visual_suite.config.schema import LOCAL_TARGET, RunMode, UnclosedPolicy
from visual_suite.errors import UsageError
from visual_suite.runner.check_session import CheckSessionState
from visual_suite.runner.results import SessionStatus
from visual_suite.runner.runner_handle import create_runner_handle
from visual_suite.service.base import Outcome


def _run_session(runner, page, test_name, labels, synchronous=True):
    session = runner.new_session()
    session.open(page, "ToDo", test_name)
    for label in labels:
        session.checkpoint(label, full_page=True)
    session.close(synchronous=synchronous)
    return session


class TestCreateRunnerHandle:
    """Tests for runner creation per mode."""

    def test_parallel_passes_concurrency(self, parallel_configuration, service):
        """Test parallel mode hands the concurrency bound to the service."""
        runner = create_runner_handle(parallel_configuration, service)

        assert runner.mode is RunMode.PARALLEL
        assert runner.concurrency == 3
        assert service.runners[0].mode is RunMode.PARALLEL
        assert service.runners[0].concurrency == 3

    def test_local_ignores_concurrency(self, local_runner, service):
        """Test local mode has no concurrency bound."""
        assert local_runner.mode is RunMode.LOCAL
        assert local_runner.concurrency is None
        assert service.runners[0].mode is RunMode.LOCAL


class TestCollectAllResults:
    """Tests for collect_all_results."""

    def test_add_task_scenario(self, local_runner, fake_page):
        """Test one full-page checkpoint yields one record with a defined outcome."""
        _run_session(local_runner, fake_page, "Add Task", ["Add Task"])

        summary = local_runner.collect_all_results(True)

        assert summary.complete
        assert len(summary.sessions) == 1
        session = summary.sessions[0]
        assert session.labels == ["Add Task"]
        checkpoint = session.checkpoints[0]
        assert checkpoint.full_page is True
        assert checkpoint.outcome is Outcome.PASSED
        assert [t.target for t in checkpoint.targets] == [LOCAL_TARGET]
        assert summary.all_passed

    def test_checkpoint_order_preserved(self, local_runner, fake_page):
        """Test the summary keeps submission order."""
        _run_session(local_runner, fake_page, "three tasks", ["Task 1", "Task 2", "Task 3"])

        summary = local_runner.collect_all_results(True)

        assert summary.session("three tasks").labels == ["Task 1", "Task 2", "Task 3"]

    def test_parallel_results_per_target(self, parallel_runner, fake_page):
        """Test one checkpoint on three targets gives three per-target results."""
        _run_session(parallel_runner, fake_page, "adds a task", ["Add Task"], synchronous=False)

        summary = parallel_runner.collect_all_results(True)

        checkpoint = summary.session("adds a task").checkpoints[0]
        assert checkpoint.label == "Add Task"
        assert [t.target for t in checkpoint.targets] == [
            "chrome 800x600",
            "firefox 1600x1200",
            "safari 1024x768",
        ]
        assert all(t.outcome is Outcome.PASSED for t in checkpoint.targets)

    def test_visual_diff_is_a_result_not_an_error(self, local_runner, fake_page, service):
        """Test a mismatch shows up as DIFF in the summary."""
        service.diffs = {"Delete Task"}
        _run_session(local_runner, fake_page, "deletes a task", ["Delete Task"])

        summary = local_runner.collect_all_results(True)

        assert summary.error is None
        assert summary.sessions[0].checkpoints[0].outcome is Outcome.DIFF
        assert not summary.all_passed
        assert summary.failed_count == 1

    def test_collect_before_close_is_incomplete(self, local_runner, fake_page, service):
        """Test early collection returns an incomplete summary without asking the service."""
        session = local_runner.new_session()
        session.open(fake_page, "ToDo", "still open")
        session.checkpoint("Add Task")

        summary = local_runner.collect_all_results(True)

        assert not summary.complete
        assert summary.sessions[0].state is CheckSessionState.OPEN
        assert summary.sessions[0].status is SessionStatus.UNKNOWN
        assert summary.sessions[0].checkpoints[0].outcome is Outcome.MISSING
        assert summary.failed_count == 0
        assert service.runners[0].collect_calls == []
        assert not local_runner.collected

        session.close(synchronous=False)
        assert local_runner.collect_all_results(True).complete
        assert service.runners[0].collect_calls == [True]

    def test_early_collection_keeps_sync_close_outcomes(self, local_runner, fake_page, service):
        """Test outcomes returned on a synchronous close show up in an early summary."""
        _run_session(local_runner, fake_page, "closed", ["Add Task"], synchronous=True)
        still_open = local_runner.new_session()
        still_open.open(fake_page, "ToDo", "still open")

        summary = local_runner.collect_all_results(True)

        assert summary.session("closed").passed
        assert summary.session("still open").status is SessionStatus.UNKNOWN
        assert service.runners[0].collect_calls == []

    def test_collect_with_no_sessions(self, local_runner):
        """Test collecting an empty run gives an empty summary."""
        summary = local_runner.collect_all_results(True)

        assert summary.sessions == []
        assert summary.total_count == 0

    def test_collect_twice_is_usage_error(self, local_runner, fake_page):
        """Test a complete collection can only happen once."""
        _run_session(local_runner, fake_page, "t", ["Add Task"])
        local_runner.collect_all_results(True)

        with pytest.raises(UsageError):
            local_runner.collect_all_results(True)
        with pytest.raises(UsageError):
            local_runner.new_session()

    def test_service_failure_is_reported(self, local_runner, fake_page, service):
        """Test a collection failure lands on the summary."""
        _run_session(local_runner, fake_page, "t", ["Add Task"], synchronous=False)
        service.fail_collect = True

        summary = local_runner.collect_all_results(True)

        assert not summary.complete
        assert "TimeoutError" in summary.error
        assert summary.sessions[0].checkpoints[0].outcome is Outcome.MISSING

    def test_service_failure_does_not_fail_tests(self, local_runner, fake_page, service):
        """Test tests without results after a collection failure are unknown, not failed."""
        _run_session(local_runner, fake_page, "adds a task", ["Add Task"], synchronous=False)
        service.fail_collect = True

        summary = local_runner.collect_all_results(True)

        session = summary.session("adds a task")
        assert session.status is SessionStatus.UNKNOWN
        assert not session.passed
        assert summary.failed_count == 0
        assert summary.unknown_count == 1
        assert summary.passed_count == 0
        assert not summary.all_passed

    def test_render_error_reaches_its_session(self, parallel_runner, fake_page, service):
        """Test an unnamed render failure is reported on the session missing that target."""
        _run_session(parallel_runner, fake_page, "adds a task", ["Add Task"], synchronous=False)
        _run_session(parallel_runner, fake_page, "deletes a task", ["Delete Task"], synchronous=False)
        service.render_errors = {("deletes a task", "chrome 800x600"): "render failed"}

        summary = parallel_runner.collect_all_results(True)

        failed = summary.session("deletes a task").checkpoints[0].targets[0]
        assert failed.target == "chrome 800x600"
        assert failed.outcome is Outcome.ERROR
        assert failed.error == "render failed"
        assert summary.session("adds a task").passed
        assert not summary.session("deletes a task").passed
        assert summary.unmatched == []

    def test_duplicate_names_warn(self, local_runner, fake_page, caplog):
        """Test two sessions under one display name are logged."""
        _run_session(local_runner, fake_page, "adds a task", ["Add Task"])

        with caplog.at_level(logging.WARNING, logger="visual_suite.runner.runner_handle"):
            _run_session(local_runner, fake_page, "adds a task", ["Add Task"])

        assert "'adds a task' (app 'ToDo') opened 2 times" in caplog.text

    def test_wait_flag_forwarded(self, local_runner, service):
        """Test wait_for_completion reaches the service runner."""
        local_runner.collect_all_results(False)
        assert service.runners[0].collect_calls == [False]

    def test_open_and_close_counts(self, local_runner, fake_page):
        """Test the handle counts every open and close."""
        _run_session(local_runner, fake_page, "a", ["A"])
        _run_session(local_runner, fake_page, "b", ["B"], synchronous=False)

        assert local_runner.opened_count == 2
        assert local_runner.closed_count == 2
        assert local_runner.pending_sessions == []


class TestUnclosedPolicy:
    """Tests for counting sessions that were not cleanly closed."""

    def _summary(self, configuration, service, page, policy):
        runner = create_runner_handle(configuration, service, policy)
        _run_session(runner, page, "good", ["Add Task"])
        bad = runner.new_session()
        bad.open(page, "ToDo", "aborted")
        bad.checkpoint("Add Task")
        bad.abort()
        return runner.collect_all_results(True)

    def test_fail_policy_counts_as_failure(self, local_configuration, service, fake_page):
        """Test FAIL counts an aborted session as failed."""
        summary = self._summary(local_configuration, service, fake_page, UnclosedPolicy.FAIL)

        assert summary.total_count == 2
        assert summary.failed_count == 1
        assert not summary.all_passed

    def test_exclude_policy_leaves_it_out(self, local_configuration, service, fake_page):
        """Test EXCLUDE leaves an aborted session out of the aggregate."""
        summary = self._summary(local_configuration, service, fake_page, UnclosedPolicy.EXCLUDE)

        assert summary.total_count == 1
        assert summary.excluded_count == 1
        assert summary.all_passed
        assert len(summary.sessions) == 2
