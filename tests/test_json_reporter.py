"""Tests for JsonReporter."""

import json

from visual_suite.reporting.json_reporter import JsonReporter
from visual_suite.runner.check_session import CheckSessionState
from visual_suite.runner.results import (
    CheckpointResult,
    ResultSummary,
    SessionResult,
    TargetResult,
)
from visual_suite.service.base import Outcome


def _summary(outcome=Outcome.PASSED, complete=True, error=None):
    checkpoint = CheckpointResult(
        label="Add Task",
        full_page=True,
        targets=[TargetResult("chrome 800x600", outcome, url="https://eyes.example/r/1")],
    )
    session = SessionResult(
        app_name="ToDo",
        test_name="adds a task",
        state=CheckSessionState.CLOSED,
        checkpoints=[checkpoint],
    )
    return ResultSummary(
        batch_name="ToDo - Ultrafast Grid",
        batch_id="b1",
        mode="parallel",
        sessions=[session],
        complete=complete,
        error=error,
    )


class TestGenerate:
    """Tests for report generation."""

    def test_passing_report(self):
        """Test a passing run's report."""
        report = JsonReporter().generate(_summary(), duration_ms=1200)

        assert report["status"] == "passed"
        assert report["batch"] == {"name": "ToDo - Ultrafast Grid", "id": "b1"}
        assert report["summary"] == {
            "total": 1,
            "passed": 1,
            "failed": 0,
            "unknown": 0,
            "excluded": 0,
            "checkpoints": 1,
            "duration_ms": 1200,
        }
        test = report["tests"][0]
        assert test["status"] == "passed"
        assert test["checkpoints"][0]["targets"][0] == {
            "target": "chrome 800x600",
            "outcome": "passed",
            "url": "https://eyes.example/r/1",
            "error": None,
        }

    def test_diff_fails_report(self):
        """Test a visual diff fails the report."""
        report = JsonReporter().generate(_summary(Outcome.DIFF))

        assert report["status"] == "failed"
        assert report["tests"][0]["checkpoints"][0]["outcome"] == "diff"

    def test_unknown_session_is_not_failed(self):
        """Test a test without results is reported as unknown."""
        summary = _summary(complete=False, error="TimeoutError: late")
        summary.sessions[0].results_known = False

        report = JsonReporter().generate(summary)

        assert report["tests"][0]["status"] == "unknown"
        assert report["summary"]["failed"] == 0
        assert report["summary"]["unknown"] == 1
        assert report["status"] == "failed"

    def test_incomplete_fails_report(self):
        """Test an incomplete summary never reports as passed."""
        assert JsonReporter().generate(_summary(complete=False))["status"] == "failed"

    def test_serializable(self, tmp_path):
        """Test the report is saved as JSON."""
        reporter = JsonReporter()
        report = reporter.generate(_summary())

        path = reporter.save(report, tmp_path / "out" / "report.json")

        assert json.loads(path.read_text(encoding="utf-8"))["batch"]["id"] == "b1"
        assert "\n" not in reporter.to_json_string(report, pretty=False)


class TestFlowOutput:
    """Tests for CLI output generation."""

    def test_success_output(self):
        """Test output for a passing run."""
        reporter = JsonReporter()
        output = reporter.generate_flow_output(reporter.generate(_summary()), "r.json")

        assert output["success"] is True
        assert output["command"] == "visual"
        assert output["data"]["report_path"] == "r.json"
        assert output["message"] == "All visual checks passed"

    def test_messages(self):
        """Test failure messages by cause."""
        reporter = JsonReporter()

        def message(summary):
            return reporter.generate_flow_output(reporter.generate(summary))["message"]

        assert message(_summary(Outcome.DIFF)) == "1 of 1 tests failed"
        assert message(_summary(complete=False)).startswith("Results are incomplete")
        assert message(_summary(error="TimeoutError: late")) == "Visual run failed: TimeoutError: late"
