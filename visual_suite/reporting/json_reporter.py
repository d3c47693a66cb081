"""JSON report generator for visual check results.

Generates structured JSON reports from a run's ResultSummary.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..runner.results import ResultSummary, SessionResult


class JsonReporter:
    """Generates JSON reports from visual check results."""

    def generate(
        self,
        summary: ResultSummary,
        duration_ms: int = 0,
        error: Optional[str] = None,
    ) -> dict[str, Any]:
        """Generate a JSON report from a result summary.

        Args:
            summary: Collected results of the run.
            duration_ms: Suite duration in milliseconds.
            error: Overall error message if the run failed before collection.

        Returns:
            Report dictionary ready for JSON serialization.
        """
        error = error or summary.error
        all_passed = summary.all_passed and summary.complete and error is None

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "batch": {
                "name": summary.batch_name,
                "id": summary.batch_id,
            },
            "mode": summary.mode,
            "status": "passed" if all_passed else "failed",
            "complete": summary.complete,
            "summary": {
                "total": summary.total_count,
                "passed": summary.passed_count,
                "failed": summary.failed_count,
                "unknown": summary.unknown_count,
                "excluded": summary.excluded_count,
                "checkpoints": summary.checkpoint_count,
                "duration_ms": duration_ms,
            },
            "unclosed_sessions": summary.unclosed_policy.value,
            "tests": [self._session_entry(s) for s in summary.sessions],
            "error": error,
        }

    def _session_entry(self, session: SessionResult) -> dict[str, Any]:
        return {
            "app": session.app_name,
            "name": session.test_name,
            "state": session.state.value,
            "status": session.status.value,
            "error": session.error,
            "checkpoints": [
                {
                    "label": c.label,
                    "full_page": c.full_page,
                    "outcome": c.outcome.value,
                    "targets": [
                        {
                            "target": t.target,
                            "outcome": t.outcome.value,
                            "url": t.url,
                            "error": t.error,
                        }
                        for t in c.targets
                    ],
                }
                for c in session.checkpoints
            ],
        }

    def save(self, report: dict[str, Any], path: Path) -> Path:
        """Save report to a JSON file.

        Args:
            report: Report dictionary.
            path: Output file path.

        Returns:
            Path to the saved file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        return path

    def to_json_string(self, report: dict[str, Any], pretty: bool = True) -> str:
        if pretty:
            return json.dumps(report, indent=2, ensure_ascii=False)
        return json.dumps(report, ensure_ascii=False)

    def generate_flow_output(
        self,
        report: dict[str, Any],
        report_path: Optional[str] = None,
    ) -> dict[str, Any]:
        """Generate CLI JSON output.

        {
            "success": bool,
            "command": "visual",
            "data": { ... },
            "message": str
        }

        Args:
            report: Report dictionary.
            report_path: Path where the report was saved.

        Returns:
            CLI output dictionary.
        """
        summary = report["summary"]
        all_passed = report["status"] == "passed"

        data: dict[str, Any] = {
            "batch": report["batch"]["name"],
            "mode": report["mode"],
            "total_tests": summary["total"],
            "passed": summary["passed"],
            "failed": summary["failed"],
            "unknown": summary["unknown"],
            "checkpoints": summary["checkpoints"],
            "duration_ms": summary["duration_ms"],
        }

        if report_path:
            data["report_path"] = report_path

        if report.get("error"):
            message = f"Visual run failed: {report['error']}"
        elif not report["complete"]:
            message = "Results are incomplete: some sessions were not closed"
        elif not all_passed:
            message = f"{summary['failed']} of {summary['total']} tests failed"
        else:
            message = "All visual checks passed"

        return {
            "success": all_passed,
            "command": "visual",
            "data": data,
            "message": message,
        }
