"""Tests for the visual-suite CLI."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from visual_suite.cli import main
from visual_suite.errors import InfrastructureError


def _json(result):
    return json.loads(result.stdout.strip().splitlines()[-1])


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "VISUAL_SUITE_PARALLEL",
        "VISUAL_SUITE_BASE_URL",
        "VISUAL_SUITE_CONCURRENCY",
        "VISUAL_SUITE_BATCH_ID",
        "APPLITOOLS_API_KEY",
        "APPLITOOLS_SERVER_URL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestValidate:
    """Tests for the validate command."""

    def test_valid_file(self, tmp_path):
        """Test a valid file reports its matrix."""
        path = tmp_path / "suite.yaml"
        path.write_text("app: ToDo\nmode: parallel\nconcurrency: 5\n", encoding="utf-8")

        result = CliRunner().invoke(main, ["validate", str(path)])

        assert result.exit_code == 0
        payload = _json(result)
        assert payload["success"] is True
        assert payload["data"]["batch"] == "ToDo - Ultrafast Grid"
        assert len(payload["data"]["targets"]) == 5
        assert payload["data"]["warnings"][0]["path"] == "api_key"

    def test_invalid_file(self, tmp_path):
        """Test validation errors exit with status 1."""
        path = tmp_path / "suite.yaml"
        path.write_text("base_url: not-a-url\n", encoding="utf-8")

        result = CliRunner().invoke(main, ["validate", str(path)])

        assert result.exit_code == 1
        assert _json(result)["data"]["errors"][0]["path"] == "base_url"

    def test_unparseable_file(self, tmp_path):
        """Test parse errors are reported as JSON."""
        path = tmp_path / "suite.yaml"
        path.write_text("mode: cloud\n", encoding="utf-8")

        result = CliRunner().invoke(main, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid mode" in _json(result)["message"]


class TestProbe:
    """Tests for the probe command."""

    def test_reachable(self):
        """Test a reachable app."""
        with patch("visual_suite.service.app_probe.AppProbe.wait_until_ready") as wait:
            result = CliRunner().invoke(main, ["probe", "--app-url", "http://app:3000"])

        wait.assert_called_once_with()
        assert result.exit_code == 0
        assert _json(result)["data"] == {"base_url": "http://app:3000"}

    def test_unreachable(self):
        """Test an unreachable app exits with status 1."""
        with patch(
            "visual_suite.service.app_probe.AppProbe.wait_until_ready",
            side_effect=InfrastructureError("App at http://app:3000 is not reachable"),
        ):
            result = CliRunner().invoke(main, ["probe", "--app-url", "http://app:3000", "--retries", "0"])

        assert result.exit_code == 1
        payload = _json(result)
        assert payload["success"] is False
        assert "not reachable" in payload["message"]


class TestRun:
    """Tests for the run command's settings handling."""

    def test_invalid_settings_stop_before_browser(self):
        """Test invalid settings fail before any browser is launched."""
        result = CliRunner().invoke(main, ["run", "--app-url", "localhost"])

        assert result.exit_code == 1
        assert _json(result)["message"].startswith("Invalid settings: base_url")
