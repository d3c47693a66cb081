"""Tests for the pytest plugin, run in an isolated pytest session."""

import pytest

from visual_suite.config.schema import RunMode
from visual_suite.plugin import display_names

INNER_CONFTEST = """
import pytest

from tests.fakes import FakePage, FakeVisualService
from visual_suite.config.schema import RunMode, SuiteSettings

pytest_plugins = ["visual_suite.plugin"]


@pytest.fixture(scope="session")
def visual_settings():
    return SuiteSettings(mode=RunMode.LOCAL, probe_app=False)


@pytest.fixture(scope="session")
def visual_service():
    return FakeVisualService()


@pytest.fixture
def visual_page():
    return FakePage()
"""

INNER_TESTS = """
import pytest


def test_adds_a_task(visual_check):
    visual_check.checkpoint("Add Task")


@pytest.mark.visual(app_name="Time Blind", test_name="has h1 that says Time Blind")
def test_title(visual_check, visual_service):
    visual_check.checkpoint("Time Blind", full_page=False)
    assert visual_service.session_logs[-1].app_name == "Time Blind"


def test_body_fails(visual_check):
    visual_check.checkpoint("Before failure")
    assert False, "page broke"


def test_session_was_closed(visual_orchestrator):
    runner = visual_orchestrator.runner
    assert runner.opened_count == runner.closed_count == 3
"""


class TestPlugin:
    """Tests for the visual_check fixture and suite fixtures."""

    def test_sessions_close_and_summary_prints(self, pytester):
        """Test each test gets a closed session and the summary is printed."""
        pytester.makeconftest(INNER_CONFTEST)
        pytester.makepyfile(test_visual=INNER_TESTS)

        result = pytester.runpytest("-p", "no:cacheprovider")

        result.assert_outcomes(passed=3, failed=1)
        result.stdout.fnmatch_lines([
            "*visual checks*",
            "*batch 'ToDo - Classic runner' (local): 3/3 tests passed*",
            "*test_adds_a_task / Add Task",
            "*has h1 that says Time Blind / Time Blind",
            "*test_body_fails / Before failure",
        ])

    def test_options_override_settings(self, pytester, monkeypatch):
        """Test --visual-mode and --app-url win over the environment."""
        monkeypatch.setenv("VISUAL_SUITE_PARALLEL", "true")
        pytester.makeconftest('pytest_plugins = ["visual_suite.plugin"]')
        pytester.makepyfile(test_settings="""
            def test_settings(visual_settings, app_url):
                assert visual_settings.mode.value == "local"
                assert app_url == "http://app:4000"
        """)

        result = pytester.runpytest("--visual-mode", "local", "--app-url", "http://app:4000")

        result.assert_outcomes(passed=1)


class TestDisplayNames:
    """Tests for display_names."""

    def test_marker_names(self, request):
        """Test names fall back to the item name."""
        assert display_names(request.node) == ("test_marker_names", None)

    @pytest.mark.visual(app_name="Time Blind")
    def test_marker_app_name(self, request):
        """Test the visual marker supplies the app name."""
        assert display_names(request.node) == ("test_marker_app_name", "Time Blind")
        assert RunMode.LOCAL.display_name == "Classic runner"
