"""pytest plugin wiring the orchestrator into fixtures.

Suite-scoped fixtures build the settings, service and orchestrator once per
test process; ``visual_check`` gives each test its own open check session on
pytest-playwright's ``page`` and closes it after the test, pass or fail.

Enable with ``pytest_plugins = ["visual_suite.plugin"]`` in a conftest.
"""

import logging
from typing import Iterator, Optional

import pytest

from .config.parser import load_settings
from .config.schema import RunMode, SuiteSettings
from .runner.check_session import CheckSession
from .runner.orchestrator import TestOrchestrator
from .runner.results import ResultSummary
from .service.applitools import ApplitoolsService
from .service.base import VisualCheckService

logger = logging.getLogger(__name__)

SUMMARY_KEY = pytest.StashKey[ResultSummary]()


def pytest_addoption(parser):
    group = parser.getgroup("visual", "visual regression checks")
    group.addoption(
        "--visual-config",
        action="store",
        default=None,
        help="YAML suite settings file.",
    )
    group.addoption(
        "--visual-mode",
        action="store",
        default=None,
        choices=sorted(m.value for m in RunMode),
        help="Run mode: parallel (rendering grid) or local (classic runner).",
    )
    group.addoption(
        "--app-url",
        action="store",
        default=None,
        help="Base URL of the app under test.",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "visual(app_name=None, test_name=None): display names for the test's check session",
    )
    config.addinivalue_line(
        "markers",
        "e2e: needs the live app, a browser and the visual testing service",
    )


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    summary = config.stash.get(SUMMARY_KEY, None)
    if summary is None:
        return

    terminalreporter.write_sep("=", "visual checks")
    terminalreporter.write_line(
        f"batch {summary.batch_name!r} ({summary.mode}): "
        f"{summary.passed_count}/{summary.total_count} tests passed"
        + (f", {summary.unknown_count} unknown" if summary.unknown_count else "")
        + ("" if summary.complete else ", incomplete")
    )
    for session in summary.sessions:
        for checkpoint in session.checkpoints:
            terminalreporter.write_line(
                f"  [{checkpoint.outcome.value.upper()}] {session.test_name} / {checkpoint.label}"
            )
    if summary.error:
        terminalreporter.write_line(f"collection error: {summary.error}", red=True)


def settings_from_config(config) -> SuiteSettings:
    """Settings file, then environment, then command line options."""
    settings = load_settings(config.getoption("visual_config"))

    mode = config.getoption("visual_mode")
    if mode:
        settings.mode = RunMode(mode)

    app_url = config.getoption("app_url")
    if app_url:
        settings.base_url = app_url

    return settings


def display_names(item) -> tuple[str, Optional[str]]:
    """Test and app display names for an item, from its visual marker."""
    marker = item.get_closest_marker("visual")
    kwargs = marker.kwargs if marker else {}
    return kwargs.get("test_name") or item.name, kwargs.get("app_name")


@pytest.fixture(scope="session")
def visual_settings(pytestconfig) -> SuiteSettings:
    return settings_from_config(pytestconfig)


@pytest.fixture(scope="session")
def visual_service(visual_settings) -> VisualCheckService:
    return ApplitoolsService.from_settings(visual_settings)


@pytest.fixture(scope="session")
def visual_orchestrator(pytestconfig, visual_settings, visual_service) -> Iterator[TestOrchestrator]:
    orchestrator = TestOrchestrator(visual_settings, visual_service)
    with orchestrator.suite():
        yield orchestrator
    if orchestrator.summary is not None:
        pytestconfig.stash[SUMMARY_KEY] = orchestrator.summary


@pytest.fixture(scope="session")
def app_url(visual_settings) -> str:
    return visual_settings.base_url


@pytest.fixture
def visual_page(request):
    """Browser page for the check session. Override to supply your own."""
    return request.getfixturevalue("page")


@pytest.fixture
def visual_check(request, visual_orchestrator, visual_page) -> Iterator[CheckSession]:
    test_name, app_name = display_names(request.node)
    logger.info("Running test: %r", test_name)

    with visual_orchestrator.session(visual_page, test_name, app_name) as session:
        yield session
        report = getattr(request.node, "rep_call", None)
        if report is not None and report.failed:
            logger.error(
                "Test %r failed (last checkpoint %r); closing its check session",
                test_name, session.last_label,
            )
