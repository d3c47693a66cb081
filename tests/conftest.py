"""Shared fixtures for harness tests."""

import pytest

from visual_suite.config.schema import (
    BrowserKind,
    RunMode,
    SuiteSettings,
    build_run_configuration,
)
from visual_suite.runner.orchestrator import TestOrchestrator
from visual_suite.runner.runner_handle import create_runner_handle

from .fakes import FakePage, FakeProbe, FakeVisualService

pytest_plugins = ["visual_suite.plugin", "pytester"]


@pytest.fixture
def service():
    return FakeVisualService()


@pytest.fixture
def fake_page():
    return FakePage(texts={"h1": "Time Blind"})


@pytest.fixture
def local_configuration():
    return build_run_configuration(RunMode.LOCAL, "ToDo - Classic runner")


@pytest.fixture
def parallel_configuration():
    configuration = build_run_configuration(RunMode.PARALLEL, "ToDo - Ultrafast Grid", concurrency=3)
    configuration.add_browser(800, 600, BrowserKind.CHROME)
    configuration.add_browser(1600, 1200, BrowserKind.FIREFOX)
    configuration.add_browser(1024, 768, BrowserKind.SAFARI)
    return configuration


@pytest.fixture
def local_runner(local_configuration, service):
    return create_runner_handle(local_configuration, service)


@pytest.fixture
def parallel_runner(parallel_configuration, service):
    return create_runner_handle(parallel_configuration, service)


@pytest.fixture
def settings():
    return SuiteSettings(mode=RunMode.LOCAL, probe_app=False)


@pytest.fixture
def orchestrator(settings, service):
    return TestOrchestrator(settings, service, probe=FakeProbe())


@pytest.fixture
def pytester(pytester, monkeypatch):
    # Keep setuptools-registered plugins (pytest-playwright) out of the
    # in-process inner session; its global soft-assertion scope cannot nest.
    monkeypatch.setenv("PYTEST_DISABLE_PLUGIN_AUTOLOAD", "1")
    return pytester
