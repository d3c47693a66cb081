"""CLI entry point for the visual check suite.

    visual-suite validate suite.yaml
    visual-suite probe --app-url http://localhost:3000
    visual-suite run --config suite.yaml --mode local

Output is one JSON document on stdout; logs go to stderr.
"""

import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click

from .config.parser import load_settings
from .config.schema import RunMode, SuiteSettings
from .config.validator import validate_settings
from .errors import HarnessError


def output(payload: dict) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False))


def output_error(command: str, message: str, **extra) -> None:
    """Output error in CLI JSON format."""
    output({
        "success": False,
        "command": command,
        "data": extra or None,
        "message": message,
    })


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load(config: Optional[str], mode: Optional[str], app_url: Optional[str]) -> SuiteSettings:
    settings = load_settings(config)
    if mode:
        settings.mode = RunMode(mode)
    if app_url:
        settings.base_url = app_url
    return settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
def main(verbose: bool) -> None:
    """Visual regression checks for the ToDo app."""
    _configure_logging(verbose)


@main.command()
@click.argument("config", type=click.Path(dir_okay=False))
def validate(config: str) -> None:
    """Validate a suite settings file."""
    try:
        settings = load_settings(config)
    except (FileNotFoundError, ValueError) as e:
        output_error("validate", f"Failed to parse settings: {e}")
        sys.exit(1)

    result = validate_settings(settings)
    output({
        "success": result.valid,
        "command": "validate",
        "data": {
            "mode": settings.mode.value,
            "batch": settings.resolved_batch_name,
            "targets": [t.label for t in settings.build_run_configuration().effective_targets],
            "errors": [{"path": e.path, "message": e.message} for e in result.errors],
            "warnings": [{"path": w.path, "message": w.message} for w in result.warnings],
        },
        "message": str(result),
    })
    if not result.valid:
        sys.exit(1)


@main.command()
@click.option("--config", type=click.Path(dir_okay=False), default=None, help="Suite settings file.")
@click.option("--app-url", default=None, help="Base URL of the app under test.")
@click.option("--retries", type=int, default=None, help="Retries before giving up.")
def probe(config: Optional[str], app_url: Optional[str], retries: Optional[int]) -> None:
    """Check that the app under test answers."""
    from .service.app_probe import AppProbe
    from .service.retry_policy import RetryPolicy, startup_retry_policy

    settings = _load(config, None, app_url)
    policy = startup_retry_policy() if retries is None else RetryPolicy(max_retries=retries)

    with AppProbe(settings.base_url, retry_policy=policy) as app_probe:
        try:
            app_probe.wait_until_ready()
        except HarnessError as e:
            output_error("probe", str(e), base_url=settings.base_url)
            sys.exit(1)

    output({
        "success": True,
        "command": "probe",
        "data": {"base_url": settings.base_url},
        "message": "App is reachable",
    })


@main.command()
@click.option("--config", type=click.Path(dir_okay=False), default=None, help="Suite settings file.")
@click.option("--mode", type=click.Choice([m.value for m in RunMode]), default=None, help="Run mode.")
@click.option("--app-url", default=None, help="Base URL of the app under test.")
@click.option("--headed", is_flag=True, help="Show the browser window.")
@click.option("--save-report", is_flag=True, help="Save the JSON report to a file.")
@click.option("--report-dir", type=click.Path(file_okay=False), default=".", help="Directory for saved reports.")
def run(
    config: Optional[str],
    mode: Optional[str],
    app_url: Optional[str],
    headed: bool,
    save_report: bool,
    report_dir: str,
) -> None:
    """Run the ToDo scenarios in a local browser."""
    try:
        settings = _load(config, mode, app_url)
    except (FileNotFoundError, ValueError) as e:
        output_error("visual", f"Failed to load settings: {e}")
        sys.exit(1)

    validation = validate_settings(settings)
    if not validation.valid:
        errors_str = "; ".join(f"{e.path}: {e.message}" for e in validation.errors)
        output_error("visual", f"Invalid settings: {errors_str}")
        sys.exit(1)

    start_time = time.time()

    try:
        from playwright.sync_api import sync_playwright

        from .reporting.json_reporter import JsonReporter
        from .runner.orchestrator import TestOrchestrator
        from .scenarios.todo import SCENARIOS
        from .service.applitools import ApplitoolsService

        orchestrator = TestOrchestrator(settings, ApplitoolsService.from_settings(settings))

        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(headless=not headed)
            try:
                with orchestrator.suite():
                    for scenario in SCENARIOS:
                        context = browser.new_context()
                        try:
                            page = context.new_page()
                            orchestrator.run_test(
                                scenario.name,
                                page,
                                scenario.bind(settings.base_url),
                                app_name=scenario.app_name,
                            )
                        finally:
                            context.close()
            finally:
                browser.close()

    except KeyboardInterrupt:
        duration_ms = int((time.time() - start_time) * 1000)
        output_error("visual", "Run interrupted by user", duration_ms=duration_ms)
        sys.exit(130)

    except HarnessError as e:
        duration_ms = int((time.time() - start_time) * 1000)
        output_error("visual", f"Run failed: {e}", duration_ms=duration_ms)
        sys.exit(1)

    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        output_error("visual", f"Run failed: {type(e).__name__}: {e}", duration_ms=duration_ms)
        sys.exit(1)

    duration_ms = int((time.time() - start_time) * 1000)
    reporter = JsonReporter()
    report = reporter.generate(orchestrator.summary, duration_ms=duration_ms)

    report_path = None
    if save_report:
        path = Path(report_dir) / f"visual_report_{orchestrator.summary.batch_id}.json"
        report_path = str(reporter.save(report, path))

    flow_output = reporter.generate_flow_output(report, report_path)
    failed_runs = [r for r in orchestrator.runs if not r.passed]
    if failed_runs:
        flow_output["success"] = False
        flow_output["data"]["errors"] = {r.test_name: r.error for r in failed_runs}
        flow_output["message"] = f"{len(failed_runs)} of {len(orchestrator.runs)} tests failed"

    output(flow_output)
    if not flow_output["success"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
