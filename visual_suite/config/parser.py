"""YAML suite settings parser.

Loads suite settings from an optional YAML file, then applies environment
overrides. Settings are read once at suite start.
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from .schema import (
    BrowserKind,
    BrowserTarget,
    DeviceEmulation,
    Orientation,
    RunMode,
    SuiteSettings,
    ViewportBrowser,
    VALID_BROWSERS,
    VALID_MODES,
    VALID_ORIENTATIONS,
    VALID_UNCLOSED_POLICIES,
)

ENV_PARALLEL = "VISUAL_SUITE_PARALLEL"
ENV_BASE_URL = "VISUAL_SUITE_BASE_URL"
ENV_CONCURRENCY = "VISUAL_SUITE_CONCURRENCY"
ENV_BATCH_ID = "VISUAL_SUITE_BATCH_ID"
ENV_API_KEY = "APPLITOOLS_API_KEY"
ENV_SERVER_URL = "APPLITOOLS_SERVER_URL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_settings(
    file_path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> SuiteSettings:
    """Load suite settings from a YAML file and the environment.

    Args:
        file_path: Optional YAML settings file. Defaults apply when omitted.
        env: Environment mapping. Defaults to os.environ.

    Returns:
        Parsed SuiteSettings with environment overrides applied.

    Raises:
        FileNotFoundError: If file_path is given but doesn't exist.
        ValueError: If the YAML or an environment value is malformed.
    """
    if file_path is not None:
        settings = parse_settings_file(file_path)
    else:
        settings = SuiteSettings()

    return apply_env_overrides(settings, os.environ if env is None else env)


def parse_settings_file(file_path: Union[str, Path]) -> SuiteSettings:
    """Parse a YAML settings file into SuiteSettings."""
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Settings file not found: {file_path}")

    if file_path.suffix not in (".yaml", ".yml"):
        raise ValueError(f"Expected .yaml or .yml file, got: {file_path.suffix}")

    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return SuiteSettings()

    return parse_settings_data(data, source=str(file_path))


def parse_settings_data(data: dict, source: str = "<inline>") -> SuiteSettings:
    """Parse suite settings from an already loaded mapping.

    Args:
        data: Dictionary with settings data.
        source: Source identifier for error messages.

    Returns:
        Parsed SuiteSettings.

    Raises:
        ValueError: If fields are malformed.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Settings must be a YAML mapping, got {type(data).__name__}")

    kwargs: dict[str, Any] = {}

    if "app" in data:
        kwargs["app_name"] = str(data["app"])
    if "base_url" in data:
        kwargs["base_url"] = str(data["base_url"])

    if "mode" in data:
        mode = str(data["mode"]).lower()
        if mode not in VALID_MODES:
            raise ValueError(
                f"Invalid mode '{mode}' in {source}. "
                f"Must be one of: {', '.join(sorted(VALID_MODES))}"
            )
        kwargs["mode"] = mode

    if "concurrency" in data:
        kwargs["concurrency"] = _as_int(data["concurrency"], "concurrency", source)

    batch = data.get("batch", {})
    if not isinstance(batch, dict):
        raise ValueError(f"'batch' must be a mapping in {source}")
    if "name" in batch:
        kwargs["batch_name"] = "" if batch["name"] is None else str(batch["name"])
    if batch.get("id"):
        kwargs["batch_id"] = str(batch["id"])
    if "notify_on_completion" in batch:
        kwargs["notify_on_completion"] = _as_bool(
            batch["notify_on_completion"], "batch.notify_on_completion", source
        )

    targets_data = data.get("targets", [])
    if not isinstance(targets_data, list):
        raise ValueError(f"'targets' must be a list in {source}")
    kwargs["targets"] = [
        parse_target(t, f"targets[{i}]", source) for i, t in enumerate(targets_data)
    ]

    if "close" in data:
        close = str(data["close"]).lower()
        if close not in ("sync", "async"):
            raise ValueError(f"'close' must be 'sync' or 'async' in {source}")
        kwargs["close_synchronously"] = close == "sync"

    if "wait_for_results" in data:
        kwargs["wait_for_results"] = _as_bool(data["wait_for_results"], "wait_for_results", source)
    if "probe_app" in data:
        kwargs["probe_app"] = _as_bool(data["probe_app"], "probe_app", source)

    if "unclosed_sessions" in data:
        policy = str(data["unclosed_sessions"]).lower()
        if policy not in VALID_UNCLOSED_POLICIES:
            raise ValueError(
                f"Invalid unclosed_sessions '{policy}' in {source}. "
                f"Must be one of: {', '.join(sorted(VALID_UNCLOSED_POLICIES))}"
            )
        kwargs["unclosed_sessions"] = policy

    return SuiteSettings(**kwargs)


def parse_target(data: dict, context: str, source: str = "<inline>") -> BrowserTarget:
    """Parse one browser target mapping.

    ``{browser, width, height}`` is a viewport browser;
    ``{device, orientation}`` is a device emulation.
    """
    if not isinstance(data, dict):
        raise ValueError(f"{context} must be a mapping in {source}")

    if "device" in data:
        orientation = str(data.get("orientation", "portrait")).lower()
        if orientation not in VALID_ORIENTATIONS:
            raise ValueError(
                f"Invalid orientation '{orientation}' in {context} ({source})"
            )
        return DeviceEmulation(
            device_name=str(data["device"]),
            orientation=Orientation(orientation),
        )

    _require_fields(data, ["width", "height"], context, source)
    browser = str(data.get("browser", "chrome")).lower()
    if browser not in VALID_BROWSERS:
        raise ValueError(
            f"Invalid browser '{browser}' in {context} ({source}). "
            f"Must be one of: {', '.join(sorted(VALID_BROWSERS))}"
        )
    return ViewportBrowser(
        width=_as_int(data["width"], f"{context}.width", source),
        height=_as_int(data["height"], f"{context}.height", source),
        browser=BrowserKind(browser),
    )


def apply_env_overrides(settings: SuiteSettings, env: Mapping[str, str]) -> SuiteSettings:
    """Apply environment variables on top of file settings."""
    if env.get(ENV_PARALLEL):
        parallel = parse_bool(env[ENV_PARALLEL], ENV_PARALLEL)
        settings.mode = RunMode.PARALLEL if parallel else RunMode.LOCAL
    if env.get(ENV_BASE_URL):
        settings.base_url = env[ENV_BASE_URL]
    if env.get(ENV_CONCURRENCY):
        settings.concurrency = _as_int(env[ENV_CONCURRENCY], ENV_CONCURRENCY, "environment")
    if env.get(ENV_BATCH_ID):
        settings.batch_id = env[ENV_BATCH_ID]
    if env.get(ENV_API_KEY):
        settings.api_key = env[ENV_API_KEY].strip()
    if env.get(ENV_SERVER_URL):
        settings.server_url = env[ENV_SERVER_URL]

    return settings


def parse_bool(value: str, name: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got '{value}'")


def _as_bool(value: Any, context: str, source: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return parse_bool(value, f"'{context}' in {source}")
    raise ValueError(f"'{context}' must be a boolean in {source}, got {value!r}")


def _as_int(value: Any, context: str, source: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"'{context}' must be an integer in {source}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{context}' must be an integer in {source}, got {value!r}")


def _require_fields(
    data: dict, fields: list[str], context: str, source: str
) -> None:
    """Check that required fields exist in a dictionary."""
    for field_name in fields:
        if field_name not in data:
            raise ValueError(
                f"Missing required field '{field_name}' in {context} ({source})"
            )
