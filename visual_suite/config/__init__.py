"""Config module - suite settings and run configuration."""

from .schema import (
    BatchDescriptor,
    BrowserKind,
    BrowserTarget,
    DeviceEmulation,
    LOCAL_TARGET,
    Orientation,
    RunConfiguration,
    RunMode,
    SuiteSettings,
    UnclosedPolicy,
    ValidationError,
    ValidationResult,
    ViewportBrowser,
    build_run_configuration,
    default_batch_name,
    default_browser_targets,
)
from .parser import load_settings, parse_settings_data, parse_settings_file
from .validator import validate_settings

__all__ = [
    "BatchDescriptor",
    "BrowserKind",
    "BrowserTarget",
    "DeviceEmulation",
    "LOCAL_TARGET",
    "Orientation",
    "RunConfiguration",
    "RunMode",
    "SuiteSettings",
    "UnclosedPolicy",
    "ValidationError",
    "ValidationResult",
    "ViewportBrowser",
    "build_run_configuration",
    "default_batch_name",
    "default_browser_targets",
    "load_settings",
    "parse_settings_data",
    "parse_settings_file",
    "validate_settings",
]
