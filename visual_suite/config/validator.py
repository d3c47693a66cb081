"""Suite settings validator.

Validates parsed SuiteSettings against the rules the visual testing
service enforces, before any browser is launched.
"""

from urllib.parse import urlparse

from .schema import (
    DeviceEmulation,
    RunMode,
    SuiteSettings,
    ValidationError,
    ValidationResult,
    ViewportBrowser,
)

# Largest viewport the rendering grid accepts
MAX_VIEWPORT_SIZE = 5000


def validate_settings(settings: SuiteSettings) -> ValidationResult:
    """Validate suite settings.

    Checks:
    - App name and base URL
    - Batch naming
    - Concurrency and targets per run mode

    Args:
        settings: Parsed SuiteSettings to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []

    _validate_app(settings, errors, warnings)
    _validate_batch(settings, errors, warnings)
    _validate_mode(settings, errors, warnings)
    _validate_targets(settings, errors, warnings)

    if not settings.api_key:
        warnings.append(ValidationError(
            path="api_key",
            message="No API key configured. Set APPLITOOLS_API_KEY before running.",
            severity="warning",
        ))

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_app(
    settings: SuiteSettings,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if not settings.app_name:
        errors.append(ValidationError(
            path="app",
            message="'app' is required and must not be empty.",
        ))

    parsed = urlparse(settings.base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        errors.append(ValidationError(
            path="base_url",
            message=f"Invalid base URL '{settings.base_url}'. Expected http(s)://host[:port].",
        ))


def _validate_batch(
    settings: SuiteSettings,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if settings.batch_name is not None and not settings.batch_name.strip():
        warnings.append(ValidationError(
            path="batch.name",
            message="Empty batch name. Results will be hard to find in the dashboard.",
            severity="warning",
        ))

    if settings.batch_id is not None and not settings.batch_id.strip():
        errors.append(ValidationError(
            path="batch.id",
            message="'batch.id' must not be blank when set.",
        ))


def _validate_mode(
    settings: SuiteSettings,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if settings.mode is RunMode.PARALLEL:
        if settings.concurrency < 1:
            errors.append(ValidationError(
                path="concurrency",
                message=f"Concurrency must be at least 1, got {settings.concurrency}.",
            ))
        elif settings.concurrency == 1:
            warnings.append(ValidationError(
                path="concurrency",
                message="Concurrency 1 renders checkpoints one at a time.",
                severity="warning",
            ))
    elif settings.targets:
        warnings.append(ValidationError(
            path="targets",
            message=f"{len(settings.targets)} targets are ignored in local mode.",
            severity="warning",
        ))


def _validate_targets(
    settings: SuiteSettings,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    seen: set[str] = set()

    for i, target in enumerate(settings.targets):
        path = f"targets[{i}]"

        if isinstance(target, ViewportBrowser):
            for name in ("width", "height"):
                value = getattr(target, name)
                if value <= 0 or value > MAX_VIEWPORT_SIZE:
                    errors.append(ValidationError(
                        path=f"{path}.{name}",
                        message=f"Viewport {name} must be between 1 and {MAX_VIEWPORT_SIZE}, got {value}.",
                    ))
        elif isinstance(target, DeviceEmulation):
            if not target.device_name.strip():
                errors.append(ValidationError(
                    path=f"{path}.device",
                    message="'device' must not be empty.",
                ))

        if target.label in seen:
            warnings.append(ValidationError(
                path=path,
                message=f"Duplicate target '{target.label}'.",
                severity="warning",
            ))
        seen.add(target.label)
