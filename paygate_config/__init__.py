"""
paygate_config -- single public entrypoint for deployment settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  Returns validated, frozen
    ``GatewaySettings``.  ``paygate_config.bridges`` turns them into a
    running PaymentSystem.

Architecture position:
    Configuration -- sits above ``paygate_kernel``.  The kernel MUST NEVER
    import from ``paygate_config``.

Failure modes:
    - ``FileNotFoundError`` -- settings file missing.
    - ``KeyError`` / ``ValueError`` -- parse or validation failures.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``PAYGATE_CONFIG_TRACE`` log entry with settings_id, version and
    checksum, tying every settlement to the settings that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from paygate_config.loader import load_settings
from paygate_config.schema import GatewaySettings
from paygate_config.validator import ConfigValidationResult, validate_settings

_logger = logging.getLogger("paygate_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_settings(path: Path | None = None) -> GatewaySettings:
    """
    Load, validate and return deployment settings.

    Args:
        path: YAML settings file.  Defaults to ``sets/default.yaml``.

    Raises:
        ValueError: If validation reports any error.
    """
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = load_settings(settings_path)

    result = validate_settings(settings)
    if not result.is_valid:
        raise ValueError(
            f"Settings {settings.settings_id} failed validation: "
            + "; ".join(result.errors)
        )
    for warning in result.warnings:
        _logger.warning("settings_warning", extra={"warning": warning})

    _logger.info(
        "PAYGATE_CONFIG_TRACE",
        extra={
            "settings_id": settings.settings_id,
            "version": settings.version,
            "checksum": settings.checksum,
            "path": str(settings_path),
            "administrator_count": len(settings.administrators),
        },
    )
    return settings


__all__ = [
    "ConfigValidationResult",
    "DEFAULT_SETTINGS_PATH",
    "GatewaySettings",
    "get_active_settings",
    "validate_settings",
]
