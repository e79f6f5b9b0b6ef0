"""
Settings Validator (``paygate_config.validator``).

Responsibility
--------------
Checks a parsed ``GatewaySettings`` before anything is wired from it.  The
kernel re-validates every value at construction; this pass reports all
problems at once, with the settings path in each message, instead of
failing on the first.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> the settings
  MUST NOT be used.
* Validation warnings  -> usable, but should be reviewed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from paygate_config.schema import GatewaySettings

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


@dataclass
class ConfigValidationResult:
    """
    Result of settings validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_settings(settings: GatewaySettings) -> ConfigValidationResult:
    """Validate a settings set.  Settings with errors MUST NOT be wired."""
    result = ConfigValidationResult()

    _validate_amounts(settings, result)
    _validate_period(settings, result)
    _validate_oracle(settings, result)
    _validate_administrators(settings, result)
    _validate_treasury(settings, result)

    if settings.log_level not in _LOG_LEVELS:
        result.add_error(f"logging.level: unknown level {settings.log_level!r}")

    return result


def _validate_amounts(settings: GatewaySettings, result: ConfigValidationResult) -> None:
    if settings.fee_amount <= 0:
        result.add_error(f"amounts.fee: must be greater than zero, got {settings.fee_amount}")
    if settings.payout_amount <= 0:
        result.add_error(
            f"amounts.payout: must be greater than zero, got {settings.payout_amount}"
        )


def _validate_period(settings: GatewaySettings, result: ConfigValidationResult) -> None:
    period = settings.period
    if not 1 <= period.month <= 12:
        result.add_error(f"period.month: must be between 1 and 12, got {period.month}")
    if period.year <= period.year_floor:
        result.add_error(
            f"period.year: must be greater than year_floor {period.year_floor}, "
            f"got {period.year}"
        )


def _validate_oracle(settings: GatewaySettings, result: ConfigValidationResult) -> None:
    if not settings.oracle.reference.strip():
        result.add_error("oracle.reference: must not be empty")
    if settings.oracle.timeout_seconds <= 0:
        result.add_error("oracle.timeout_seconds: must be positive")


def _validate_administrators(
    settings: GatewaySettings, result: ConfigValidationResult
) -> None:
    admins = [a for a in settings.administrators if a.strip()]
    if not admins:
        result.add_error("administrators: at least one administrator is required")
    if len(set(admins)) != len(admins):
        result.add_warning("administrators: duplicate entries")


def _validate_treasury(settings: GatewaySettings, result: ConfigValidationResult) -> None:
    treasury = settings.treasury
    if treasury.opening_balance < 0:
        result.add_error("treasury.opening_balance: must not be negative")
    if treasury.timeout_seconds <= 0:
        result.add_error("treasury.timeout_seconds: must be positive")
    if treasury.transfer_url is None and treasury.opening_balance < settings.payout_amount:
        result.add_warning(
            "treasury.opening_balance: below one payout; disbursements will be "
            "declined until fees are collected"
        )
