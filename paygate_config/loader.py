"""
Settings Loader (``paygate_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``paygate_config.schema`` dataclasses.  Services never call this directly;
the runtime entry point is ``paygate_config.get_active_settings()``.

Invariants enforced
-------------------
* No silent defaults for required fields: missing keys raise ``KeyError``.
* Amounts are parsed as ``Decimal`` from strings or integers, never floats.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-numeric amounts, float amounts  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from paygate_config.schema import (
    GatewaySettings,
    OracleSettings,
    PeriodSettings,
    PersistenceSettings,
    TreasurySettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_amount(value: Any, field: str) -> Decimal:
    """Parse a monetary amount.  YAML floats are refused; quote decimals."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{field}: amounts must be integers or quoted decimals, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field}: not a valid amount: {value!r}") from exc


def parse_period(data: dict[str, Any]) -> PeriodSettings:
    return PeriodSettings(
        month=int(data["month"]),
        year=int(data["year"]),
        year_floor=int(data["year_floor"]),
    )


def parse_oracle(data: dict[str, Any]) -> OracleSettings:
    return OracleSettings(
        reference=str(data["reference"]),
        timeout_seconds=float(data.get("timeout_seconds", 5.0)),
    )


def parse_treasury(data: dict[str, Any] | None) -> TreasurySettings:
    if not data:
        return TreasurySettings()
    return TreasurySettings(
        opening_balance=parse_amount(
            data.get("opening_balance", 0), "treasury.opening_balance"
        ),
        transfer_url=data.get("transfer_url") or None,
        timeout_seconds=float(data.get("timeout_seconds", 10.0)),
    )


def parse_persistence(data: dict[str, Any] | None) -> PersistenceSettings:
    if not data:
        return PersistenceSettings()
    return PersistenceSettings(database_url=data.get("database_url") or None)


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a settings document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_settings(data: dict[str, Any]) -> GatewaySettings:
    """
    Parse a ``GatewaySettings`` from a settings document.

    Raises:
        KeyError: if required keys are missing.
        ValueError: if an amount or number cannot be parsed.
    """
    amounts = data["amounts"]
    logging_data = data.get("logging") or {}
    return GatewaySettings(
        settings_id=str(data["settings_id"]),
        version=int(data.get("version", 1)),
        fee_amount=parse_amount(amounts["fee"], "amounts.fee"),
        payout_amount=parse_amount(amounts["payout"], "amounts.payout"),
        administrators=tuple(str(a) for a in data["administrators"]),
        period=parse_period(data["period"]),
        oracle=parse_oracle(data["oracle"]),
        treasury=parse_treasury(data.get("treasury")),
        persistence=parse_persistence(data.get("persistence")),
        log_level=str(logging_data.get("level", "INFO")).upper(),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> GatewaySettings:
    """Load and parse a YAML settings file (no validation)."""
    return parse_settings(load_yaml_file(path))
