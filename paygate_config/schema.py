"""
GatewaySettings schema.

Defines the human-authored, reviewable deployment settings for one payment
gate.  YAML files are parsed into these types by the loader, checked by the
validator and turned into a running PaymentSystem by the bridges.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PeriodSettings:
    """Initial live period and the fixed year floor."""

    month: int
    year: int
    year_floor: int


@dataclass(frozen=True)
class OracleSettings:
    reference: str
    timeout_seconds: float = 5.0


@dataclass(frozen=True)
class TreasurySettings:
    """Where payouts come from.  No transfer_url means an in-process Treasury."""

    opening_balance: Decimal = Decimal("0")
    transfer_url: str | None = None
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class PersistenceSettings:
    """No database_url means the ledger and period live in memory only."""

    database_url: str | None = None


@dataclass(frozen=True)
class GatewaySettings:
    settings_id: str
    version: int
    fee_amount: Decimal
    payout_amount: Decimal
    administrators: tuple[str, ...]
    period: PeriodSettings
    oracle: OracleSettings
    treasury: TreasurySettings = TreasurySettings()
    persistence: PersistenceSettings = PersistenceSettings()
    log_level: str = "INFO"
    checksum: str = ""
