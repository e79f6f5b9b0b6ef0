"""
Notifications -- structured change records for external observers.

Responsibility:
    Defines the immutable records the kernel publishes whenever Config,
    the live Period, or the ledger changes.  Each record carries enough data
    for an observer to rebuild current Config/Period without re-querying.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Delivered by
    ``paygate_kernel.services.notification_bus.NotificationBus``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, ClassVar


@dataclass(frozen=True)
class Notification:
    """Base record. ``name`` is stable and used as the log message."""

    name: ClassVar[str] = "notification"

    def to_payload(self) -> dict[str, Any]:
        return {"notification": self.name, **asdict(self)}


@dataclass(frozen=True)
class FeeAmountChanged(Notification):
    name: ClassVar[str] = "fee_amount_changed"

    amount: Decimal


@dataclass(frozen=True)
class PayoutAmountChanged(Notification):
    name: ClassVar[str] = "payout_amount_changed"

    amount: Decimal


@dataclass(frozen=True)
class CurrentMonthChanged(Notification):
    name: ClassVar[str] = "current_month_changed"

    month: int


@dataclass(frozen=True)
class CurrentYearChanged(Notification):
    name: ClassVar[str] = "current_year_changed"

    year: int


@dataclass(frozen=True)
class OracleReferenceChanged(Notification):
    name: ClassVar[str] = "oracle_reference_changed"

    reference: str


@dataclass(frozen=True)
class PaymentReminder(Notification):
    """Emitted alongside every month change: a new fee/payout slot is open."""

    name: ClassVar[str] = "payment_reminder"


@dataclass(frozen=True)
class FeeCollected(Notification):
    name: ClassVar[str] = "fee_collected"

    account: str
    period_code: str
    amount: Decimal


@dataclass(frozen=True)
class PayoutDisbursed(Notification):
    name: ClassVar[str] = "payout_disbursed"

    account: str
    period_code: str
    amount: Decimal
