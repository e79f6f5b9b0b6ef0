"""
AdminConfig -- administrator-owned configurable scalars.

Responsibility:
    Holds the fee amount, payout amount and oracle reference read by the
    gateway on every call, and validates admin updates to them.

Architecture position:
    Kernel > Services.  Exclusively owned by the administrative surface;
    read-shared with PaymentGateway and EligibilityOracleClient through
    ``snapshot()`` and the read-only properties.

Invariants enforced:
    - fee_amount > 0 and payout_amount > 0 (ZeroAmountError).
    - oracle_reference is a non-blank string (InvalidReferenceError).
    - The initial values obey the same rules.
    - A rejected update leaves Config unchanged and emits nothing.
    - Change notifications are published before the lock is released, so
      observers receive them in commit order.

Failure modes:
    - UnauthorizedError: caller lacks the admin capability.
    - ZeroAmountError / InvalidReferenceError: invalid value.
    - TypeError / ValueError: amount is not a Decimal-compatible number.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from paygate_kernel.domain.notifications import (
    FeeAmountChanged,
    OracleReferenceChanged,
    PayoutAmountChanged,
)
from paygate_kernel.domain.values import to_amount
from paygate_kernel.exceptions import InvalidReferenceError, ZeroAmountError
from paygate_kernel.logging_config import LogContext, get_logger
from paygate_kernel.services.access_control import AdminAuthority, require_admin
from paygate_kernel.services.notification_bus import NotificationBus

logger = get_logger("services.admin_config")


@dataclass(frozen=True)
class ConfigSnapshot:
    """Immutable view of Config at one instant."""

    fee_amount: Decimal
    payout_amount: Decimal
    oracle_reference: str


def _positive_amount(field: str, value: Any) -> Decimal:
    amount = to_amount(value)
    if amount <= 0:
        raise ZeroAmountError(field, amount)
    return amount


def _valid_reference(reference: Any) -> str:
    if not isinstance(reference, str) or not reference.strip():
        raise InvalidReferenceError(reference)
    return reference.strip()


class AdminConfig:
    def __init__(
        self,
        fee_amount: Any,
        payout_amount: Any,
        oracle_reference: str,
        authority: AdminAuthority,
        notifications: NotificationBus | None = None,
        lock: threading.RLock | None = None,
    ):
        self._fee_amount = _positive_amount("fee_amount", fee_amount)
        self._payout_amount = _positive_amount("payout_amount", payout_amount)
        self._oracle_reference = _valid_reference(oracle_reference)
        self._authority = authority
        self._notifications = notifications or NotificationBus()
        self._lock = lock or threading.RLock()

    @property
    def fee_amount(self) -> Decimal:
        with self._lock:
            return self._fee_amount

    @property
    def payout_amount(self) -> Decimal:
        with self._lock:
            return self._payout_amount

    @property
    def oracle_reference(self) -> str:
        with self._lock:
            return self._oracle_reference

    def snapshot(self) -> ConfigSnapshot:
        with self._lock:
            return ConfigSnapshot(
                fee_amount=self._fee_amount,
                payout_amount=self._payout_amount,
                oracle_reference=self._oracle_reference,
            )

    def set_fee(self, caller: str, amount: Any) -> Decimal:
        """Set the exact value every payer must supply to collect_fee."""
        with LogContext.bind(actor_id=caller):
            require_admin(self._authority, caller)
            value = _positive_amount("fee_amount", amount)
            with self._lock:
                self._fee_amount = value
                logger.info("fee_amount_set", extra={"amount": value})
                self._notifications.publish(FeeAmountChanged(amount=value))
        return value

    def set_payout(self, caller: str, amount: Any) -> Decimal:
        """Set the amount disbursed to each payee once per period."""
        with LogContext.bind(actor_id=caller):
            require_admin(self._authority, caller)
            value = _positive_amount("payout_amount", amount)
            with self._lock:
                self._payout_amount = value
                logger.info("payout_amount_set", extra={"amount": value})
                self._notifications.publish(PayoutAmountChanged(amount=value))
        return value

    def set_oracle(self, caller: str, reference: str) -> str:
        """Point eligibility checks at a different identity oracle."""
        with LogContext.bind(actor_id=caller):
            require_admin(self._authority, caller)
            value = _valid_reference(reference)
            with self._lock:
                self._oracle_reference = value
                logger.info("oracle_reference_set", extra={"reference": value})
                self._notifications.publish(OracleReferenceChanged(reference=value))
        return value
