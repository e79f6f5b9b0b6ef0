"""
PaymentGateway -- the period-keyed, eligibility-gated payment state machine.

Responsibility:
    Exposes the two participant actions, ``collect_fee`` and ``disburse``,
    and runs each as a short pipeline with short-circuit failure:

        1. classify      oracle classification, expiry gate
        2. class         caller class must equal the action's class
        3. standing      suspended callers are refused
        4. ledger        one settlement per (account, period, kind)
        5. value         collect_fee only: value == fee_amount exactly
        6. transfer      retain the fee / send the payout
        7. commit        mark the ledger slot settled

Architecture position:
    Kernel > Services -- imperative shell.  Orchestrates PeriodState,
    AdminConfig, PaymentLedger, EligibilityOracleClient and a
    FundsTransfer.  Holds no state of its own beyond the lock.

Invariants enforced:
    - At most one successful collect_fee and one successful disburse per
      (account, period).  A repeat fails AlreadySettledError before any
      value moves.
    - The ledger is marked only after the transfer succeeded, and marking is
      the last step.  TransferFailedError leaves every piece of kernel state
      untouched.
    - Steps 1-7 run under one lock together with the Period/Config reads,
      so two concurrent calls for the same slot cannot both pass step 4.
    - FeeCollected / PayoutDisbursed are published before the lock is
      released, in settlement order.

Failure modes:
    - OracleUnavailableError, AttributeExpiredError        (step 1)
    - WrongParticipantClassError                           (step 2)
    - SuspendedParticipantError                            (step 3)
    - AlreadySettledError                                  (step 4)
    - IncorrectAmountError                                 (step 5)
    - TransferFailedError                                  (step 6)

Audit relevance:
    Every rejection is logged at WARNING with the error code; every
    settlement is logged and published as FeeCollected / PayoutDisbursed.
    Records carry the bound account, action and period_code.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from paygate_kernel.domain.clock import Clock, SystemClock
from paygate_kernel.domain.eligibility import (
    caller_class_matches_required,
    required_class_for,
)
from paygate_kernel.domain.notifications import FeeCollected, PayoutDisbursed
from paygate_kernel.domain.values import ActionKind, Period, to_amount
from paygate_kernel.exceptions import (
    AlreadySettledError,
    IncorrectAmountError,
    PaygateError,
    SuspendedParticipantError,
    TransferFailedError,
    WrongParticipantClassError,
)
from paygate_kernel.logging_config import LogContext, get_logger
from paygate_kernel.services.admin_config import AdminConfig
from paygate_kernel.services.funds_transfer import FundsTransfer
from paygate_kernel.services.notification_bus import NotificationBus
from paygate_kernel.services.oracle_client import EligibilityOracleClient
from paygate_kernel.services.payment_ledger import PaymentLedger
from paygate_kernel.services.period_state import PeriodState

logger = get_logger("services.gateway")

_SETTLED = {ActionKind.FEE: FeeCollected, ActionKind.PAYOUT: PayoutDisbursed}


@dataclass(frozen=True)
class SettlementReceipt:
    """Proof that one (account, period, kind) slot was settled."""

    account: str
    period: Period
    kind: ActionKind
    amount: Decimal
    settled_at: datetime


class PaymentGateway:
    """
    Facade for the two gated actions.

    Contract:
        Each call is evaluated from the current Config, Period and a fresh
        oracle classification.  There is no session state between calls.
    """

    def __init__(
        self,
        period_state: PeriodState,
        config: AdminConfig,
        ledger: PaymentLedger,
        oracle_client: EligibilityOracleClient,
        funds: FundsTransfer,
        clock: Clock | None = None,
        notifications: NotificationBus | None = None,
        lock: threading.RLock | None = None,
    ):
        self._period_state = period_state
        self._config = config
        self._ledger = ledger
        self._oracle = oracle_client
        self._funds = funds
        self._clock = clock or SystemClock()
        self._notifications = notifications or NotificationBus()
        self._lock = lock or threading.RLock()

    def collect_fee(self, caller: str, value: Any) -> SettlementReceipt:
        """
        Accept this period's fee from a payer.

        ``value`` is the amount that arrived with the call.  It must equal
        the configured fee exactly; on success it is retained.  A value that
        is not a Decimal-compatible number (a float, say) is an incorrect
        amount like any other.
        """
        return self._settle(caller, ActionKind.FEE, value)

    def disburse(self, caller: str) -> SettlementReceipt:
        """Pay this period's payout amount to a payee."""
        return self._settle(caller, ActionKind.PAYOUT)

    def is_settled_current(self, account: str, kind: ActionKind) -> bool:
        """Whether ``account`` already settled ``kind`` in the live period."""
        with self._lock:
            return self._ledger.is_settled(account, self._period_state.current(), kind)

    def _settle(self, caller: str, kind: ActionKind, value: Any = None) -> SettlementReceipt:
        with self._lock:
            period = self._period_state.current()
            with LogContext.bind(account=caller, action=kind.value, period_code=period.code):
                try:
                    receipt = self._run_pipeline(caller, kind, value, period)
                except PaygateError as exc:
                    logger.warning(
                        "settlement_rejected",
                        extra={"error_code": exc.code, "reason": str(exc)},
                    )
                    raise

                logger.info("settlement_completed", extra={"amount": receipt.amount})
                self._notifications.publish(
                    _SETTLED[kind](account=caller, period_code=period.code, amount=receipt.amount)
                )
        return receipt

    def _run_pipeline(
        self, caller: str, kind: ActionKind, value: Any, period: Period
    ) -> SettlementReceipt:
        # 1. classify
        classification = self._oracle.classify(caller)
        self._oracle.ensure_current(caller, classification)

        # 2. class
        required = required_class_for(kind)
        if not caller_class_matches_required(classification.kind, required):
            raise WrongParticipantClassError(caller, required.value, classification.kind.value)

        # 3. standing
        if classification.suspended:
            raise SuspendedParticipantError(caller)

        # 4. ledger
        if self._ledger.is_settled(caller, period, kind):
            raise AlreadySettledError(caller, period.code, kind.value)

        # 5. value
        config = self._config.snapshot()
        if kind is ActionKind.FEE:
            try:
                amount = to_amount(value)
            except (TypeError, ValueError) as exc:
                raise IncorrectAmountError(caller, config.fee_amount, value) from exc
            if amount != config.fee_amount:
                raise IncorrectAmountError(caller, config.fee_amount, amount)
        else:
            amount = config.payout_amount

        # 6. transfer
        if kind is ActionKind.FEE:
            moved = self._funds.retain(caller, amount)
        else:
            moved = self._funds.send(caller, amount)
        if not moved:
            raise TransferFailedError(caller, amount)

        # 7. commit
        settled_at = self._clock.now()
        self._ledger.mark_settled(caller, period, kind, settled_at)
        return SettlementReceipt(
            account=caller,
            period=period,
            kind=kind,
            amount=amount,
            settled_at=settled_at,
        )
