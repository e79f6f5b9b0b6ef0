"""
PaymentLedger -- per-(account, period, kind) settlement flags.

Responsibility:
    Records that a fee was collected from, or a payout disbursed to, an
    account in a given period, and answers whether that already happened.

Architecture position:
    Kernel > Services.  Exclusively owns ledger state.  Written only by
    PaymentGateway, after a successful funds transfer.

Invariants enforced:
    - Absent key means unsettled; there is no explicit "false" entry.
    - mark_settled is idempotent in effect: marking twice leaves one entry.
    - No deletion operation exists.  A new period is a new key, so slots
      "reset" only by the live period moving on.
    - Lookups are O(1) amortized over a sparse key space: a hash set in
      memory, a unique-indexed table in SQL.

Failure modes:
    - SQL errors other than the duplicate-slot IntegrityError propagate.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from paygate_kernel.db.engine import session_scope
from paygate_kernel.domain.values import ActionKind, LedgerKey, Period
from paygate_kernel.logging_config import get_logger
from paygate_kernel.models.ledger_entry import LedgerEntry

logger = get_logger("services.ledger")


class PaymentLedger(Protocol):
    def is_settled(self, account: str, period: Period, kind: ActionKind) -> bool: ...

    def mark_settled(
        self,
        account: str,
        period: Period,
        kind: ActionKind,
        settled_at: datetime | None = None,
    ) -> None: ...

    def settled_count(self, period: Period, kind: ActionKind) -> int: ...


class InMemoryPaymentLedger:
    """Hash-set ledger keyed by ``LedgerKey``."""

    def __init__(self) -> None:
        self._settled: dict[LedgerKey, datetime] = {}
        self._lock = threading.Lock()

    def is_settled(self, account: str, period: Period, kind: ActionKind) -> bool:
        with self._lock:
            return LedgerKey(account, period, kind) in self._settled

    def mark_settled(
        self,
        account: str,
        period: Period,
        kind: ActionKind,
        settled_at: datetime | None = None,
    ) -> None:
        key = LedgerKey(account, period, kind)
        with self._lock:
            if key in self._settled:
                logger.debug("ledger_slot_already_marked", extra={"period_code": period.code})
                return
            self._settled[key] = settled_at or datetime.now(timezone.utc)
        logger.debug(
            "ledger_slot_marked",
            extra={"ledger_account": account, "period_code": period.code, "kind": kind.value},
        )

    def settled_count(self, period: Period, kind: ActionKind) -> int:
        with self._lock:
            return sum(1 for k in self._settled if k.period == period and k.kind == kind)

    def __len__(self) -> int:
        with self._lock:
            return len(self._settled)


class SqlPaymentLedger:
    """
    Ledger backed by the ``ledger_entries`` table.

    Each call runs in its own short transaction.  A duplicate insert hits
    uq_ledger_slot and is treated as "already marked".
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def is_settled(self, account: str, period: Period, kind: ActionKind) -> bool:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                select(LedgerEntry.id).where(
                    LedgerEntry.account == account,
                    LedgerEntry.year == period.year,
                    LedgerEntry.month == period.month,
                    LedgerEntry.kind == kind.value,
                )
            ).first()
            return row is not None

    def mark_settled(
        self,
        account: str,
        period: Period,
        kind: ActionKind,
        settled_at: datetime | None = None,
    ) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.add(
                    LedgerEntry(
                        account=account,
                        year=period.year,
                        month=period.month,
                        kind=kind.value,
                        settled_at=settled_at or datetime.now(timezone.utc),
                    )
                )
        except IntegrityError:
            logger.debug("ledger_slot_already_marked", extra={"period_code": period.code})
            return
        logger.debug(
            "ledger_slot_marked",
            extra={"ledger_account": account, "period_code": period.code, "kind": kind.value},
        )

    def settled_count(self, period: Period, kind: ActionKind) -> int:
        with session_scope(self._session_factory) as session:
            return session.execute(
                select(func.count(LedgerEntry.id)).where(
                    LedgerEntry.year == period.year,
                    LedgerEntry.month == period.month,
                    LedgerEntry.kind == kind.value,
                )
            ).scalar_one()
