"""
Module: paygate_kernel.models.ledger_entry
Responsibility: ORM persistence for settled ledger slots.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per settled (account, year, month, kind): uq_ledger_slot.
    - Rows are never deleted or updated.  Absence of a row means unsettled.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from paygate_kernel.db.base import Base


class LedgerEntry(Base):
    """
    A settled (account, period, kind) slot.

    Non-goals:
        - Does NOT store an "unsettled" state; the SQL ledger inserts a row
          only after the funds transfer succeeded.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        UniqueConstraint("account", "year", "month", "kind", name="uq_ledger_slot"),
    )

    account: Mapped[str] = mapped_column(String(128), nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    # "fee" or "payout"
    kind: Mapped[str] = mapped_column(String(16), nullable=False)

    settled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.account} {self.year:04d}-{self.month:02d} {self.kind}>"
