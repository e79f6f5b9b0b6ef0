"""
Module: paygate_kernel.models.period_marker
Responsibility: ORM persistence for the single live accounting period.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one row exists (slot is unique and always LIVE_SLOT).
"""

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from paygate_kernel.db.base import TrackedBase

LIVE_SLOT = "live"


class PeriodMarker(TrackedBase):
    """The live (month, year) pair."""

    __tablename__ = "period_markers"

    __table_args__ = (UniqueConstraint("slot", name="uq_period_marker_slot"),)

    slot: Mapped[str] = mapped_column(String(16), nullable=False, default=LIVE_SLOT)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<PeriodMarker {self.year:04d}-{self.month:02d}>"
