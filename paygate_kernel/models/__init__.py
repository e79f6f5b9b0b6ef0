"""ORM models.  Importing this package registers every table on Base.metadata."""

from paygate_kernel.models.ledger_entry import LedgerEntry
from paygate_kernel.models.period_marker import LIVE_SLOT, PeriodMarker

__all__ = ["LIVE_SLOT", "LedgerEntry", "PeriodMarker"]
