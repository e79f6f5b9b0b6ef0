"""
Values -- Immutable domain value objects for the payment gate.

Responsibility:
    Provides the small set of value types every other kernel module speaks:
    Period, Classification, LedgerKey and the two enums that name
    participant classes and action kinds.  Also owns amount coercion so that
    monetary values are always ``Decimal``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Period.month is always within 1..12 (InvalidMonthError otherwise).
    - Amounts are Decimal; float and bool inputs are rejected with TypeError.
    - Classification.expires_at is timezone-aware.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from paygate_kernel.exceptions import InvalidMonthError


class ParticipantKind(str, Enum):
    """Class an identity oracle assigns to an account."""

    PAYER = "payer"
    PAYEE = "payee"
    OTHER = "other"


class ActionKind(str, Enum):
    """The two actions the gateway settles once per period."""

    FEE = "fee"
    PAYOUT = "payout"


@dataclass(frozen=True, slots=True)
class Period:
    """
    Accounting period identified by (month, year).

    Contract:
        Exactly one Period is live at a time (owned by PeriodState).  Periods
        are hashable and form part of ledger keys.

    Guarantees:
        - 1 <= month <= 12
        - ``code`` is ``YYYY-MM``, sortable and unique per period.

    Non-goals:
        - Does NOT check the deployment year floor; PeriodState does.
    """

    month: int
    year: int

    def __post_init__(self) -> None:
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise TypeError(f"month must be int, got {type(self.month).__name__}")
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise TypeError(f"year must be int, got {type(self.year).__name__}")
        if not 1 <= self.month <= 12:
            raise InvalidMonthError(self.month)

    @property
    def code(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def with_month(self, month: int) -> Period:
        return Period(month=month, year=self.year)

    def with_year(self, year: int) -> Period:
        return Period(month=self.month, year=year)

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True, slots=True)
class Classification:
    """
    An identity oracle's verdict on an account.

    Not stored by the kernel; fetched fresh on every gated call.
    """

    kind: ParticipantKind
    expires_at: datetime
    suspended: bool = False

    def __post_init__(self) -> None:
        if self.expires_at.tzinfo is None:
            raise ValueError("Classification.expires_at must be timezone-aware")

    def is_current(self, now: datetime) -> bool:
        """True while the classification has not yet expired."""
        return self.expires_at > now


@dataclass(frozen=True, slots=True)
class LedgerKey:
    """Composite key of a ledger entry: (account, period, kind)."""

    account: str
    period: Period
    kind: ActionKind


def to_amount(value: Any) -> Decimal:
    """
    Coerce a monetary input to Decimal.

    Accepts Decimal, int and numeric strings.  Floats are refused because
    their binary representation cannot be compared exactly against a
    configured fee.

    Raises:
        TypeError: For float, bool or other non-numeric types.
        ValueError: For strings that are not numbers, NaN or infinity.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Amount must be Decimal, int or str, got {type(value).__name__}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Not a valid amount: {value!r}") from exc
    else:
        raise TypeError(f"Amount must be Decimal, int or str, got {type(value).__name__}")
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return amount
