"""
Funds transfer primitives.

Responsibility:
    Moves value for the gateway.  ``send`` pays an account out;
    ``retain`` keeps value that arrived bundled with a fee call.  Both report
    success as a boolean; custody and settlement are the implementation's
    business.

Architecture position:
    Kernel > Services.  Injected into PaymentGateway.  Nothing else in the
    kernel moves money.

Invariants enforced:
    - A transfer that reports False (or raises TransferFailedError) has
      moved nothing.
    - Treasury never goes negative: a payout larger than the balance is
      declined.
    - HTTP calls are bounded by a timeout; a timeout is a failed transfer.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

import httpx

from paygate_kernel.domain.values import to_amount
from paygate_kernel.exceptions import TransferFailedError
from paygate_kernel.logging_config import get_logger

logger = get_logger("services.funds")


class FundsTransfer(Protocol):
    def send(self, to: str, amount: Decimal) -> bool: ...

    def retain(self, source: str, amount: Decimal) -> bool: ...


class TransferDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass(frozen=True)
class TransferRecord:
    direction: TransferDirection
    account: str
    amount: Decimal


class Treasury:
    """
    In-process custody account.

    Retained fees raise the balance; payouts draw it down.  The balance is
    the gateway's only source of payout funds.
    """

    def __init__(self, opening_balance: Any = 0):
        balance = to_amount(opening_balance)
        if balance < 0:
            raise ValueError(f"Opening balance cannot be negative: {balance}")
        self._balance = balance
        self._records: list[TransferRecord] = []
        self._lock = threading.Lock()

    @property
    def balance(self) -> Decimal:
        with self._lock:
            return self._balance

    @property
    def records(self) -> tuple[TransferRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def deposit(self, amount: Any) -> Decimal:
        """Top up payout funds from outside the fee flow."""
        value = to_amount(amount)
        if value <= 0:
            raise ValueError(f"Deposit must be positive: {value}")
        with self._lock:
            self._balance += value
            balance = self._balance
        logger.info("treasury_deposit", extra={"amount": value, "balance": balance})
        return balance

    def send(self, to: str, amount: Decimal) -> bool:
        with self._lock:
            if amount <= 0 or amount > self._balance:
                logger.warning(
                    "treasury_payout_declined",
                    extra={"to": to, "amount": amount, "balance": self._balance},
                )
                return False
            self._balance -= amount
            self._records.append(TransferRecord(TransferDirection.OUTBOUND, to, amount))
        return True

    def retain(self, source: str, amount: Decimal) -> bool:
        if amount <= 0:
            return False
        with self._lock:
            self._balance += amount
            self._records.append(TransferRecord(TransferDirection.INBOUND, source, amount))
        return True


class HttpFundsTransfer:
    """
    Transfer service reached over HTTP.

    ``POST {base_url}/transfers`` with ``{"direction", "account", "amount"}``.
    2xx with ``{"status": "completed"}`` is success; any other 2xx status
    or a 4xx is a declined transfer.  Timeouts, transport errors and 5xx
    raise TransferFailedError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    def send(self, to: str, amount: Decimal) -> bool:
        return self._post(TransferDirection.OUTBOUND, to, amount)

    def retain(self, source: str, amount: Decimal) -> bool:
        return self._post(TransferDirection.INBOUND, source, amount)

    def _post(self, direction: TransferDirection, account: str, amount: Decimal) -> bool:
        body = {"direction": direction.value, "account": account, "amount": str(amount)}
        try:
            response = self._client.post("/transfers", json=body)
        except httpx.TimeoutException as exc:
            raise TransferFailedError(account, amount, "timeout") from exc
        except httpx.HTTPError as exc:
            raise TransferFailedError(account, amount, f"transport error: {exc}") from exc

        if response.status_code >= 500:
            raise TransferFailedError(
                account, amount, f"transfer service status {response.status_code}"
            )
        if response.status_code >= 400:
            logger.warning(
                "transfer_declined",
                extra={"account": account, "status_code": response.status_code},
            )
            return False
        try:
            status = response.json().get("status")
        except (ValueError, AttributeError) as exc:
            raise TransferFailedError(account, amount, "malformed response") from exc
        return status == "completed"

    def close(self) -> None:
        self._client.close()
