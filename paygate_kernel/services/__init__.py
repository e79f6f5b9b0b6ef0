"""Services for the payment gate kernel (write side)."""

from paygate_kernel.services.access_control import ADMIN_CAPABILITY, AccessControl
from paygate_kernel.services.admin_config import AdminConfig, ConfigSnapshot
from paygate_kernel.services.funds_transfer import (
    FundsTransfer,
    HttpFundsTransfer,
    TransferDirection,
    TransferRecord,
    Treasury,
)
from paygate_kernel.services.notification_bus import NotificationBus
from paygate_kernel.services.oracle_client import (
    EligibilityOracleClient,
    HttpIdentityOracle,
    OracleResolver,
    StaticIdentityOracle,
    http_oracle_factory,
)
from paygate_kernel.services.payment_gateway import PaymentGateway, SettlementReceipt
from paygate_kernel.services.payment_ledger import (
    InMemoryPaymentLedger,
    PaymentLedger,
    SqlPaymentLedger,
)
from paygate_kernel.services.period_state import PeriodState, SqlPeriodMarkerStore

__all__ = [
    "ADMIN_CAPABILITY",
    "AccessControl",
    "AdminConfig",
    "ConfigSnapshot",
    "EligibilityOracleClient",
    "FundsTransfer",
    "HttpFundsTransfer",
    "HttpIdentityOracle",
    "InMemoryPaymentLedger",
    "NotificationBus",
    "OracleResolver",
    "PaymentGateway",
    "PaymentLedger",
    "PeriodState",
    "SettlementReceipt",
    "SqlPaymentLedger",
    "SqlPeriodMarkerStore",
    "StaticIdentityOracle",
    "TransferDirection",
    "TransferRecord",
    "Treasury",
    "http_oracle_factory",
]
