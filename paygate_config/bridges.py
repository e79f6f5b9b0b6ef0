"""
Config -> Kernel Bridges.

Turns validated GatewaySettings into a wired PaymentSystem.  Lives in
paygate_config (the producer) because the kernel must NEVER import
paygate_config.

Usage:
    from paygate_config import get_active_settings
    from paygate_config.bridges import build_payment_system

    system = build_payment_system(get_active_settings())
    system.gateway.collect_fee("alice", 100)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from paygate_config.schema import GatewaySettings
from paygate_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from paygate_kernel.domain.clock import Clock, SystemClock
from paygate_kernel.domain.values import Period
from paygate_kernel.services.access_control import AccessControl
from paygate_kernel.services.admin_config import AdminConfig
from paygate_kernel.services.funds_transfer import FundsTransfer, HttpFundsTransfer, Treasury
from paygate_kernel.services.notification_bus import NotificationBus
from paygate_kernel.services.oracle_client import (
    EligibilityOracleClient,
    OracleResolver,
    StaticIdentityOracle,
    http_oracle_factory,
)
from paygate_kernel.services.payment_gateway import PaymentGateway
from paygate_kernel.services.payment_ledger import (
    InMemoryPaymentLedger,
    PaymentLedger,
    SqlPaymentLedger,
)
from paygate_kernel.services.period_state import PeriodState, SqlPeriodMarkerStore

# References with this scheme are served by an in-process StaticIdentityOracle.
STATIC_SCHEME = "static://"


@dataclass(frozen=True)
class PaymentSystem:
    """Every collaborator of one running payment gate, sharing one lock."""

    settings: GatewaySettings
    clock: Clock
    access_control: AccessControl
    notifications: NotificationBus
    period_state: PeriodState
    admin_config: AdminConfig
    ledger: PaymentLedger
    resolver: OracleResolver
    oracle_client: EligibilityOracleClient
    funds: FundsTransfer
    gateway: PaymentGateway
    lock: threading.RLock


def build_resolver(settings: GatewaySettings) -> OracleResolver:
    """
    Resolver for the configured oracle.

    http(s) references are built on demand; a ``static://`` reference is
    registered up front with an empty StaticIdentityOracle.
    """
    resolver = OracleResolver(factory=http_oracle_factory(settings.oracle.timeout_seconds))
    reference = settings.oracle.reference
    if reference.startswith(STATIC_SCHEME):
        resolver.register(reference, StaticIdentityOracle(name=reference))
    return resolver


def build_funds(settings: GatewaySettings) -> FundsTransfer:
    treasury = settings.treasury
    if treasury.transfer_url:
        return HttpFundsTransfer(treasury.transfer_url, timeout=treasury.timeout_seconds)
    return Treasury(opening_balance=treasury.opening_balance)


def build_payment_system(
    settings: GatewaySettings,
    *,
    clock: Clock | None = None,
    resolver: OracleResolver | None = None,
    funds: FundsTransfer | None = None,
    session_factory: sessionmaker[Session] | None = None,
    notifications: NotificationBus | None = None,
) -> PaymentSystem:
    """
    Wire a PaymentSystem from settings.

    Explicit arguments override what the settings would build, which is how
    tests inject deterministic clocks, oracles and transfer doubles.  A
    ``session_factory`` (or ``persistence.database_url``) selects the SQL
    ledger and period marker; otherwise both live in memory.
    """
    clock = clock or SystemClock()
    lock = threading.RLock()
    bus = notifications or NotificationBus()
    access = AccessControl(settings.administrators)

    if session_factory is None and settings.persistence.database_url:
        init_engine_from_url(settings.persistence.database_url)
        create_tables()
        session_factory = get_session_factory()

    if session_factory is not None:
        ledger: PaymentLedger = SqlPaymentLedger(session_factory)
        marker_store = SqlPeriodMarkerStore(session_factory)
    else:
        ledger = InMemoryPaymentLedger()
        marker_store = None

    period_state = PeriodState(
        initial=Period(month=settings.period.month, year=settings.period.year),
        year_floor=settings.period.year_floor,
        authority=access,
        notifications=bus,
        store=marker_store,
        lock=lock,
    )
    admin_config = AdminConfig(
        fee_amount=settings.fee_amount,
        payout_amount=settings.payout_amount,
        oracle_reference=settings.oracle.reference,
        authority=access,
        notifications=bus,
        lock=lock,
    )
    resolver = resolver or build_resolver(settings)
    oracle_client = EligibilityOracleClient(admin_config, resolver, clock)
    funds = funds or build_funds(settings)
    gateway = PaymentGateway(
        period_state=period_state,
        config=admin_config,
        ledger=ledger,
        oracle_client=oracle_client,
        funds=funds,
        clock=clock,
        notifications=bus,
        lock=lock,
    )
    return PaymentSystem(
        settings=settings,
        clock=clock,
        access_control=access,
        notifications=bus,
        period_state=period_state,
        admin_config=admin_config,
        ledger=ledger,
        resolver=resolver,
        oracle_client=oracle_client,
        funds=funds,
        gateway=gateway,
        lock=lock,
    )
