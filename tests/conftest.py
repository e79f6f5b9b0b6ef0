"""
Pytest fixtures for the payment gate test suite.

Provides:
- Structured log capture
- Deterministic clock, static identity oracle and treasury doubles
- Fully wired in-memory PaymentSystem (via paygate_config.bridges)
- SQLite-backed session factory for the SQL ledger and period marker
"""

import json
import logging
from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest

from paygate_config.bridges import build_payment_system
from paygate_config.schema import (
    GatewaySettings,
    OracleSettings,
    PeriodSettings,
    TreasurySettings,
)
from paygate_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from paygate_kernel.domain.clock import DeterministicClock
from paygate_kernel.domain.values import ParticipantKind
from paygate_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from paygate_kernel.services.oracle_client import OracleResolver, StaticIdentityOracle
from paygate_kernel.services.funds_transfer import Treasury

ADMIN = "registrar"
PAYER = "alice"
PAYEE = "bob"
ORACLE_REFERENCE = "static://campus-registry"
FEE = Decimal("100")
PAYOUT = Decimal("500")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture paygate_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, system):
            system.gateway.collect_fee("alice", 100)
            logs = captured_logs()
            assert any(r["message"] == "settlement_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("paygate_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as racing threads on the shared lock"
    )


# =============================================================================
# Clock and collaborator doubles
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing (2024-03-01 12:00 UTC)."""
    return DeterministicClock()


@pytest.fixture
def oracle(deterministic_clock):
    """Static oracle with one current payer and one current payee."""
    static = StaticIdentityOracle(name=ORACLE_REFERENCE)
    expires = deterministic_clock.now() + timedelta(days=365)
    static.register(PAYER, ParticipantKind.PAYER, expires)
    static.register(PAYEE, ParticipantKind.PAYEE, expires)
    return static


@pytest.fixture
def resolver(oracle):
    r = OracleResolver()
    r.register(ORACLE_REFERENCE, oracle)
    return r


@pytest.fixture
def treasury():
    """Treasury funded for ten payouts."""
    return Treasury(opening_balance=PAYOUT * 10)


# =============================================================================
# Settings and wired systems
# =============================================================================


def make_settings(**overrides) -> GatewaySettings:
    """GatewaySettings for fee=100, payout=500, period 3/2024."""
    values = dict(
        settings_id="test",
        version=1,
        fee_amount=FEE,
        payout_amount=PAYOUT,
        administrators=(ADMIN,),
        period=PeriodSettings(month=3, year=2024, year_floor=2023),
        oracle=OracleSettings(reference=ORACLE_REFERENCE),
        treasury=TreasurySettings(opening_balance=PAYOUT * 10),
    )
    values.update(overrides)
    return GatewaySettings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def system(settings, deterministic_clock, resolver, treasury):
    """In-memory PaymentSystem wired through the bridge."""
    return build_payment_system(
        settings,
        clock=deterministic_clock,
        resolver=resolver,
        funds=treasury,
    )


@pytest.fixture
def notifications_seen(system):
    """List that records every notification published on the system bus."""
    seen = []
    system.notifications.subscribe(seen.append)
    return seen


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database with all tables created."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def sql_system(settings, deterministic_clock, resolver, treasury, session_factory):
    """PaymentSystem whose ledger and period marker live in SQLite."""
    return build_payment_system(
        settings,
        clock=deterministic_clock,
        resolver=resolver,
        funds=treasury,
        session_factory=session_factory,
    )
