"""Engine pooling per database URL (paygate_kernel.db.engine)."""

import pytest
from sqlalchemy.pool import QueuePool, StaticPool

from paygate_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from paygate_kernel.domain.values import ActionKind, Period
from paygate_kernel.services.payment_ledger import SqlPaymentLedger


@pytest.fixture(autouse=True)
def _dispose_engine():
    yield
    reset_engine()


@pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
def test_in_memory_sqlite_shares_one_connection(url):
    engine = init_engine_from_url(url)
    assert isinstance(engine.pool, StaticPool)


def test_sqlite_file_uses_connection_pool(tmp_path):
    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    assert isinstance(engine.pool, QueuePool)


def test_sqlite_file_ledger_visible_across_sessions(tmp_path, deterministic_clock):
    init_engine_from_url(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_tables()
    ledger = SqlPaymentLedger(get_session_factory())
    march = Period(month=3, year=2024)

    ledger.mark_settled("alice", march, ActionKind.FEE, deterministic_clock.now())

    assert SqlPaymentLedger(get_session_factory()).is_settled("alice", march, ActionKind.FEE)

