"""
Race tests for the shared gateway lock.

Many threads hit the same (account, period, kind) slot at once.  Exactly one
call may move value; every other call must fail AlreadySettledError.  Admin
setters racing with settlements must never let a call observe half of a
period change.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from paygate_kernel.domain.values import ActionKind, Period
from paygate_kernel.exceptions import AlreadySettledError
from tests.conftest import ADMIN, FEE, PAYEE, PAYER, PAYOUT

pytestmark = pytest.mark.slow_locks

THREADS = 16


class _SlowTreasury:
    """Counts transfers and yields mid-transfer to widen the race window."""

    def __init__(self):
        self.sent = []
        self.retained = []
        self._lock = threading.Lock()

    def send(self, to, amount):
        threading.Event().wait(0.001)
        with self._lock:
            self.sent.append((to, amount))
        return True

    def retain(self, source, amount):
        threading.Event().wait(0.001)
        with self._lock:
            self.retained.append((source, amount))
        return True


def _race(n, fn):
    """Run ``fn`` on ``n`` threads released together; return (results, errors)."""
    barrier = Barrier(n)

    def _call():
        barrier.wait()
        try:
            return fn(), None
        except AlreadySettledError as exc:
            return None, exc

    with ThreadPoolExecutor(max_workers=n) as pool:
        outcomes = list(pool.map(lambda _: _call(), range(n)))
    results = [r for r, _ in outcomes if r is not None]
    errors = [e for _, e in outcomes if e is not None]
    return results, errors


@pytest.fixture
def slow_system(settings, deterministic_clock, resolver):
    from paygate_config.bridges import build_payment_system

    funds = _SlowTreasury()
    return build_payment_system(
        settings, clock=deterministic_clock, resolver=resolver, funds=funds
    ), funds


def test_concurrent_disburse_pays_once(slow_system):
    system, funds = slow_system

    results, errors = _race(THREADS, lambda: system.gateway.disburse(PAYEE))

    assert len(results) == 1
    assert len(errors) == THREADS - 1
    assert funds.sent == [(PAYEE, PAYOUT)]


def test_concurrent_collect_retains_once(slow_system):
    system, funds = slow_system

    results, errors = _race(THREADS, lambda: system.gateway.collect_fee(PAYER, FEE))

    assert len(results) == 1
    assert funds.retained == [(PAYER, FEE)]
    assert system.ledger.settled_count(Period(month=3, year=2024), ActionKind.FEE) == 1


def test_concurrent_sql_disburse_pays_once(settings, deterministic_clock, resolver, session_factory):
    from paygate_config.bridges import build_payment_system

    funds = _SlowTreasury()
    system = build_payment_system(
        settings,
        clock=deterministic_clock,
        resolver=resolver,
        funds=funds,
        session_factory=session_factory,
    )

    results, _ = _race(8, lambda: system.gateway.disburse(PAYEE))

    assert len(results) == 1
    assert len(funds.sent) == 1


def test_month_change_racing_settlements(slow_system):
    """Every receipt names a whole period; each period pays at most once."""
    system, funds = slow_system
    barrier = Barrier(THREADS + 1)
    receipts = []
    receipts_lock = threading.Lock()

    def _disburse():
        barrier.wait()
        try:
            receipt = system.gateway.disburse(PAYEE)
        except AlreadySettledError:
            return
        with receipts_lock:
            receipts.append(receipt)

    def _advance_month():
        barrier.wait()
        system.period_state.set_month(ADMIN, 4)

    with ThreadPoolExecutor(max_workers=THREADS + 1) as pool:
        futures = [pool.submit(_disburse) for _ in range(THREADS)]
        futures.append(pool.submit(_advance_month))
        for f in futures:
            f.result()

    periods = [r.period for r in receipts]
    assert len(periods) == len(set(periods))
    assert set(periods) <= {Period(month=3, year=2024), Period(month=4, year=2024)}
    assert len(funds.sent) == len(receipts)
    assert sum(amount for _, amount in funds.sent) == PAYOUT * len(receipts)
    assert all(amount == Decimal(PAYOUT) for _, amount in funds.sent)
