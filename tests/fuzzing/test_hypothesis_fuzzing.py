"""
Hypothesis-based fuzzing of the gateway pipeline.

Boundaries fuzzed here:
- Fee value: only a value numerically equal to the configured fee settles.
- At-most-once: any sequence of calls and month changes settles each
  (account, period, kind) slot at most once, and value moves exactly once
  per settled slot.
- Admin amounts: any non-positive amount is refused, any positive one kept.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from paygate_config.bridges import build_payment_system
from paygate_kernel.domain.clock import DeterministicClock
from paygate_kernel.domain.values import ActionKind, ParticipantKind
from paygate_kernel.exceptions import (
    AlreadySettledError,
    IncorrectAmountError,
    WrongParticipantClassError,
    ZeroAmountError,
)
from paygate_kernel.services.funds_transfer import Treasury
from paygate_kernel.services.oracle_client import OracleResolver, StaticIdentityOracle
from tests.conftest import ADMIN, FEE, ORACLE_REFERENCE, PAYOUT, make_settings

PAYERS = ["p1", "p2", "p3"]
PAYEES = ["r1", "r2"]

amounts = st.decimals(
    min_value=Decimal("-1000"),
    max_value=Decimal("1000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


def _fresh_system():
    clock = DeterministicClock()
    oracle = StaticIdentityOracle(name=ORACLE_REFERENCE)
    expires = clock.now() + timedelta(days=365)
    for account in PAYERS:
        oracle.register(account, ParticipantKind.PAYER, expires)
    for account in PAYEES:
        oracle.register(account, ParticipantKind.PAYEE, expires)
    resolver = OracleResolver()
    resolver.register(ORACLE_REFERENCE, oracle)
    treasury = Treasury(opening_balance=PAYOUT * 1000)
    return build_payment_system(make_settings(), clock=clock, resolver=resolver, funds=treasury), treasury


@given(value=amounts)
@settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
def test_fee_settles_only_at_exact_value(value):
    system, treasury = _fresh_system()

    if value == FEE:
        system.gateway.collect_fee("p1", value)
        assert system.gateway.is_settled_current("p1", ActionKind.FEE)
    else:
        with pytest.raises(IncorrectAmountError):
            system.gateway.collect_fee("p1", value)
        assert not system.gateway.is_settled_current("p1", ActionKind.FEE)
        assert treasury.records == ()


operation = st.one_of(
    st.tuples(st.just("collect"), st.sampled_from(PAYERS + PAYEES)),
    st.tuples(st.just("disburse"), st.sampled_from(PAYERS + PAYEES)),
    st.tuples(st.just("month"), st.integers(min_value=1, max_value=12)),
)


@given(ops=st.lists(operation, max_size=40))
@settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
def test_each_slot_settles_at_most_once(ops):
    system, treasury = _fresh_system()
    settled: set[tuple[str, int, ActionKind]] = set()

    for op, arg in ops:
        if op == "month":
            system.period_state.set_month(ADMIN, arg)
            continue

        kind = ActionKind.FEE if op == "collect" else ActionKind.PAYOUT
        month = system.period_state.current().month
        slot = (arg, month, kind)
        try:
            if kind is ActionKind.FEE:
                system.gateway.collect_fee(arg, FEE)
            else:
                system.gateway.disburse(arg)
        except AlreadySettledError:
            assert slot in settled
        except WrongParticipantClassError:
            assert arg in (PAYEES if kind is ActionKind.FEE else PAYERS)
        else:
            assert slot not in settled
            settled.add(slot)

    assert len(treasury.records) == len(settled)


@given(value=amounts)
def test_admin_amounts_must_be_positive(value):
    system, _ = _fresh_system()

    if value > 0:
        assert system.admin_config.set_payout(ADMIN, value) == value
    else:
        with pytest.raises(ZeroAmountError):
            system.admin_config.set_payout(ADMIN, value)
        assert system.admin_config.payout_amount == PAYOUT
