"""
Structured logging: context fields the kernel binds, and how kernel values
are rendered (paygate_kernel/logging_config.py).
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from paygate_kernel.domain.notifications import FeeAmountChanged
from paygate_kernel.domain.values import ActionKind, Period
from paygate_kernel.exceptions import AlreadySettledError, WrongParticipantClassError
from paygate_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from tests.conftest import ADMIN, FEE, PAYEE, PAYER


@pytest.fixture
def fresh_logging():
    """Unconfigured kernel logging; restored to the session setup afterwards."""
    reset_logging()
    yield
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _format(record_factory) -> dict:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    logger = get_logger("test.formatter")
    logger.addHandler(handler)
    try:
        record_factory(logger)
    finally:
        logger.removeHandler(handler)
    return json.loads(stream.getvalue().strip().split("\n")[0])


def _records(captured_logs, message: str) -> list[dict]:
    return [r for r in captured_logs() if r["message"] == message]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_fields_are_the_kernel_bindings(self):
        assert CONTEXT_FIELDS == ("actor_id", "account", "action", "period_code")

    def test_unknown_field_refused(self):
        with pytest.raises(ValueError, match="correlation_id"):
            LogContext.set(correlation_id="abc")
        with pytest.raises(ValueError):
            with LogContext.bind(request="r-1"):
                pass
        assert LogContext.get_all() == {}

    def test_bind_nests_and_restores(self):
        with LogContext.bind(account=PAYER, action="fee"):
            with LogContext.bind(period_code="2024-03", action="payout"):
                assert LogContext.get_all() == {
                    "account": PAYER,
                    "action": "payout",
                    "period_code": "2024-03",
                }
            assert LogContext.get_all() == {"account": PAYER, "action": "fee"}
        assert LogContext.get_all() == {}

    def test_none_keeps_current_binding(self):
        LogContext.set(actor_id=ADMIN)
        LogContext.set(actor_id=None, account=PAYER)
        assert LogContext.get_all() == {"actor_id": ADMIN, "account": PAYER}
        LogContext.clear()
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# Rendering of kernel values
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_kernel_values_rendered(self):
        record = _format(
            lambda log: log.info(
                "values",
                extra={
                    "period": Period(month=3, year=2024),
                    "kind": ActionKind.PAYOUT,
                    "amount": Decimal("100.50"),
                    "change": FeeAmountChanged(amount=Decimal("120")),
                },
            )
        )
        assert record["logger"] == "paygate_kernel.test.formatter"
        assert record["period"] == "2024-03"
        assert record["kind"] == "payout"
        assert record["amount"] == "100.50"
        assert record["change"] == {"notification": "fee_amount_changed", "amount": "120"}

    def test_bound_fields_take_precedence_over_extras(self):
        with LogContext.bind(period_code="2024-03"):
            record = _format(lambda log: log.info("x", extra={"period_code": "1999-01"}))
        assert record["period_code"] == "2024-03"

    def test_paygate_error_fields(self):
        def _emit(log):
            try:
                raise AlreadySettledError(PAYER, "2024-03", "fee")
            except AlreadySettledError:
                log.error("settle_error", exc_info=True)

        record = _format(_emit)
        assert record["exc_code"] == "ALREADY_SETTLED"
        assert record["exc_account"] == PAYER
        assert record["exc_period_code"] == "2024-03"
        assert "traceback" in record

    def test_plain_exception_has_no_code(self):
        def _emit(log):
            try:
                raise ValueError("boom")
            except ValueError:
                log.error("failed", exc_info=True)

        record = _format(_emit)
        assert record["exc_type"] == "ValueError"
        assert "exc_code" not in record


# ---------------------------------------------------------------------------
# Fields the kernel binds
# ---------------------------------------------------------------------------


class TestKernelBindings:
    def test_admin_setters_bind_actor(self, system, captured_logs):
        system.admin_config.set_fee(ADMIN, 120)
        system.period_state.set_month(ADMIN, 4)
        system.access_control.grant_admin(ADMIN, "bursar")

        for message in ("fee_amount_set", "current_month_changed", "admin_granted"):
            records = _records(captured_logs, message)
            assert records
            assert all(r["actor_id"] == ADMIN and "caller" not in r for r in records)

    def test_setter_notification_logged_under_actor(self, system, captured_logs):
        system.admin_config.set_payout(ADMIN, 600)
        (record,) = _records(captured_logs, "payout_amount_changed")
        assert record["actor_id"] == ADMIN
        assert record["amount"] == "600"

    def test_settlement_binds_account_action_period(self, system, captured_logs):
        system.gateway.collect_fee(PAYER, FEE)
        with pytest.raises(WrongParticipantClassError):
            system.gateway.disburse(PAYER)

        (completed,) = _records(captured_logs, "settlement_completed")
        (rejected,) = _records(captured_logs, "settlement_rejected")
        assert (completed["account"], completed["action"], completed["period_code"]) == (
            PAYER,
            "fee",
            "2024-03",
        )
        assert (rejected["account"], rejected["action"], rejected["period_code"]) == (
            PAYER,
            "payout",
            "2024-03",
        )

    def test_period_code_follows_live_period(self, system, captured_logs):
        system.period_state.set_month(ADMIN, 4)
        system.gateway.disburse(PAYEE)
        (record,) = _records(captured_logs, "settlement_completed")
        assert record["period_code"] == "2024-04"
        assert "actor_id" not in record

    def test_bindings_released_after_call(self, system):
        system.admin_config.set_fee(ADMIN, 120)
        system.gateway.disburse(PAYEE)
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_second_call_ignored(self, fresh_logging):
        first = logging.NullHandler()
        second = logging.NullHandler()
        configure_logging(handler=first)
        configure_logging(handler=second)

        handlers = logging.getLogger("paygate_kernel").handlers
        assert first in handlers
        assert second not in handlers

    def test_level_name_from_settings(self, fresh_logging):
        configure_logging(level="debug", handler=logging.NullHandler())
        assert logging.getLogger("paygate_kernel").level == logging.DEBUG

    def test_kernel_logs_do_not_propagate(self, fresh_logging):
        configure_logging(handler=logging.NullHandler())
        assert logging.getLogger("paygate_kernel").propagate is False

    def test_reset_detaches_handler(self, fresh_logging):
        handler = logging.NullHandler()
        configure_logging(handler=handler)
        reset_logging()
        assert handler not in logging.getLogger("paygate_kernel").handlers
