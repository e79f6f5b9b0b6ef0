"""Notification records carry stable names and self-describing payloads."""

from decimal import Decimal

from paygate_kernel.domain.notifications import (
    CurrentMonthChanged,
    FeeCollected,
    PaymentReminder,
)


def test_payload_includes_name_and_fields():
    payload = FeeCollected(account="alice", period_code="2024-03", amount=Decimal("100")).to_payload()
    assert payload == {
        "notification": "fee_collected",
        "account": "alice",
        "period_code": "2024-03",
        "amount": Decimal("100"),
    }


def test_reminder_has_no_fields():
    assert PaymentReminder().to_payload() == {"notification": "payment_reminder"}


def test_records_compare_by_value():
    assert CurrentMonthChanged(month=4) == CurrentMonthChanged(month=4)
    assert CurrentMonthChanged(month=4) != CurrentMonthChanged(month=5)
