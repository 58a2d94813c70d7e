"""
Unit tests for commission and withdrawal status machines.
"""

import pytest

from app.models.enums import CommissionStatus, OrderStatus, WithdrawalStatus
from app.services.exceptions import InvalidStatusTransition
from app.services.status_machine import (
    commission_machine,
    commission_status_for_order,
    withdrawal_machine,
)


class TestCommissionMachine:
    """Commission lifecycle: pending -> approved -> paid, or cancelled."""

    @pytest.mark.parametrize(
        "current,new",
        [
            (CommissionStatus.PENDING, CommissionStatus.APPROVED),
            (CommissionStatus.PENDING, CommissionStatus.CANCELLED),
            (CommissionStatus.APPROVED, CommissionStatus.PAID),
            (CommissionStatus.APPROVED, CommissionStatus.CANCELLED),
        ],
    )
    def test_allowed(self, current, new):
        assert commission_machine.can_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (CommissionStatus.PENDING, CommissionStatus.PAID),
            (CommissionStatus.PAID, CommissionStatus.CANCELLED),
            (CommissionStatus.PAID, CommissionStatus.APPROVED),
            (CommissionStatus.CANCELLED, CommissionStatus.APPROVED),
            (CommissionStatus.CANCELLED, CommissionStatus.PENDING),
        ],
    )
    def test_forbidden(self, current, new):
        assert not commission_machine.can_transition(current, new)
        with pytest.raises(InvalidStatusTransition) as exc_info:
            commission_machine.validate(current, new)
        assert exc_info.value.context == {
            "entity": "commission",
            "current": current.value,
            "requested": new.value,
        }

    def test_same_status_is_allowed(self):
        assert commission_machine.can_transition(
            CommissionStatus.PAID, CommissionStatus.PAID
        )

    def test_terminal_states(self):
        assert commission_machine.is_terminal(CommissionStatus.PAID)
        assert commission_machine.is_terminal(CommissionStatus.CANCELLED)
        assert not commission_machine.is_terminal(CommissionStatus.PENDING)

    def test_valid_transitions_keep_declaration_order(self):
        assert commission_machine.valid_transitions(CommissionStatus.APPROVED) == [
            CommissionStatus.PAID,
            CommissionStatus.CANCELLED,
        ]


class TestWithdrawalMachine:
    """Withdrawal lifecycle: pending -> approved -> paid, or rejected."""

    def test_happy_path(self):
        assert withdrawal_machine.can_transition(
            WithdrawalStatus.PENDING, WithdrawalStatus.APPROVED
        )
        assert withdrawal_machine.can_transition(
            WithdrawalStatus.APPROVED, WithdrawalStatus.PAID
        )

    def test_cannot_pay_unapproved(self):
        assert not withdrawal_machine.can_transition(
            WithdrawalStatus.PENDING, WithdrawalStatus.PAID
        )

    def test_paid_and_rejected_are_terminal(self):
        for status in (WithdrawalStatus.PAID, WithdrawalStatus.REJECTED):
            assert withdrawal_machine.is_terminal(status)
            assert withdrawal_machine.valid_transitions(status) == []


@pytest.mark.parametrize(
    "order_status,expected",
    [
        (OrderStatus.DELIVERED, CommissionStatus.APPROVED),
        (OrderStatus.CANCELLED, CommissionStatus.CANCELLED),
        (OrderStatus.RETURNED, CommissionStatus.CANCELLED),
        (OrderStatus.PENDING, None),
        (OrderStatus.PROCESSING, None),
        (OrderStatus.IN_TRANSIT, None),
    ],
)
def test_commission_status_for_order(order_status, expected):
    assert commission_status_for_order(order_status) == expected
