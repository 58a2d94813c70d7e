"""
Status transition tables for commissions and withdrawals.

Every status change in the ledger goes through one of these machines.
Re-applying the current status is a no-op rather than a transition.
"""

from enum import StrEnum
from typing import Generic, TypeVar

from app.models.enums import CommissionStatus, OrderStatus, WithdrawalStatus
from app.services.exceptions import InvalidStatusTransition

S = TypeVar("S", bound=StrEnum)


class StatusMachine(Generic[S]):
    """Explicit transition table for one status enum."""

    def __init__(self, entity: str, transitions: dict[S, frozenset[S]]) -> None:
        self.entity = entity
        self.transitions = transitions

    def can_transition(self, current: S, new: S) -> bool:
        """Check if a transition is allowed (same status counts as allowed)."""
        if current == new:
            return True
        return new in self.transitions.get(current, frozenset())

    def is_terminal(self, status: S) -> bool:
        """Check if no transition leaves the status."""
        return not self.transitions.get(status)

    def valid_transitions(self, current: S) -> list[S]:
        """Statuses reachable in one step, in declaration order."""
        allowed = self.transitions.get(current, frozenset())
        return [status for status in self.transitions if status in allowed]

    def validate(self, current: S, new: S) -> None:
        """
        Raise if a transition is not allowed.

        Raises:
            InvalidStatusTransition: For illegal transitions
        """
        if not self.can_transition(current, new):
            raise InvalidStatusTransition(self.entity, current.value, new.value)


commission_machine: StatusMachine[CommissionStatus] = StatusMachine(
    "commission",
    {
        CommissionStatus.PENDING: frozenset(
            {CommissionStatus.APPROVED, CommissionStatus.CANCELLED}
        ),
        # Returns after delivery cancel an approved commission
        CommissionStatus.APPROVED: frozenset(
            {CommissionStatus.PAID, CommissionStatus.CANCELLED}
        ),
        CommissionStatus.PAID: frozenset(),
        CommissionStatus.CANCELLED: frozenset(),
    },
)

withdrawal_machine: StatusMachine[WithdrawalStatus] = StatusMachine(
    "withdrawal",
    {
        WithdrawalStatus.PENDING: frozenset(
            {WithdrawalStatus.APPROVED, WithdrawalStatus.REJECTED}
        ),
        WithdrawalStatus.APPROVED: frozenset(
            {WithdrawalStatus.PAID, WithdrawalStatus.REJECTED}
        ),
        WithdrawalStatus.PAID: frozenset(),
        WithdrawalStatus.REJECTED: frozenset(),
    },
)


def commission_status_for_order(
    order_status: OrderStatus,
) -> CommissionStatus | None:
    """
    Map an order status to the commission status it implies.

    Returns:
        Target commission status, or None if commissions stay as they are
    """
    if order_status == OrderStatus.DELIVERED:
        return CommissionStatus.APPROVED
    if order_status in (OrderStatus.CANCELLED, OrderStatus.RETURNED):
        return CommissionStatus.CANCELLED
    return None
