"""Visibility policy: what a viewer may see of a group's records.

Public groups show everything to everyone. In a private group a viewer sees
only expenses they paid for or participate in, payments they sent or
received, and debts where they are one of the two sides. A private group
without a recognised viewer shows nothing.
"""

from .models import Debt, Expense, Group, Payment


def visible_expenses(
    group: Group, expenses: list[Expense], viewer_name: str | None = None
) -> list[Expense]:
    """Filter expenses down to those the viewer may see."""
    if not group.is_private:
        return list(expenses)

    viewer = group.find_member_by_name(viewer_name) if viewer_name else None
    if viewer is None:
        return []

    return [expense for expense in expenses if expense.involves(viewer.id)]


def visible_payments(
    group: Group, payments: list[Payment], viewer_name: str | None = None
) -> list[Payment]:
    """Filter payments down to those the viewer may see."""
    if not group.is_private:
        return list(payments)

    if not viewer_name or group.find_member_by_name(viewer_name) is None:
        return []

    return [payment for payment in payments if payment.involves(viewer_name)]


def debts_visible_to(debts: list[Debt], viewer_name: str | None) -> list[Debt]:
    """Keep only debts where the viewer is the debtor or the creditor."""
    if not viewer_name:
        return []
    return [debt for debt in debts if debt.involves(viewer_name)]
