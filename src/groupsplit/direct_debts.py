"""Direct (per-transaction) debts and viewer-relative balances for private groups.

Unlike balances.simplify_debts, nothing here nets globally across the group:
every debt is an obligation between the two members of a visible expense or
payment, so a viewer's debts are fully explained by records they can see.
"""

import logging
from collections.abc import Iterator

from .balances import SETTLE_EPSILON, round_cents
from .models import Balance, Debt, Expense, Member, Payment
from .splits import owed_shares

logger = logging.getLogger(__name__)


class PairLedger:
    """Signed running obligations between unordered pairs of members.

    Each pair is stored once under its sorted key, so debts in opposite
    directions cancel. Iteration follows the order pairs were first touched.
    """

    def __init__(self):
        """Initialize an empty ledger."""
        self._owed: dict[tuple[str, str], float] = {}

    def add(self, debtor: str, creditor: str, amount: float):
        """Record that debtor owes creditor amount (negative reduces it)."""
        if debtor == creditor:
            return
        if debtor < creditor:
            key = (debtor, creditor)
            signed = amount
        else:
            key = (creditor, debtor)
            signed = -amount
        self._owed[key] = self._owed.get(key, 0.0) + signed

    def __iter__(self) -> Iterator[tuple[str, str, float]]:
        """Yield (debtor, creditor, amount) with a positive amount per pair."""
        for (first, second), amount in self._owed.items():
            if amount > 0:
                yield first, second, amount
            elif amount < 0:
                yield second, first, -amount


def calculate_direct_debts(
    members: list[Member],
    expenses: list[Expense],
    payments: list[Payment] | None = None,
    epsilon: float = SETTLE_EPSILON,
) -> list[Debt]:
    """
    Compute pairwise obligations from individual expenses and payments.

    Every participant other than the payer owes the payer their share.
    Obligations between the same two members accumulate and net against
    each other; a payment reduces what the sender owes the receiver.

    Args:
        members: Group members (ids resolve expenses, names resolve payments)
        expenses: The expenses visible to the caller
        payments: The payments visible to the caller (name-keyed)
        epsilon: Net amounts within this of zero are dropped

    Returns:
        One debt per pair with a non-negligible net, amounts rounded to cents
    """
    names: dict[str, str] = {}
    ids_by_name: dict[str, str] = {}
    for member in members:
        names.setdefault(member.id, member.name)
        ids_by_name.setdefault(member.name, member.id)

    ledger = PairLedger()

    for expense in expenses:
        if expense.paid_by not in names:
            logger.debug(f"Expense {expense.id}: payer {expense.paid_by} not a member")
            continue

        for member_id, owed in owed_shares(expense).items():
            if member_id == expense.paid_by or member_id not in names:
                continue
            ledger.add(member_id, expense.paid_by, owed)

    for payment in payments or []:
        sender = ids_by_name.get(payment.from_member)
        receiver = ids_by_name.get(payment.to_member)

        if sender is None or receiver is None:
            logger.debug(
                f"Ignoring payment {payment.from_member} -> {payment.to_member}: "
                f"unknown member name"
            )
            continue

        ledger.add(sender, receiver, -payment.amount)

    return [
        Debt(
            from_member=names[debtor],
            to_member=names[creditor],
            amount=round_cents(amount),
        )
        for debtor, creditor, amount in ledger
        if amount > epsilon
    ]


def calculate_relative_balances(
    members: list[Member], direct_debts: list[Debt], viewer_name: str
) -> list[Balance]:
    """
    Project direct debts onto balances relative to one viewer.

    For every other member, total_paid is what the viewer owes them and
    total_owed is what they owe the viewer, so a negative net means "owes
    the viewer". The viewer's own row is the mirror image: its net is the
    negated sum of everyone else's.

    Args:
        members: Group members, in display order
        direct_debts: Debts from calculate_direct_debts
        viewer_name: Display name of the viewing member

    Returns:
        One balance per member
    """
    balances = [Balance(member_id=m.id, member_name=m.name) for m in members]
    viewer_balance: Balance | None = None

    for balance in balances:
        if balance.member_name == viewer_name and viewer_balance is None:
            viewer_balance = balance
            continue

        name = balance.member_name
        for debt in direct_debts:
            if debt.from_member == viewer_name and debt.to_member == name:
                balance.total_paid += debt.amount
            elif debt.from_member == name and debt.to_member == viewer_name:
                balance.total_owed += debt.amount

        balance.net_balance = balance.total_paid - balance.total_owed

    if viewer_balance is not None:
        for balance in balances:
            if balance is viewer_balance:
                continue
            viewer_balance.total_paid += balance.total_owed
            viewer_balance.total_owed += balance.total_paid
        viewer_balance.net_balance = (
            viewer_balance.total_paid - viewer_balance.total_owed
        )

    return balances
