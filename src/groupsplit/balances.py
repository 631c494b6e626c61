"""Balance aggregation and greedy debt simplification.

All functions here are pure: they never mutate their inputs and recompute
everything from the expense and payment records on every call.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .models import Balance, Debt, Expense, Member, MemberSummary, Payment
from .splits import owed_shares

logger = logging.getLogger(__name__)

# Currency-cent tolerance for "effectively zero"
SETTLE_EPSILON = 0.01

CENT = Decimal("0.01")


def round_cents(amount: float) -> float:
    """
    Round an amount to cents.
    Uses ROUND_HALF_UP so 0.125 becomes 0.13, not banker's rounding.
    """
    return float(Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def _find_by_name(balances: Iterable[Balance], name: str) -> Balance | None:
    """First balance whose member name matches."""
    for balance in balances:
        if balance.member_name == name:
            return balance
    return None


def calculate_balances(
    members: list[Member],
    expenses: list[Expense],
    payments: list[Payment] | None = None,
) -> list[Balance]:
    """
    Fold expenses and payments into per-member totals.

    Steps:
    1. One zeroed balance per member, in member order
    2. Each expense credits the payer with the amount and charges every
       participant their share
    3. Each payment counts as paid by the sender and owed by the receiver
    4. net = paid - owed

    Records referencing unknown members are skipped, and payments whose
    names match no member are ignored.

    Args:
        members: Group members
        expenses: Expenses to fold
        payments: Settlement payments (name-keyed)

    Returns:
        One balance per member
    """
    balances: dict[str, Balance] = {}
    for member in members:
        balances.setdefault(
            member.id, Balance(member_id=member.id, member_name=member.name)
        )

    for expense in expenses:
        payer = balances.get(expense.paid_by)
        if payer is not None:
            payer.total_paid += expense.amount
        else:
            logger.debug(f"Expense {expense.id}: payer {expense.paid_by} not a member")

        for member_id, owed in owed_shares(expense).items():
            participant = balances.get(member_id)
            if participant is not None:
                participant.total_owed += owed

    for payment in payments or []:
        sender = _find_by_name(balances.values(), payment.from_member)
        receiver = _find_by_name(balances.values(), payment.to_member)

        if sender is None or receiver is None:
            logger.debug(
                f"Ignoring payment {payment.from_member} -> {payment.to_member}: "
                f"unknown member name"
            )
            continue

        # Sender paid off debt; receiver's credit shrinks by the same amount
        sender.total_paid += payment.amount
        receiver.total_owed += payment.amount

    for balance in balances.values():
        balance.net_balance = balance.total_paid - balance.total_owed

    return list(balances.values())


@dataclass
class _Party:
    name: str
    remaining: float


def simplify_debts(
    balances: list[Balance], epsilon: float = SETTLE_EPSILON
) -> list[Debt]:
    """
    Suggest transfers that settle all balances.

    Greedy largest-first matching: the biggest creditor is paired with the
    biggest debtor, the smaller of the two amounts is transferred, and
    whichever side is settled moves on. Not guaranteed to be the global
    minimum number of transfers.

    Args:
        balances: Net balances to settle
        epsilon: Amounts within this of zero count as settled

    Returns:
        Debts from debtor to creditor, amounts rounded to cents
    """
    # Each step zeroes at least one side, so a non-negative epsilon terminates
    epsilon = max(epsilon, 0.0)

    creditors = sorted(
        (
            _Party(b.member_name, b.net_balance)
            for b in balances
            if b.net_balance > epsilon
        ),
        key=lambda party: party.remaining,
        reverse=True,
    )
    debtors = sorted(
        (
            _Party(b.member_name, -b.net_balance)
            for b in balances
            if b.net_balance < -epsilon
        ),
        key=lambda party: party.remaining,
        reverse=True,
    )

    debts: list[Debt] = []
    i = 0
    j = 0

    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]

        amount = min(creditor.remaining, debtor.remaining)

        if amount > epsilon:
            debts.append(
                Debt(
                    from_member=debtor.name,
                    to_member=creditor.name,
                    amount=round_cents(amount),
                )
            )

        creditor.remaining -= amount
        debtor.remaining -= amount

        if creditor.remaining <= epsilon:
            i += 1
        if debtor.remaining <= epsilon:
            j += 1

    return debts


def summarize_member(
    member: Member,
    expenses: list[Expense],
    payments: list[Payment] | None = None,
) -> MemberSummary:
    """
    Break down one member's activity.

    Args:
        member: The member to summarize
        expenses: Expenses to scan
        payments: Payments to scan (name-keyed)

    Returns:
        The member's expenses, payments made and received, and totals
    """
    summary = MemberSummary(member=member)

    for expense in expenses:
        if not expense.involves(member.id):
            continue
        summary.expenses.append(expense)
        if expense.paid_by == member.id:
            summary.total_paid += expense.amount
        summary.total_owed += owed_shares(expense).get(member.id, 0.0)

    for payment in payments or []:
        if payment.from_member == member.name:
            summary.payments_made.append(payment)
            summary.total_paid += payment.amount
        if payment.to_member == member.name:
            summary.payments_received.append(payment)
            summary.total_owed += payment.amount

    summary.net_balance = summary.total_paid - summary.total_owed
    return summary
