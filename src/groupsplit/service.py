"""Service layer that composes storage with the balance engine.

The engine modules (splits, balances, direct_debts, visibility) are pure;
this module fetches records, applies the visibility policy for the viewer,
and picks the debt strategy from the group's privacy flag.
"""

import logging
from datetime import datetime

from .balances import (
    SETTLE_EPSILON,
    calculate_balances,
    simplify_debts,
    summarize_member,
)
from .config import Settings
from .db import Database
from .direct_debts import calculate_direct_debts, calculate_relative_balances
from .exceptions import (
    ExpenseValidationError,
    GroupNotFoundError,
    GroupValidationError,
    MemberNotFoundError,
    PaymentValidationError,
    RecordNotFoundError,
)
from .models import (
    AmountsSplit,
    Debt,
    Expense,
    Group,
    GroupDetails,
    Member,
    MemberSummary,
    Payment,
    SplitMode,
)
from .splits import make_split
from .visibility import debts_visible_to, visible_expenses, visible_payments

logger = logging.getLogger(__name__)


class GroupLedgerService:
    """Service for recording group expenses and reporting who owes whom."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database

    def get_group(self, group_id: str) -> Group:
        """
        Get a group and its members.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        group = self.db.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    # ========================================================================
    # Groups
    # ========================================================================

    def create_group(
        self, name: str, member_names: list[str], is_private: bool = False
    ) -> Group:
        """
        Create a group with its initial members.

        Member names must be unique within the group, since payments and
        debts refer to members by name.

        Raises:
            GroupValidationError: If the name is blank, there are no
                members, or a member name is repeated
        """
        if not name.strip():
            raise GroupValidationError("Group name is required")

        names = [member_name.strip() for member_name in member_names]
        names = [member_name for member_name in names if member_name]
        if not names:
            raise GroupValidationError("A group needs at least one member")

        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise GroupValidationError(
                f"Duplicate member names: {', '.join(duplicates)}"
            )

        group = self.db.create_group(name.strip(), names, is_private=is_private)
        logger.info(
            f"Created {'private' if is_private else 'public'} group {group.id} "
            f"with {len(group.members)} members"
        )
        return group

    def add_member(self, group_id: str, name: str) -> Member:
        """
        Add a member to an existing group.

        Raises:
            GroupNotFoundError: If the group does not exist
            GroupValidationError: If the name is blank or already taken
        """
        group = self.get_group(group_id)

        name = name.strip()
        if not name:
            raise GroupValidationError("Member name is required")
        if group.find_member_by_name(name) is not None:
            raise GroupValidationError(f"'{name}' is already a member of {group.name}")

        member = self.db.add_member(group_id, name)
        logger.info(f"Added member '{name}' to group {group_id}")
        return member

    def remove_member(self, group_id: str, name: str):
        """
        Remove a member from a group.

        Existing expenses that reference the member are left as they are;
        the balance engine skips ids that are no longer members.

        Raises:
            GroupNotFoundError: If the group does not exist
            MemberNotFoundError: If no member has that name
            GroupValidationError: If it is the group's last member
        """
        group = self.get_group(group_id)
        member = group.find_member_by_name(name)
        if member is None:
            raise MemberNotFoundError(name, group_id)
        if len(group.members) <= 1:
            raise GroupValidationError("Cannot remove the last member of a group")

        self.db.remove_member(group_id, member.id)
        logger.info(f"Removed member '{name}' from group {group_id}")

    def update_group_settings(
        self, group_id: str, name: str | None = None, is_private: bool | None = None
    ) -> Group:
        """
        Rename a group and/or switch its visibility.

        Raises:
            GroupNotFoundError: If the group does not exist
            GroupValidationError: If the new name is blank
        """
        group = self.get_group(group_id)

        if name is not None:
            if not name.strip():
                raise GroupValidationError("Group name is required")
            group.name = name.strip()
        if is_private is not None:
            group.is_private = is_private

        self.db.update_group(group)
        logger.info(
            f"Updated group {group_id}: '{group.name}', "
            f"{'private' if group.is_private else 'public'}"
        )
        return group

    def archive_group(self, group_id: str) -> Group:
        """
        Archive a group once everyone is settled up.

        Balances are computed over all expenses and payments, regardless of
        the group's visibility.

        Raises:
            GroupNotFoundError: If the group does not exist
            GroupValidationError: If any member still has a balance
        """
        group = self.get_group(group_id)
        balances = calculate_balances(
            group.members,
            self.db.get_expenses_by_group(group_id),
            self.db.get_payments_by_group(group_id),
        )
        unsettled = [
            b.member_name
            for b in balances
            if abs(b.net_balance) > self.settings.settle_epsilon
        ]
        if unsettled:
            raise GroupValidationError(
                f"Cannot archive {group.name}: unsettled balances for "
                f"{', '.join(unsettled)}"
            )

        group.archived = True
        self.db.update_group(group)
        logger.info(f"Archived group {group_id}")
        return group

    def unarchive_group(self, group_id: str) -> Group:
        """Restore an archived group."""
        group = self.get_group(group_id)
        group.archived = False
        self.db.update_group(group)
        logger.info(f"Unarchived group {group_id}")
        return group

    # ========================================================================
    # Expenses
    # ========================================================================

    def add_expense(
        self,
        group_id: str,
        amount: float,
        paid_by: str,
        description: str,
        participants: list[str],
        date: datetime | None = None,
        split_mode: SplitMode = "equally",
        split_data: dict[str, float] | None = None,
    ) -> Expense:
        """
        Record a new expense.

        Args:
            group_id: Group the expense belongs to
            amount: Total amount, must be positive
            paid_by: Member id of the payer
            description: Free-text description, required
            participants: Member ids sharing the expense
            date: When the expense happened (defaults to now)
            split_mode: "equally", "shares" or "amounts"
            split_data: Member id -> weight or amount for the split mode

        Returns:
            The stored expense

        Raises:
            GroupNotFoundError: If the group does not exist
            ExpenseValidationError: If any field is invalid
        """
        group = self.get_group(group_id)

        try:
            split = make_split(split_mode, split_data)
        except ValueError as e:
            raise ExpenseValidationError(str(e)) from e

        expense = Expense(
            id="",
            group_id=group_id,
            description=description.strip(),
            amount=amount,
            paid_by=paid_by,
            participants=participants,
            split=split,
            date=date or datetime.now(),
        )
        self._validate_expense(group, expense)

        expense = self.db.save_expense(expense)
        logger.info(
            f"Added expense {expense.id} '{expense.description}' "
            f"({expense.amount:.2f}, {expense.split_mode})"
        )
        return expense

    def update_expense(
        self,
        expense_id: str,
        amount: float | None = None,
        paid_by: str | None = None,
        description: str | None = None,
        participants: list[str] | None = None,
        date: datetime | None = None,
        split_mode: SplitMode | None = None,
        split_data: dict[str, float] | None = None,
    ) -> Expense:
        """
        Update the given fields of an expense, leaving the others untouched.

        Passing split_data without split_mode keeps the current mode.

        Raises:
            RecordNotFoundError: If the expense does not exist
            ExpenseValidationError: If the updated expense is invalid
        """
        existing = self.db.get_expense(expense_id)
        if existing is None:
            raise RecordNotFoundError("expense", expense_id)
        group = self.get_group(existing.group_id)

        updates: dict = {}
        if amount is not None:
            updates["amount"] = amount
        if paid_by is not None:
            updates["paid_by"] = paid_by
        if description is not None:
            updates["description"] = description.strip()
        if participants is not None:
            updates["participants"] = participants
        if date is not None:
            updates["date"] = date
        if split_mode is not None or split_data is not None:
            try:
                updates["split"] = make_split(
                    split_mode or existing.split_mode,
                    split_data if split_data is not None else existing.split_data,
                )
            except ValueError as e:
                raise ExpenseValidationError(str(e)) from e

        expense = Expense.model_validate({**existing.model_dump(), **updates})
        self._validate_expense(group, expense)

        expense = self.db.save_expense(expense)
        changed = ", ".join(updates) or "no changes"
        logger.info(f"Updated expense {expense.id} ({changed})")
        return expense

    def delete_expense(self, expense_id: str):
        """Delete an expense."""
        if not self.db.delete_expense(expense_id):
            raise RecordNotFoundError("expense", expense_id)
        logger.info(f"Deleted expense {expense_id}")

    def _validate_expense(self, group: Group, expense: Expense):
        """Input checks done before an expense reaches storage."""
        if expense.amount <= 0:
            raise ExpenseValidationError("Expense amount must be greater than 0")
        if not expense.paid_by:
            raise ExpenseValidationError("Select who paid")
        if not expense.participants:
            raise ExpenseValidationError("Select at least one participant")
        if not expense.description.strip():
            raise ExpenseValidationError("Description is required")

        if group.get_member(expense.paid_by) is None:
            raise ExpenseValidationError(
                f"Payer {expense.paid_by} is not a member of {group.name}"
            )
        unknown = [p for p in expense.participants if group.get_member(p) is None]
        if unknown:
            raise ExpenseValidationError(
                f"Participants not in {group.name}: {', '.join(unknown)}"
            )

        # Skewed custom amounts are allowed; the engine charges what was entered
        if isinstance(expense.split, AmountsSplit):
            split_total = sum(
                expense.split.amounts.get(p, 0.0) for p in expense.participants
            )
            if abs(split_total - expense.amount) > self.settings.settle_epsilon:
                logger.warning(
                    f"Custom amounts for '{expense.description}' add up to "
                    f"{split_total:.2f}, expense total is {expense.amount:.2f}"
                )

    # ========================================================================
    # Payments
    # ========================================================================

    def register_payment(
        self,
        group_id: str,
        from_name: str,
        to_name: str,
        amount: float,
        date: datetime | None = None,
    ) -> Payment:
        """
        Record a settlement payment between two members.

        Raises:
            GroupNotFoundError: If the group does not exist
            PaymentValidationError: If the amount is not positive, the names
                are not members, or both sides are the same member
        """
        group = self.get_group(group_id)

        if amount <= 0:
            raise PaymentValidationError("Payment amount must be greater than 0")
        if from_name == to_name:
            raise PaymentValidationError("A member cannot pay themselves")
        for name in (from_name, to_name):
            if group.find_member_by_name(name) is None:
                raise PaymentValidationError(
                    f"'{name}' is not a member of {group.name}"
                )

        now = datetime.now()
        payment = self.db.save_payment(
            Payment(
                group_id=group_id,
                from_member=from_name,
                to_member=to_name,
                amount=amount,
                date=date or now,
                registered_at=now,
            )
        )
        logger.info(f"Registered payment {from_name} -> {to_name}: {amount:.2f}")
        return payment

    def settle_debt(self, group_id: str, debt: Debt) -> Payment:
        """Record a suggested debt as paid in full."""
        return self.register_payment(
            group_id, debt.from_member, debt.to_member, debt.amount
        )

    def delete_payment(self, payment_id: str):
        """Delete a payment."""
        if not self.db.delete_payment(payment_id):
            raise RecordNotFoundError("payment", payment_id)
        logger.info(f"Deleted payment {payment_id}")

    # ========================================================================
    # Reporting
    # ========================================================================

    def get_group_details(
        self, group_id: str, viewer_name: str | None = None
    ) -> GroupDetails:
        """
        Get what a viewer may see of a group, with balances and debts.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        group = self.get_group(group_id)
        expenses = self.db.get_expenses_by_group(group_id)
        payments = self.db.get_payments_by_group(group_id)

        details = build_group_details(
            group,
            expenses,
            payments,
            viewer_name=viewer_name,
            epsilon=self.settings.settle_epsilon,
        )
        logger.debug(
            f"Group {group_id} for {viewer_name or 'anonymous'}: "
            f"{len(details.visible_expenses)}/{len(expenses)} expenses, "
            f"{len(details.debts)} debts"
        )
        return details

    def get_member_summary(
        self, group_id: str, member_name: str, viewer_name: str | None = None
    ) -> MemberSummary:
        """
        Break down one member's expenses and payments as seen by a viewer.

        Raises:
            GroupNotFoundError: If the group does not exist
            MemberNotFoundError: If no member has that name
        """
        group = self.get_group(group_id)
        member = group.find_member_by_name(member_name)
        if member is None:
            raise MemberNotFoundError(member_name, group_id)

        expenses = visible_expenses(
            group, self.db.get_expenses_by_group(group_id), viewer_name
        )
        payments = visible_payments(
            group, self.db.get_payments_by_group(group_id), viewer_name
        )
        return summarize_member(member, expenses, payments)


def build_group_details(
    group: Group,
    expenses: list[Expense],
    payments: list[Payment],
    viewer_name: str | None = None,
    epsilon: float = SETTLE_EPSILON,
) -> GroupDetails:
    """
    Apply the visibility policy and pick the debt strategy.

    Public groups: absolute balances over everything, greedy simplified
    debts. Private groups with a member viewer: balances relative to the
    viewer and the direct debts that touch the viewer. Private groups
    without a recognised viewer: nothing visible, no debts.

    This is a pure function over already-fetched records.
    """
    shown_expenses = visible_expenses(group, expenses, viewer_name)
    shown_payments = visible_payments(group, payments, viewer_name)
    balances = calculate_balances(group.members, shown_expenses, shown_payments)

    details = GroupDetails(
        group=group,
        viewer_name=viewer_name,
        visible_expenses=shown_expenses,
        visible_payments=shown_payments,
        balances=balances,
    )

    if not group.is_private:
        details.debts = simplify_debts(balances, epsilon=epsilon)
        return details

    viewer = group.find_member_by_name(viewer_name) if viewer_name else None
    if viewer is None:
        return details

    # Private groups keep per-transaction debts, never simplified ones
    direct_debts = calculate_direct_debts(
        group.members, shown_expenses, shown_payments, epsilon=epsilon
    )
    details.debts = debts_visible_to(direct_debts, viewer.name)
    details.balances = calculate_relative_balances(
        group.members, direct_debts, viewer.name
    )
    details.relative = True
    return details
