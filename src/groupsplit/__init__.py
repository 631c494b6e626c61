"""GroupSplit - Shared group expenses, balances and debt settlement."""

__version__ = "0.1.0"

from .balances import calculate_balances, simplify_debts, summarize_member
from .config import Settings, load_settings
from .db import Database
from .direct_debts import calculate_direct_debts, calculate_relative_balances
from .models import (
    AmountsSplit,
    Balance,
    Debt,
    EqualSplit,
    Expense,
    Group,
    GroupDetails,
    Member,
    MemberSummary,
    Payment,
    SharesSplit,
)
from .service import GroupLedgerService, build_group_details
from .splits import make_split, owed_shares, share

__all__ = [
    "calculate_balances",
    "simplify_debts",
    "summarize_member",
    "Settings",
    "load_settings",
    "Database",
    "calculate_direct_debts",
    "calculate_relative_balances",
    "AmountsSplit",
    "Balance",
    "Debt",
    "EqualSplit",
    "Expense",
    "Group",
    "GroupDetails",
    "Member",
    "MemberSummary",
    "Payment",
    "SharesSplit",
    "GroupLedgerService",
    "build_group_details",
    "make_split",
    "owed_shares",
    "share",
]
