"""Split calculator: how much each participant owes for an expense."""

from .models import AmountsSplit, EqualSplit, Expense, SharesSplit, Split, SplitMode


def make_split(mode: SplitMode, data: dict[str, float] | None = None) -> Split:
    """
    Build a split variant from the flat (mode, data) form.

    Args:
        mode: One of "equally", "shares", "amounts"
        data: Member id -> weight (shares) or absolute amount (amounts)

    Returns:
        The matching split variant

    Raises:
        ValueError: If the mode is unknown
    """
    if mode == "equally":
        return EqualSplit()
    if mode == "shares":
        return SharesSplit(weights=dict(data or {}))
    if mode == "amounts":
        return AmountsSplit(amounts=dict(data or {}))
    raise ValueError(f"Unknown split mode: {mode}")


def owed_shares(expense: Expense) -> dict[str, float]:
    """
    Compute the share owed by every participant of an expense.

    Malformed inputs degrade to zero instead of raising:
    - no participants: empty mapping
    - shares mode: missing weight counts as 1, zero weight total owes nothing
    - amounts mode: missing amount is 0, no check against the expense total

    Split data for non-participants is ignored.

    Args:
        expense: The expense to split

    Returns:
        Participant id -> owed share, in participant order
    """
    participants = expense.participants
    if not participants:
        return {}

    split = expense.split

    if isinstance(split, EqualSplit):
        per_person = expense.amount / len(participants)
        return {member_id: per_person for member_id in participants}

    if isinstance(split, SharesSplit):
        weights = {
            member_id: split.weights.get(member_id, 1.0) for member_id in participants
        }
        total_weight = sum(weights.values())
        if total_weight == 0:
            return {member_id: 0.0 for member_id in participants}
        return {
            member_id: expense.amount * weight / total_weight
            for member_id, weight in weights.items()
        }

    if isinstance(split, AmountsSplit):
        return {
            member_id: split.amounts.get(member_id, 0.0) for member_id in participants
        }

    raise TypeError(f"Unsupported split variant: {type(split).__name__}")


def share(expense: Expense, member_id: str) -> float:
    """Get one member's owed share of an expense (0 for non-participants)."""
    return owed_shares(expense).get(member_id, 0.0)
