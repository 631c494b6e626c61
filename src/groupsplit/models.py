"""Pydantic domain models for GroupSplit."""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SplitMode = Literal["equally", "shares", "amounts"]

# Flat record key holding the per-member split data for each mode
_SPLIT_DATA_FIELDS = {"shares": "weights", "amounts": "amounts"}

# ============================================================================
# Group Models
# ============================================================================


class Member(BaseModel):
    """A person within a group."""

    id: str
    name: str
    joined_at: datetime = Field(default_factory=datetime.now)


class Group(BaseModel):
    """A named collection of members sharing expenses."""

    id: str
    name: str
    code: str | None = None  # join code
    members: list[Member] = Field(default_factory=list)
    is_private: bool = False
    archived: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    def get_member(self, member_id: str) -> Member | None:
        """Get a member by id."""
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def find_member_by_name(self, name: str) -> Member | None:
        """Get the first member with the given display name."""
        for member in self.members:
            if member.name == name:
                return member
        return None


# ============================================================================
# Split Strategies
# ============================================================================


class EqualSplit(BaseModel):
    """Amount divided evenly among participants."""

    mode: Literal["equally"] = "equally"


class SharesSplit(BaseModel):
    """Amount divided proportionally to per-member weights (default weight 1)."""

    mode: Literal["shares"] = "shares"
    weights: dict[str, float] = Field(default_factory=dict)


class AmountsSplit(BaseModel):
    """Explicit absolute amount owed by each participant."""

    mode: Literal["amounts"] = "amounts"
    amounts: dict[str, float] = Field(default_factory=dict)


Split = Annotated[
    EqualSplit | SharesSplit | AmountsSplit, Field(discriminator="mode")
]


# ============================================================================
# Ledger Records
# ============================================================================


class Expense(BaseModel):
    """A cost paid by one member and divided among participants.

    Member references (paid_by, participants, split data keys) are member ids.
    Records in the flat ``split_mode``/``split_data`` shape are converted to
    the ``split`` variant on validation.
    """

    id: str
    group_id: str = ""
    description: str = ""
    amount: float
    paid_by: str
    participants: list[str] = Field(default_factory=list)
    split: Split = Field(default_factory=EqualSplit)
    date: datetime = Field(default_factory=datetime.now)
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="before")
    @classmethod
    def _split_from_flat_record(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "split" in data:
            return data

        data = dict(data)
        mode = data.pop("split_mode", None)
        split_data = data.pop("split_data", None)
        if mode is None:
            return data

        split: dict[str, Any] = {"mode": mode}
        if mode in _SPLIT_DATA_FIELDS:
            split[_SPLIT_DATA_FIELDS[mode]] = split_data or {}
        data["split"] = split
        return data

    @field_validator("participants")
    @classmethod
    def _dedupe_participants(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @property
    def split_mode(self) -> SplitMode:
        """Split mode in the flat record shape."""
        return self.split.mode

    @property
    def split_data(self) -> dict[str, float] | None:
        """Per-member split data in the flat record shape."""
        if isinstance(self.split, SharesSplit):
            return dict(self.split.weights)
        if isinstance(self.split, AmountsSplit):
            return dict(self.split.amounts)
        return None

    def involves(self, member_id: str) -> bool:
        """Check if the member paid for or participates in this expense."""
        return self.paid_by == member_id or member_id in self.participants


class Payment(BaseModel):
    """A recorded real-world settlement between two members, keyed by name."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    group_id: str = ""
    from_member: str = Field(alias="from")
    to_member: str = Field(alias="to")
    amount: float
    date: datetime = Field(default_factory=datetime.now)
    registered_at: datetime = Field(default_factory=datetime.now)

    def involves(self, member_name: str) -> bool:
        """Check if the member sent or received this payment."""
        return self.from_member == member_name or self.to_member == member_name


# ============================================================================
# Derived Models
# ============================================================================


class Balance(BaseModel):
    """A member's position over an expense/payment set (never persisted)."""

    member_id: str
    member_name: str
    total_paid: float = 0.0
    total_owed: float = 0.0
    net_balance: float = 0.0  # positive = owed to them, negative = they owe


class Debt(BaseModel):
    """A computed transfer needed to settle balances, keyed by member name."""

    model_config = ConfigDict(populate_by_name=True)

    from_member: str = Field(alias="from")
    to_member: str = Field(alias="to")
    amount: float

    def involves(self, member_name: str) -> bool:
        """Check if the member is either side of this debt."""
        return self.from_member == member_name or self.to_member == member_name


class MemberSummary(BaseModel):
    """Per-member breakdown of expenses and payments."""

    member: Member
    expenses: list[Expense] = Field(default_factory=list)
    payments_made: list[Payment] = Field(default_factory=list)
    payments_received: list[Payment] = Field(default_factory=list)
    total_paid: float = 0.0
    total_owed: float = 0.0
    net_balance: float = 0.0


class GroupDetails(BaseModel):
    """Everything a viewer is allowed to see about a group.

    For private groups with a known viewer, ``balances`` are relative to the
    viewer and ``debts`` are direct debts touching the viewer. Otherwise
    ``balances`` are absolute and ``debts`` are globally simplified.
    """

    group: Group
    viewer_name: str | None = None
    visible_expenses: list[Expense] = Field(default_factory=list)
    visible_payments: list[Payment] = Field(default_factory=list)
    balances: list[Balance] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    relative: bool = False
