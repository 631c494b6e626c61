"""Custom exceptions for GroupSplit."""


class GroupSplitError(Exception):
    """Base exception for all GroupSplit errors."""

    pass


class ConfigurationError(GroupSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class GroupNotFoundError(GroupSplitError):
    """Raised when a group id does not exist in storage."""

    def __init__(self, group_id: str, message: str | None = None):
        self.group_id = group_id
        super().__init__(message or f"Group {group_id} not found")


class MemberNotFoundError(GroupSplitError):
    """Raised when a member name or id does not belong to the group."""

    def __init__(self, member: str, group_id: str, message: str | None = None):
        self.member = member
        self.group_id = group_id
        super().__init__(
            message or f"Member '{member}' is not part of group {group_id}"
        )


class ValidationError(GroupSplitError):
    """Base class for input validation errors raised at the service boundary."""

    pass


class GroupValidationError(ValidationError):
    """Raised when group data is invalid."""

    pass


class ExpenseValidationError(ValidationError):
    """Raised when expense data is invalid."""

    pass


class PaymentValidationError(ValidationError):
    """Raised when payment data is invalid."""

    pass


class RecordNotFoundError(GroupSplitError):
    """Raised when an expense or payment id does not exist in storage."""

    def __init__(self, kind: str, record_id: str, message: str | None = None):
        self.kind = kind
        self.record_id = record_id
        super().__init__(message or f"{kind.capitalize()} {record_id} not found")
