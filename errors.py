from typing import Optional


class ExpenseError(Exception):
    """Base class for errors surfaced to the caller as-is."""

    default_message = "Expense operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class Unauthorized(ExpenseError):
    default_message = "Unauthorized"


class NotFoundOrUnauthorized(ExpenseError):
    # missing and foreign records are reported identically
    default_message = "Expense not found or unauthorized"


class InvalidAmount(ExpenseError, ValueError):
    default_message = "Amount must be greater than 0"
