"""Billing error kinds and input validation utilities."""
from typing import Iterable


class BillingError(Exception):
    """Base exception for billing and settlement failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def kind(self) -> str:
        return self.__class__.__name__


class InvalidAmount(BillingError):
    """Non-positive or malformed monetary / time input."""
    pass


class InvalidState(BillingError):
    """Operation attempted against an entity whose state disallows it."""
    pass


class ResourceUnavailable(BillingError):
    """Session start requested on an occupied resource."""
    pass


class AmountExceedsBalance(BillingError):
    """Payment or withdrawal larger than what is outstanding / available."""
    pass


class InsufficientStock(BillingError):
    """Inventory consumption larger than the remaining stock."""
    pass


def validate_positive_amount(amount: int, what: str = "Amount") -> None:
    """Reject anything that is not a strictly positive integer of minor units."""
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount(f"{what} must be an integer number of minor units: {amount!r}")
    if amount <= 0:
        raise InvalidAmount(f"{what} must be positive: {amount}")


def validate_line_items(line_items: Iterable) -> None:
    """
    Validate invoice line items.

    Rules:
    - at least one line item
    - amounts are non-negative integers
    - quantity is positive
    """
    items = list(line_items)
    if not items:
        raise InvalidAmount("Invoice must have at least one line item")

    for item in items:
        if item.amount < 0:
            raise InvalidAmount(
                f"Line item '{item.description}' has negative amount: {item.amount}"
            )
        if item.quantity <= 0:
            raise InvalidAmount(
                f"Line item '{item.description}' has non-positive quantity: {item.quantity}"
            )
