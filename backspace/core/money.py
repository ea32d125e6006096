"""
Money helpers - fixed-point currency arithmetic.

Design principles:
- Every stored or transmitted amount is an integer count of minor units
  (piasters, 1/100 EGP)
- Major units (e.g. "12.50") only exist at the boundary: user input and display
- Rounding is half-away-from-zero and happens exactly once per computation
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from backspace.utils.billing_validation import InvalidAmount

MINOR_PER_MAJOR = 100

_CENT = Decimal("0.01")
_ONE = Decimal("1")


def _as_decimal(value) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmount(f"Not a monetary value: {value!r}")
    if isinstance(value, float):
        # Shortest repr, so 12.345 stays 12.345 instead of its binary expansion
        value = repr(value)
    try:
        result = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Not a monetary value: {value!r}")
    if not result.is_finite():
        raise InvalidAmount(f"Not a finite monetary value: {value!r}")
    return result


def to_minor(major) -> int:
    """Convert a major-unit amount (EGP) to integer minor units (piasters)."""
    amount = _as_decimal(major) * MINOR_PER_MAJOR
    return int(amount.quantize(_ONE, rounding=ROUND_HALF_UP))


def to_major(minor: int) -> Decimal:
    """Convert integer minor units to an exact two-place major-unit Decimal."""
    if not isinstance(minor, int) or isinstance(minor, bool):
        raise InvalidAmount(f"Minor units must be an integer, got {minor!r}")
    return (Decimal(minor) / MINOR_PER_MAJOR).quantize(_CENT)


def add(a: int, b: int) -> int:
    return a + b


def subtract(a: int, b: int) -> int:
    return a - b


def sum_minor(amounts: Iterable[int]) -> int:
    total = 0
    for amount in amounts:
        total += amount
    return total


def multiply_by_rate(hours, rate_per_hour: int) -> int:
    """
    Charge for `hours` at `rate_per_hour` minor units per hour.

    The product is rounded once, at the end, so fractional hours never
    accumulate per-step rounding error.
    """
    hours = _as_decimal(hours)
    if hours < 0:
        raise InvalidAmount(f"Elapsed time cannot be negative: {hours}")
    if rate_per_hour < 0:
        raise InvalidAmount(f"Hourly rate cannot be negative: {rate_per_hour}")
    return int((hours * rate_per_hour).quantize(_ONE, rounding=ROUND_HALF_UP))


def format_major(minor: int) -> str:
    """Render minor units as a plain major-unit string, e.g. 1250 -> "12.50"."""
    return f"{to_major(minor):.2f}"
