import logging
from datetime import datetime
from typing import Iterable, Sequence

from pydantic import BaseModel

from backspace.core import money
from backspace.models.customer import AdjustmentKind, BalanceAdjustment
from backspace.models.invoice import Invoice, InvoiceStatus
from backspace.utils.billing_validation import AmountExceedsBalance, validate_positive_amount

logger = logging.getLogger(__name__)


class BalanceSummary(BaseModel):
    owes: int       # outstanding across non-cancelled invoices
    credit: int     # net manual adjustments
    net: int        # credit - owes (negative = customer owes)


def _adjustment_amounts(adjustments: Iterable) -> Iterable[int]:
    for adjustment in adjustments:
        yield adjustment.amount if isinstance(adjustment, BalanceAdjustment) else adjustment


class AccountBalance:
    @staticmethod
    def outstanding_total(invoices: Iterable[Invoice]) -> int:
        return money.sum_minor(
            invoice.outstanding()
            for invoice in invoices
            if invoice.status != InvoiceStatus.CANCELLED
        )

    @staticmethod
    def compute_balance(invoices: Iterable[Invoice], adjustments: Iterable = ()) -> int:
        """
        Derive a customer's signed balance.

        balance = -sum(outstanding of non-cancelled invoices) + sum(adjustments)

        Adjustments may be BalanceAdjustment models or plain minor-unit ints.
        """
        return money.subtract(
            money.sum_minor(_adjustment_amounts(adjustments)),
            AccountBalance.outstanding_total(invoices),
        )

    @staticmethod
    def summarize(invoices: Sequence[Invoice], adjustments: Sequence = ()) -> BalanceSummary:
        owes = AccountBalance.outstanding_total(invoices)
        credit = money.sum_minor(_adjustment_amounts(adjustments))
        return BalanceSummary(owes=owes, credit=credit, net=money.subtract(credit, owes))

    @staticmethod
    def deposit(customer_id: str, amount: int, now: datetime, reason: str = "") -> BalanceAdjustment:
        validate_positive_amount(amount, "Deposit amount")
        logger.info("Customer %s: deposit %s", customer_id, money.format_major(amount))
        return BalanceAdjustment(
            customer_id=customer_id,
            amount=amount,
            kind=AdjustmentKind.DEPOSIT,
            reason=reason,
            created_at=now,
        )

    @staticmethod
    def withdraw(
        customer_id: str,
        amount: int,
        current_balance: int,
        now: datetime,
        reason: str = "",
    ) -> BalanceAdjustment:
        """Take stored credit out of the account; cannot go below zero."""
        validate_positive_amount(amount, "Withdrawal amount")
        available = max(0, current_balance)
        if amount > available:
            raise AmountExceedsBalance(
                f"Withdrawal ({amount}) exceeds available balance ({available})"
            )

        logger.info("Customer %s: withdrawal %s", customer_id, money.format_major(amount))
        return BalanceAdjustment(
            customer_id=customer_id,
            amount=-amount,
            kind=AdjustmentKind.WITHDRAWAL,
            reason=reason,
            created_at=now,
        )
