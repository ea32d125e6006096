from decimal import Decimal

import pytest
from pydantic import ValidationError

from backspace.schemas.invoice import BulkPaymentCreate, PaymentCreate
from backspace.models.invoice import PaymentMethod
from backspace.utils.billing_validation import InvalidAmount


def test_minor_amount_passthrough():
    assert PaymentCreate(amount=2000).minor_amount() == 2000


def test_major_amount_is_converted():
    payload = PaymentCreate(amount_major="20.005", method="card")
    assert payload.amount_major == Decimal("20.005")
    assert payload.minor_amount() == 2001
    assert payload.method == PaymentMethod.CARD


@pytest.mark.parametrize("body", [{}, {"amount": 100, "amount_major": "1.00"}])
def test_exactly_one_amount_required(body):
    with pytest.raises(ValidationError):
        PaymentCreate(**body)


def test_bulk_payment_defaults():
    payload = BulkPaymentCreate(customer_id="cust-1", amount_major="1.20")
    assert payload.invoice_ids is None
    assert payload.minor_amount() == 120


def test_non_finite_major_amount():
    payload = PaymentCreate.model_construct(amount=None, amount_major=Decimal("NaN"))
    with pytest.raises(InvalidAmount):
        payload.minor_amount()
