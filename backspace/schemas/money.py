from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, model_validator

from backspace.core import money


class MoneyInput(BaseModel):
    """
    An amount supplied either in minor units (`amount`) or in major units
    as typed by a cashier (`amount_major`, e.g. "12.50"). Exactly one is required.
    """
    amount: Optional[int] = None
    amount_major: Optional[Decimal] = None

    @model_validator(mode="after")
    def check_one_amount(self):
        if (self.amount is None) == (self.amount_major is None):
            raise ValueError("Provide exactly one of 'amount' (minor units) or 'amount_major'")
        return self

    def minor_amount(self) -> int:
        if self.amount is not None:
            return self.amount
        return money.to_minor(self.amount_major)
