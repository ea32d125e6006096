from pydantic import BaseModel

from backspace.schemas.money import MoneyInput


class BalanceResponse(BaseModel):
    customer_id: str
    owes: int
    credit: int
    net: int
    net_major: str


class AdjustmentCreate(MoneyInput):
    reason: str = ""
