from pydantic import Field

from backspace.models.base import DocumentModel


class InventoryItem(DocumentModel):
    """Sellable stock (drinks, snacks). `quantity` is units on hand."""
    name: str
    category: str = "other"  # beverage | snack | other
    price: int = Field(..., ge=0)  # minor units
    quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock
