from typing import Any, List, Optional

from backspace.models.invoice import Invoice
from backspace.repositories.base_repo import DocumentRepository


class InvoiceRepository(DocumentRepository[Invoice]):
    """Invoice database operations."""

    collection_name = "invoices"
    model = Invoice

    async def list_for_customer(
        self,
        customer_id: str,
        status: Optional[str] = None,
        db_session: Any = None
    ) -> List[Invoice]:
        """Customer's invoices, oldest obligation first."""
        query: dict = {"customer_id": customer_id}
        if status:
            query["status"] = status
        return await self.find(
            query,
            sort=[("due_date", 1), ("created_at", 1)],
            db_session=db_session
        )

    async def get_many(self, invoice_ids: List[str], db_session: Any = None) -> List[Invoice]:
        """Fetch invoices by id, in the order the ids were given."""
        found = await self.find({"_id": {"$in": invoice_ids}}, db_session=db_session)
        by_id = {invoice.id: invoice for invoice in found}
        return [by_id[invoice_id] for invoice_id in invoice_ids if invoice_id in by_id]
