from typing import Any, List

from backspace.models.session import Session
from backspace.repositories.base_repo import DocumentRepository


class SessionRepository(DocumentRepository[Session]):
    """
    Open-session storage.

    Only active sessions live here; ending a session deletes its document
    once the invoice has been written.
    """

    collection_name = "sessions"
    model = Session

    async def list_active(self, db_session: Any = None) -> List[Session]:
        return await self.find(
            {"status": "active"},
            sort=[("started_at", 1)],
            db_session=db_session
        )
