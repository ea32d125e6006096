from fastapi import APIRouter
from backspace.api.v1.endpoints import customers, invoices, sessions, subscriptions

api_router = APIRouter()

api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
