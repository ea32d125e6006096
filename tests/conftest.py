from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from backspace.db.mongo import get_db
from backspace.main import app
from backspace.models.customer import Customer
from backspace.models.inventory import InventoryItem
from backspace.models.invoice import LineItem
from backspace.models.resource import Resource
from backspace.services.invoice_ledger import InvoiceLedger

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


@asynccontextmanager
async def fake_transaction(db):
    yield MagicMock(name="db_session")


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def resource():
    """Desk billed at 20.00 EGP/h."""
    return Resource(name="Desk 1", rate_per_hour=2000)


@pytest.fixture
def customer():
    return Customer(name="Mona Adel", phone="01000000000")


@pytest.fixture
def coffee():
    return InventoryItem(name="Coffee", category="beverage", price=1500, quantity=10)


@pytest.fixture
def make_invoice(now):
    """Build an unpaid invoice for `total` minor units."""
    def _make(total, customer_id="cust-1", due_date=None, created_at=None):
        created_at = created_at or now
        return InvoiceLedger.create(
            customer_id,
            [LineItem(description="Charge", quantity=1, rate=total, amount=total)],
            due_date=due_date or created_at + timedelta(days=7),
            now=created_at,
        )
    return _make


@pytest.fixture
def mock_db():
    return MagicMock(name="db")


@pytest.fixture
def client(mock_db):
    """Test client without lifespan, so no MongoDB connection is opened."""
    app.dependency_overrides[get_db] = lambda: mock_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_repo():
    """Repository double whose named methods are AsyncMocks returning the given values."""
    def _make(**methods):
        repo = MagicMock()
        for name, value in methods.items():
            setattr(repo, name, AsyncMock(return_value=value))
        return repo
    return _make


@pytest.fixture
def patch_endpoint(monkeypatch, now):
    """
    Swap repositories, the clock and the transaction helper in an endpoint module.

    Returns the AsyncMock standing in for sync_customer.
    """
    def _patch(module, **repos):
        monkeypatch.setattr(module, "transaction", fake_transaction)
        monkeypatch.setattr(module, "utcnow", lambda: now)
        sync = AsyncMock(return_value=0)
        if hasattr(module, "sync_customer"):
            monkeypatch.setattr(module, "sync_customer", sync)
        for name, repo in repos.items():
            monkeypatch.setattr(module, name, MagicMock(return_value=repo))
        return sync
    return _patch
