import logging
from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from backspace.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
    mongodb.db = mongodb.client[settings.MONGODB_DB]

    # Create indexes
    await create_indexes()
    logger.info("Connected to MongoDB: %s", settings.MONGODB_DB)

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    # Invoice indexes
    await mongodb.db["invoices"].create_index("invoice_number", unique=True)
    await mongodb.db["invoices"].create_index([("customer_id", 1), ("status", 1)])
    await mongodb.db["invoices"].create_index([("due_date", 1), ("created_at", 1)])

    # Session indexes: at most one open session per resource
    await mongodb.db["sessions"].create_index("resource_id", unique=True)
    await mongodb.db["sessions"].create_index("customer_id")

    # Subscription indexes
    await mongodb.db["subscriptions"].create_index([("customer_id", 1), ("status", 1)])

    # Adjustment indexes
    await mongodb.db["balance_adjustments"].create_index("customer_id")

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db

@asynccontextmanager
async def transaction(db: AsyncIOMotorDatabase):
    """Run the enclosed writes in one MongoDB transaction; yields the client session."""
    async with await db.client.start_session() as db_session:
        async with db_session.start_transaction():
            yield db_session
