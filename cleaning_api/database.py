import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from .config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

_client = AsyncIOMotorClient(settings.MONGODB_URL)
_db = _client[settings.DATABASE_NAME]


async def get_database():
    """
    FastAPI dependency that returns a Motor (async) MongoDB handle.
    """
    return _db


async def ensure_indexes(db: AsyncIOMotorDatabase):
    # Identifier uniqueness is what turns an allocation race into a retryable error.
    await db.bookings.create_index("bookingNumber", unique=True, sparse=True)
    await db.bookings.create_index([("createdAt", DESCENDING)])
    await db.bookings.create_index([("status", ASCENDING)])

    await db.contacts.create_index("contactNumber", unique=True, sparse=True)
    await db.contacts.create_index([("submittedAt", DESCENDING)])
    await db.contacts.create_index([("status", ASCENDING)])
    await db.contacts.create_index([("priority", ASCENDING)])

    await db.services.create_index("slug", unique=True)
    await db.services.create_index([("category", ASCENDING), ("isActive", ASCENDING)])

    await db.testimonials.create_index([("isActive", ASCENDING), ("isApproved", ASCENDING)])

    await db.users.create_index("email", unique=True)
    logger.info("Ensured MongoDB indexes exist")


def close_client():
    _client.close()
