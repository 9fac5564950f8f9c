import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from storefront.core.config import settings

logger = logging.getLogger(__name__)
mongo_client: AsyncIOMotorClient | None = None
mongo_db: AsyncIOMotorDatabase | None = None


async def connect_mongo():
    global mongo_client, mongo_db
    mongo_client = AsyncIOMotorClient(
        settings.MONGO_URL,
        serverSelectionTimeoutMS=settings.STORE_TIMEOUT_MS,
        socketTimeoutMS=settings.STORE_TIMEOUT_MS,
    )
    mongo_db = mongo_client[settings.MONGO_DB_NAME]
    logger.info(f"Connected to MongoDB: {settings.MONGO_DB_NAME}")


async def close_mongo():
    global mongo_client, mongo_db
    if mongo_client:
        mongo_client.close()
        mongo_client = None
        mongo_db = None
        logger.info("MongoDB connection closed")


def get_mongo_db() -> AsyncIOMotorDatabase:
    if mongo_db is None:
        raise RuntimeError("MongoDB not connected. Ensure connect_mongo() was called.")
    return mongo_db


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the uniqueness and lookup indexes the query shapes rely on."""
    products = db[settings.PRODUCTS_COLLECTION]
    await products.create_index([("tenant", ASCENDING), ("code", ASCENDING)], unique=True)
    await products.create_index([("tenant", ASCENDING), ("category", ASCENDING)])
    await products.create_index([("tenant", ASCENDING), ("price", ASCENDING)])

    await db[settings.CART_COLLECTION].create_index(
        [("user_id", ASCENDING), ("product_code", ASCENDING)], unique=True
    )
    await db[settings.WISHLIST_COLLECTION].create_index(
        [("user_id", ASCENDING), ("product_code", ASCENDING)], unique=True
    )

    orders = db[settings.ORDERS_COLLECTION]
    await orders.create_index("session_id", unique=True)
    await orders.create_index([("created_at", DESCENDING)])

    await db[settings.NEWSLETTER_COLLECTION].create_index([("tenant", ASCENDING), ("email", ASCENDING)], unique=True)
    await db[settings.ANALYTICS_COLLECTION].create_index([("event_type", ASCENDING), ("created_at", DESCENDING)])
    logger.info("MongoDB indexes ensured")
