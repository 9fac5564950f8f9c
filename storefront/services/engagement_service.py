"""
Newsletter sign-ups and client analytics events.

Both are write-only from the storefront: subscribers are upserted by their
normalized email within a tenant, events are appended as they arrive.
"""

import logging
from datetime import UTC, datetime

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from storefront.core.config import settings
from storefront.core.errors import BadRequest, StoreUnavailable
from storefront.schemas.engagement import AnalyticsEventIn, NewsletterSubscribe, NewsletterSubscriber, RequestContext

logger = logging.getLogger(__name__)

SUBSCRIBER_SOURCE = "website"


class EngagementService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.subscribers = db[settings.NEWSLETTER_COLLECTION]
        self.events = db[settings.ANALYTICS_COLLECTION]

    async def subscribe(self, tenant: str, payload: NewsletterSubscribe) -> NewsletterSubscriber:
        """Add or refresh a subscriber. The same address in any casing is one subscriber."""
        email = (payload.email or "").strip().lower()
        if not email:
            raise BadRequest("Email is required")

        now = datetime.now(UTC)
        try:
            row = await self.subscribers.find_one_and_update(
                {"tenant": tenant, "email": email},
                {
                    "$set": {"name": payload.name or None, "source": SUBSCRIBER_SOURCE, "updated_at": now},
                    "$setOnInsert": {"subscribed_at": now},
                },
                projection={"_id": 0},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Failed to store newsletter subscriber for tenant {tenant}: {e}")
            raise StoreUnavailable("Newsletter store is unavailable") from e

        logger.info(f"Newsletter subscriber upserted: tenant={tenant} email={email}")
        return NewsletterSubscriber(**row)

    async def record_event(self, context: RequestContext, payload: AnalyticsEventIn) -> None:
        event_type = (payload.event_type or "").strip()
        if not event_type:
            raise BadRequest("event_type is required")

        document = {
            **context.model_dump(),
            "event_type": event_type,
            "event_data": payload.event_data or {},
            "created_at": datetime.now(UTC),
        }
        try:
            await self.events.insert_one(document)
        except PyMongoError as e:
            raise StoreUnavailable("Analytics store is unavailable") from e
        logger.debug(f"Analytics event {event_type} recorded for tenant {context.tenant}")
