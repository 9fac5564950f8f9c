import logging
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from storefront.core.config import settings
from storefront.core.errors import StoreUnavailable
from storefront.schemas.order import PaymentCompletedEvent
from storefront.services.order_service import OrderService
from storefront.services.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"


def normalize_completed_session(session: dict[str, Any], line_items: list[dict[str, Any]]) -> PaymentCompletedEvent:
    """Map a provider checkout session onto the normalized payment-completed event."""
    customer = session.get("customer_details") or {}
    shipping = session.get("shipping_details") or {}
    amount_minor = session.get("amount_total") or 0
    return PaymentCompletedEvent(
        session_id=session["id"],
        payment_intent_id=session.get("payment_intent"),
        customer_email=customer.get("email"),
        customer_name=customer.get("name"),
        amount_total=amount_minor / 100,
        currency=(session.get("currency") or "usd").lower(),
        line_items=line_items,
        shipping_address=shipping.get("address"),
        metadata=session.get("metadata") or {},
    )


class WebhookService:
    def __init__(self, db: AsyncIOMotorDatabase, gateway: PaymentGateway):
        self.db = db
        self.collection = db[settings.WEBHOOKS_COLLECTION]
        self.gateway = gateway
        self.orders = OrderService(db)

    async def store_webhook(self, source: str, event: dict[str, Any]) -> ObjectId:
        """Store a verified webhook event for auditing."""
        document = {
            "source": source,
            "event_id": event.get("id"),
            "event_type": event.get("type"),
            "payload": event,
            "received_at": datetime.now(UTC),
            "processed": False,
        }
        try:
            result = await self.collection.insert_one(document)
        except PyMongoError as e:
            raise StoreUnavailable("Webhook store is unavailable") from e
        return result.inserted_id

    async def get_webhooks(
        self, event_type: str | None = None, skip: int = 0, limit: int = 100
    ) -> list[dict[str, Any]]:
        """Retrieve stored webhook receipts, newest first."""
        query = {}
        if event_type:
            query["event_type"] = event_type

        try:
            cursor = self.collection.find(query, sort=[("received_at", DESCENDING)], skip=skip, limit=limit)
            webhooks = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise StoreUnavailable("Webhook store is unavailable") from e

        for webhook in webhooks:
            webhook["id"] = str(webhook.pop("_id"))

        return webhooks

    async def mark_processed(self, webhook_id: ObjectId) -> bool:
        try:
            result = await self.collection.update_one(
                {"_id": webhook_id}, {"$set": {"processed": True, "processed_at": datetime.now(UTC)}}
            )
        except PyMongoError as e:
            raise StoreUnavailable("Webhook store is unavailable") from e
        return result.modified_count > 0

    async def handle_payment_webhook(self, payload: bytes, signature_header: str | None) -> dict[str, Any]:
        """
        Verify, store and act on a payment provider webhook.

        Raises:
            PaymentError: signature verification failed
            StoreUnavailable: the event could not be stored
        """
        event = self.gateway.verify_webhook(payload, signature_header)
        event_type = event.get("type", "")
        session = (event.get("data") or {}).get("object") or {}
        webhook_id = await self.store_webhook("payment", event)

        if event_type == CHECKOUT_COMPLETED:
            line_items = await self.gateway.list_line_items(session["id"])
            completed = normalize_completed_session(session, line_items)
            await self.orders.record_payment(completed)
            await self.mark_processed(webhook_id)
            logger.info(f"Payment completed for session {completed.session_id}")
        elif event_type == ASYNC_PAYMENT_SUCCEEDED:
            logger.info(f"Async payment succeeded: {session.get('id')}")
        elif event_type == ASYNC_PAYMENT_FAILED:
            logger.error(f"Async payment failed: {session.get('id')}")
        else:
            logger.info(f"Unhandled payment event type: {event_type}")

        return {"received": True, "type": event_type}
