import logging
import re
from datetime import UTC, datetime, time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from storefront.core.config import settings
from storefront.core.errors import StoreUnavailable
from storefront.schemas.order import DashboardStats, OrderPage, OrderResponse, PaymentCompletedEvent
from storefront.services.catalog_service import CatalogService
from storefront.services.pagination import paginate
from storefront.services.query_builder import ADMIN_PROFILE

logger = logging.getLogger(__name__)

ORDER_PROJECTION = {"_id": 0}
COMPLETED = "completed"


class OrderService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[settings.ORDERS_COLLECTION]
        self.products = db[settings.PRODUCTS_COLLECTION]

    async def record_payment(self, event: PaymentCompletedEvent) -> OrderResponse:
        """Persist a completed payment. Replayed webhooks update the same order."""
        user_id = event.metadata.get("user_id")
        document = {
            "session_id": event.session_id,
            "payment_intent_id": event.payment_intent_id,
            "tenant": event.metadata.get("tenant"),
            "user_id": None if user_id in (None, "guest") else user_id,
            "customer_email": event.customer_email,
            "customer_name": event.customer_name,
            "amount_total": event.amount_total,
            "currency": event.currency,
            "status": COMPLETED,
            "line_items": event.line_items,
            "shipping_address": event.shipping_address,
            "metadata": event.metadata,
        }
        try:
            await self.collection.update_one(
                {"session_id": event.session_id},
                {"$set": document, "$setOnInsert": {"created_at": datetime.now(UTC)}},
                upsert=True,
            )
            stored = await self.collection.find_one({"session_id": event.session_id}, ORDER_PROJECTION)
        except PyMongoError as e:
            logger.error(f"Failed to record order for session {event.session_id}: {e}")
            raise StoreUnavailable("Order store is unavailable") from e

        logger.info(
            f"Order saved: session={event.session_id} amount={event.amount_total:.2f} "
            f"{event.currency.upper()} email={event.customer_email}"
        )
        return OrderResponse(**stored)

    async def orders_for_email(self, tenant: str, email: str) -> list[OrderResponse]:
        try:
            rows = await self.collection.find(
                {"tenant": tenant, "customer_email": email},
                ORDER_PROJECTION,
                sort=[("created_at", DESCENDING)],
            ).to_list(length=None)
        except PyMongoError as e:
            raise StoreUnavailable("Order store is unavailable") from e
        return [OrderResponse(**row) for row in rows]

    async def list_orders(
        self,
        tenant: str,
        page: int = 1,
        page_size: int = settings.ORDERS_PAGE_SIZE,
        status: str | None = None,
        search: str | None = None,
    ) -> OrderPage:
        """Admin order listing, newest first."""
        query: dict[str, Any] = {"tenant": tenant}
        if status and status != "all":
            query["status"] = status
        if search and search.strip():
            pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
            query["$or"] = [{"customer_email": pattern}, {"customer_name": pattern}]

        try:
            total = await self.collection.count_documents(query)
            window = paginate(total, page, page_size)
            rows = await self.collection.find(
                query,
                ORDER_PROJECTION,
                sort=[("created_at", DESCENDING)],
                skip=window.offset,
                limit=window.limit,
            ).to_list(length=window.limit)
        except PyMongoError as e:
            raise StoreUnavailable("Order store is unavailable") from e

        return OrderPage(
            items=[OrderResponse(**row) for row in rows],
            total=total,
            page=window.page,
            page_size=window.limit,
            total_pages=window.total_pages,
        )

    async def dashboard_stats(self, tenant: str) -> DashboardStats:
        # Stored datetimes come back naive UTC
        start_of_day = datetime.combine(datetime.now(UTC).date(), time.min)
        revenue_pipeline = [
            {"$match": {"tenant": tenant, "status": COMPLETED}},
            {"$group": {"_id": None, "revenue": {"$sum": "$amount_total"}}},
        ]
        try:
            total_products = await self.products.count_documents({"tenant": tenant})
            categories = await CatalogService(self.db, ADMIN_PROFILE).list_categories(tenant)
            total_orders = await self.collection.count_documents({"tenant": tenant})
            orders_today = await self.collection.count_documents(
                {"tenant": tenant, "created_at": {"$gte": start_of_day}}
            )
            revenue_rows = await self.collection.aggregate(revenue_pipeline).to_list(length=None)
            recent = await self.collection.find(
                {"tenant": tenant}, ORDER_PROJECTION, sort=[("created_at", DESCENDING)], limit=5
            ).to_list(length=5)
        except PyMongoError as e:
            raise StoreUnavailable("Order store is unavailable") from e

        return DashboardStats(
            total_products=total_products,
            total_categories=len(categories),
            total_orders=total_orders,
            orders_today=orders_today,
            total_revenue=round(revenue_rows[0]["revenue"], 2) if revenue_rows else 0.0,
            recent_orders=[OrderResponse(**row) for row in recent],
        )
