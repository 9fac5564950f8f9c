import asyncio
import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from storefront.core.config import settings
from storefront.core.errors import NotFound, StoreUnavailable
from storefront.schemas.filters import CatalogProfile, FilterRequest
from storefront.schemas.product import CategoryCount, FacetResponse, ProductPage, ProductResponse
from storefront.services.pagination import paginate
from storefront.services.query_builder import (
    STOREFRONT_PROFILE,
    build_match,
    build_query,
    iter_active_filters,
)

logger = logging.getLogger(__name__)

PRODUCT_PROJECTION = {
    "_id": 0,
    "code": 1,
    "name": 1,
    "description": 1,
    "price": 1,
    "image_url": 1,
    "category": 1,
    "created_at": 1,
    "updated_at": 1,
}


class CatalogService:
    """Read-only queries over one tenant's product catalog."""

    def __init__(self, db: AsyncIOMotorDatabase, profile: CatalogProfile = STOREFRONT_PROFILE):
        self.db = db
        self.profile = profile
        self.collection = db[settings.PRODUCTS_COLLECTION]

    # ============================================================================
    # Product listings
    # ============================================================================

    async def list_products(self, tenant: str, request: FilterRequest) -> ProductPage:
        """Filter, sort and paginate products. Out-of-range pages clamp to the last page."""
        plan = build_query(tenant, request, self.profile)
        for note in plan.notes:
            logger.warning(f"[{self.profile.name}] {note}")

        try:
            total = await self.collection.count_documents(plan.filter)
            window = paginate(total, plan.page, plan.page_size)
            cursor = self.collection.find(
                plan.filter,
                PRODUCT_PROJECTION,
                sort=plan.sort,
                skip=window.offset,
                limit=window.limit,
            )
            documents = await cursor.to_list(length=window.limit)
        except PyMongoError as e:
            logger.error(f"Product listing failed for tenant {tenant}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e

        if window.clamped:
            logger.info(f"Requested page {window.requested_page} clamped to {window.page} of {window.total_pages}")

        filters = ", ".join(f"{kind}={label}" for kind, label in iter_active_filters(request)) or "none"
        logger.info(
            f"[{self.profile.name}] tenant={tenant} filters=({filters}) "
            f"page={window.page}/{window.total_pages} total={total}"
        )

        return ProductPage(
            items=[ProductResponse(**doc) for doc in documents],
            total=total,
            page=window.page,
            page_size=window.limit,
            total_pages=window.total_pages,
        )

    async def get_product(self, tenant: str, code: str) -> ProductResponse:
        try:
            document = await self.collection.find_one({"tenant": tenant, "code": code}, PRODUCT_PROJECTION)
        except PyMongoError as e:
            logger.error(f"Product lookup failed for {tenant}/{code}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e
        if document is None:
            raise NotFound(f"Product not found: {code}")
        return ProductResponse(**document)

    # ============================================================================
    # Categories and facets
    # ============================================================================

    async def category_counts(self, tenant: str) -> list[CategoryCount]:
        """Distinct non-empty category labels with global counts, sorted by label."""
        pipeline: list[dict[str, Any]] = [
            {"$match": {"tenant": tenant, "category": {"$nin": [None, ""]}}},
            {"$group": {"_id": "$category", "count": {"$sum": 1}}},
            {"$sort": {"_id": 1}},
        ]
        try:
            rows = await self.collection.aggregate(pipeline).to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Category listing failed for tenant {tenant}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e
        return [CategoryCount(name=row["_id"], count=row["count"]) for row in rows]

    async def list_categories(self, tenant: str) -> list[str]:
        return [row.name for row in await self.category_counts(tenant)]

    async def compute_facets(
        self,
        tenant: str,
        categories: list[str],
        request: FilterRequest,
    ) -> list[CategoryCount]:
        """
        Count matching products per category under the active filters.

        Every filter except the category selection itself is applied, so a
        checkbox shows how many results ticking it would add. All counts are
        fetched together; any failure fails the whole batch.
        """
        base = build_match(tenant, request, self.profile, include_categories=False)
        try:
            counts = await asyncio.gather(
                *(self.collection.count_documents({**base, "category": name}) for name in categories)
            )
        except PyMongoError as e:
            logger.error(f"Facet aggregation failed for tenant {tenant}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e

        facets = [CategoryCount(name=name, count=count) for name, count in zip(categories, counts)]
        facets.sort(key=lambda facet: (-facet.count, facet.name))
        return facets

    async def category_facets(self, tenant: str, request: FilterRequest) -> FacetResponse:
        """Facets for the filter sidebar. Store failures degrade to zero counts."""
        try:
            categories = await self.list_categories(tenant)
        except StoreUnavailable:
            logger.warning(f"Facets unavailable for tenant {tenant}; serving empty sidebar")
            return FacetResponse(facets=[], degraded=True)

        try:
            facets = await self.compute_facets(tenant, categories, request)
        except StoreUnavailable:
            logger.warning(f"Facet counts unavailable for tenant {tenant}; defaulting to 0")
            return FacetResponse(facets=[CategoryCount(name=name) for name in categories], degraded=True)
        return FacetResponse(facets=facets)
