import logging
from datetime import UTC, datetime

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from storefront.core.config import settings
from storefront.core.errors import Conflict, NotFound, StoreUnavailable, ValidationError
from storefront.schemas.filters import FilterRequest
from storefront.schemas.product import ProductCreate, ProductPage, ProductResponse, ProductUpdate
from storefront.services.catalog_service import PRODUCT_PROJECTION, CatalogService
from storefront.services.query_builder import ADMIN_PROFILE

logger = logging.getLogger(__name__)


class AdminService:
    """Catalog mutations for the admin panel. The storefront only ever reads."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[settings.PRODUCTS_COLLECTION]
        self.catalog = CatalogService(db, ADMIN_PROFILE)

    async def list_products(self, tenant: str, request: FilterRequest) -> ProductPage:
        return await self.catalog.list_products(tenant, request)

    async def create_product(self, tenant: str, payload: ProductCreate) -> ProductResponse:
        """Insert a new product. The code must be unused within the tenant."""
        now = datetime.now(UTC)
        document = {
            "tenant": tenant,
            **payload.model_dump(),
            "created_at": now,
            "updated_at": now,
        }
        try:
            existing = await self.collection.find_one({"tenant": tenant, "code": payload.code}, {"_id": 1})
            if existing:
                raise Conflict(f"Product code {payload.code} already exists")
            await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise Conflict(f"Product code {payload.code} already exists") from e
        except PyMongoError as e:
            logger.error(f"Create failed for {tenant}/{payload.code}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e

        logger.info(f"Created product {tenant}/{payload.code}")
        return ProductResponse(**{k: v for k, v in document.items() if k not in ("_id", "tenant")})

    async def update_product(self, tenant: str, code: str, payload: ProductUpdate) -> ProductResponse:
        """Apply only the fields present in the payload."""
        updates = payload.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] is None:
            raise ValidationError("name cannot be cleared")
        if "price" in updates and updates["price"] is None:
            raise ValidationError("price cannot be cleared")
        if not updates:
            raise ValidationError("No fields to update")
        updates["updated_at"] = datetime.now(UTC)

        try:
            document = await self.collection.find_one_and_update(
                {"tenant": tenant, "code": code},
                {"$set": updates},
                projection=PRODUCT_PROJECTION,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Update failed for {tenant}/{code}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e

        if document is None:
            raise NotFound(f"Product not found: {code}")
        logger.info(f"Updated product {tenant}/{code}: {sorted(updates)}")
        return ProductResponse(**document)

    async def delete_product(self, tenant: str, code: str) -> None:
        try:
            result = await self.collection.delete_one({"tenant": tenant, "code": code})
        except PyMongoError as e:
            logger.error(f"Delete failed for {tenant}/{code}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e
        if result.deleted_count == 0:
            raise NotFound(f"Product not found: {code}")
        logger.info(f"Deleted product {tenant}/{code}")

    async def rename_category(self, tenant: str, old_name: str, new_name: str) -> int:
        """Move every product of ``old_name`` to ``new_name``. Returns rows changed."""
        try:
            result = await self.collection.update_many(
                {"tenant": tenant, "category": old_name},
                {"$set": {"category": new_name.strip(), "updated_at": datetime.now(UTC)}},
            )
        except PyMongoError as e:
            logger.error(f"Category rename failed for tenant {tenant}: {e}")
            raise StoreUnavailable("Catalog store is unavailable") from e
        logger.info(f"Renamed category {old_name!r} -> {new_name!r} on {result.modified_count} products")
        return result.modified_count
