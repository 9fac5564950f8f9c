"""
Persistent cart and wishlist rows for signed-in users.

Rows are keyed by (user_id, product_code). Writes are upserts: a second
write for the same key replaces the stored values (last write wins).
"""

import logging
from datetime import UTC, datetime

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, DeleteMany, ReturnDocument, UpdateOne
from pymongo.errors import PyMongoError

from storefront.core.config import settings
from storefront.core.errors import NotFound, StoreUnavailable
from storefront.schemas.cart import CartItem, CartItemIn, WishlistItem, WishlistItemIn

logger = logging.getLogger(__name__)

ROW_PROJECTION = {"_id": 0, "user_id": 0}


class CartService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.cart = db[settings.CART_COLLECTION]
        self.wishlist = db[settings.WISHLIST_COLLECTION]

    # ============================================================================
    # Cart
    # ============================================================================

    async def get_cart(self, user_id: str) -> list[CartItem]:
        try:
            rows = await self.cart.find(
                {"user_id": user_id}, ROW_PROJECTION, sort=[("created_at", DESCENDING)]
            ).to_list(length=None)
        except PyMongoError as e:
            raise StoreUnavailable("Cart store is unavailable") from e
        return [CartItem(**row) for row in rows]

    async def add_item(self, user_id: str, item: CartItemIn) -> CartItem:
        now = datetime.now(UTC)
        try:
            row = await self.cart.find_one_and_update(
                {"user_id": user_id, "product_code": item.code},
                {
                    "$set": {
                        "product_name": item.name,
                        "product_price": item.price,
                        "product_image": item.image,
                        "quantity": item.quantity,
                        "updated_at": now,
                    },
                    "$setOnInsert": {"created_at": now},
                },
                projection=ROW_PROJECTION,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreUnavailable("Cart store is unavailable") from e
        logger.info(f"Cart upsert user={user_id} code={item.code} qty={item.quantity}")
        return CartItem(**row)

    async def remove_item(self, user_id: str, code: str) -> None:
        try:
            result = await self.cart.delete_one({"user_id": user_id, "product_code": code})
        except PyMongoError as e:
            raise StoreUnavailable("Cart store is unavailable") from e
        if result.deleted_count == 0:
            raise NotFound(f"Product {code} is not in the cart")

    async def sync(self, user_id: str, items: list[CartItemIn]) -> int:
        """Replace the whole cart with ``items``. Duplicate codes keep the last entry.

        Surviving lines are upserted in place, so their ``created_at`` is kept,
        and every other line of the user is dropped in the same bulk write.
        """
        now = datetime.now(UTC)
        latest = {item.code: item for item in items}
        operations: list = [
            UpdateOne(
                {"user_id": user_id, "product_code": code},
                {
                    "$set": {
                        "product_name": item.name,
                        "product_price": item.price,
                        "product_image": item.image,
                        "quantity": item.quantity,
                        "updated_at": now,
                    },
                    "$setOnInsert": {"created_at": now},
                },
                upsert=True,
            )
            for code, item in latest.items()
        ]
        operations.append(DeleteMany({"user_id": user_id, "product_code": {"$nin": list(latest)}}))
        try:
            await self.cart.bulk_write(operations, ordered=True)
        except PyMongoError as e:
            raise StoreUnavailable("Cart store is unavailable") from e
        logger.info(f"Cart synced user={user_id} items={len(latest)}")
        return len(latest)

    # ============================================================================
    # Wishlist
    # ============================================================================

    async def get_wishlist(self, user_id: str) -> list[WishlistItem]:
        try:
            rows = await self.wishlist.find(
                {"user_id": user_id}, ROW_PROJECTION, sort=[("created_at", DESCENDING)]
            ).to_list(length=None)
        except PyMongoError as e:
            raise StoreUnavailable("Wishlist store is unavailable") from e
        return [WishlistItem(**row) for row in rows]

    async def add_to_wishlist(self, user_id: str, item: WishlistItemIn) -> WishlistItem:
        now = datetime.now(UTC)
        try:
            row = await self.wishlist.find_one_and_update(
                {"user_id": user_id, "product_code": item.code},
                {
                    "$set": {"product_name": item.name, "product_image": item.image, "updated_at": now},
                    "$setOnInsert": {"created_at": now},
                },
                projection=ROW_PROJECTION,
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreUnavailable("Wishlist store is unavailable") from e
        return WishlistItem(**row)

    async def remove_from_wishlist(self, user_id: str, code: str) -> None:
        try:
            result = await self.wishlist.delete_one({"user_id": user_id, "product_code": code})
        except PyMongoError as e:
            raise StoreUnavailable("Wishlist store is unavailable") from e
        if result.deleted_count == 0:
            raise NotFound(f"Product {code} is not in the wishlist")
