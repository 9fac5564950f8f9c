from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.core.identity import CurrentUser, get_tenant, require_user
from storefront.core.mongo import get_mongo_db
from storefront.schemas.cart import CartItemIn, CartSyncRequest, WishlistItemIn
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService

router = APIRouter(tags=["Cart"])


def get_cart_service(db: AsyncIOMotorDatabase = Depends(get_mongo_db)) -> CartService:
    return CartService(db)


@router.get("/me")
async def current_user(user: CurrentUser = Depends(require_user)):
    return {"user": user}


# ============================================================================
# Cart
# ============================================================================


@router.get("/cart")
async def get_cart(user: CurrentUser = Depends(require_user), service: CartService = Depends(get_cart_service)):
    return {"items": await service.get_cart(user.id)}


@router.post("/cart/add")
async def add_to_cart(
    payload: CartItemIn,
    user: CurrentUser = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    """Add or replace a cart line. Repeating a code overwrites the previous line."""
    item = await service.add_item(user.id, payload)
    return {"success": True, "item": item}


@router.post("/cart/sync")
async def sync_cart(
    payload: CartSyncRequest,
    user: CurrentUser = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    count = await service.sync(user.id, payload.items)
    return {"success": True, "count": count}


@router.delete("/cart/{code}")
async def remove_from_cart(
    code: str,
    user: CurrentUser = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    await service.remove_item(user.id, code)
    return {"success": True}


# ============================================================================
# Wishlist
# ============================================================================


@router.get("/wishlist")
async def get_wishlist(user: CurrentUser = Depends(require_user), service: CartService = Depends(get_cart_service)):
    return {"items": await service.get_wishlist(user.id)}


@router.post("/wishlist")
async def add_to_wishlist(
    payload: WishlistItemIn,
    user: CurrentUser = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    item = await service.add_to_wishlist(user.id, payload)
    return {"success": True, "item": item}


@router.delete("/wishlist/{code}")
async def remove_from_wishlist(
    code: str,
    user: CurrentUser = Depends(require_user),
    service: CartService = Depends(get_cart_service),
):
    await service.remove_from_wishlist(user.id, code)
    return {"success": True}


# ============================================================================
# Order history
# ============================================================================


@router.get("/orders")
async def order_history(
    user: CurrentUser = Depends(require_user),
    tenant: str = Depends(get_tenant),
    db: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    """Orders placed in this store with the signed-in user's email, newest first."""
    if not user.email:
        return {"orders": []}
    return {"orders": await OrderService(db).orders_for_email(tenant, user.email)}
