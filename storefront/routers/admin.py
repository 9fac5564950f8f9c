from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.core.config import settings
from storefront.core.identity import get_tenant, require_admin
from storefront.core.mongo import get_mongo_db
from storefront.routers.checkout import get_webhook_service
from storefront.schemas.filters import FilterRequest
from storefront.schemas.order import DashboardStats, OrderPage
from storefront.schemas.product import (
    CategoryRename,
    ProductCreate,
    ProductPage,
    ProductResponse,
    ProductUpdate,
)
from storefront.services.admin_service import AdminService
from storefront.services.order_service import OrderService
from storefront.services.query_builder import ADMIN_PROFILE, parse_filter_request
from storefront.services.webhook_service import WebhookService

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def get_admin_service(db: AsyncIOMotorDatabase = Depends(get_mongo_db)) -> AdminService:
    return AdminService(db)


def get_order_service(db: AsyncIOMotorDatabase = Depends(get_mongo_db)) -> OrderService:
    return OrderService(db)


def admin_filters(
    search: str | None = Query(None, description="Matches code, name or description"),
    category: list[str] | None = Query(None, description="Category filter (can be repeated)"),
    price_min: str | None = Query(None),
    price_max: str | None = Query(None),
    sort: str | None = Query(None, description="One of: code, name, price, category, createdAt"),
    order: str | None = Query(None),
    page: str | None = Query(None),
    limit: str | None = Query(None),
) -> FilterRequest:
    return parse_filter_request(
        {
            "search": search,
            "categories": category,
            "price_min": price_min,
            "price_max": price_max,
            "sort": sort,
            "direction": order,
            "page": page,
            "page_size": limit,
        },
        ADMIN_PROFILE,
    )


# ============================================================================
# Products
# ============================================================================


@router.get("/products", response_model=ProductPage)
async def list_products(
    filters: FilterRequest = Depends(admin_filters),
    tenant: str = Depends(get_tenant),
    service: AdminService = Depends(get_admin_service),
):
    return await service.list_products(tenant, filters)


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    tenant: str = Depends(get_tenant),
    service: AdminService = Depends(get_admin_service),
):
    return await service.create_product(tenant, payload)


@router.put("/products/{code}", response_model=ProductResponse)
async def update_product(
    code: str,
    payload: ProductUpdate,
    tenant: str = Depends(get_tenant),
    service: AdminService = Depends(get_admin_service),
):
    return await service.update_product(tenant, code, payload)


@router.delete("/products/{code}")
async def delete_product(
    code: str,
    tenant: str = Depends(get_tenant),
    service: AdminService = Depends(get_admin_service),
):
    await service.delete_product(tenant, code)
    return {"success": True, "message": f"Product {code} deleted"}


@router.put("/categories")
async def rename_category(
    payload: CategoryRename,
    tenant: str = Depends(get_tenant),
    service: AdminService = Depends(get_admin_service),
):
    """Rename a category across every product that carries it."""
    updated = await service.rename_category(tenant, payload.old_name, payload.new_name)
    return {"success": True, "updated": updated}


# ============================================================================
# Orders and dashboard
# ============================================================================


@router.get("/orders", response_model=OrderPage)
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.ORDERS_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = None,
    tenant: str = Depends(get_tenant),
    service: OrderService = Depends(get_order_service),
):
    return await service.list_orders(tenant, page=page, page_size=limit, status=status_filter, search=search)


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    tenant: str = Depends(get_tenant),
    service: OrderService = Depends(get_order_service),
):
    return await service.dashboard_stats(tenant)


@router.get("/webhooks")
async def list_webhooks(
    event_type: str | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    service: WebhookService = Depends(get_webhook_service),
):
    """Stored payment webhook receipts."""
    webhooks = await service.get_webhooks(event_type=event_type, skip=skip, limit=limit)
    return {"webhooks": webhooks, "count": len(webhooks)}
