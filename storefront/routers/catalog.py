from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.core.identity import get_tenant
from storefront.core.mongo import get_mongo_db
from storefront.schemas.filters import FilterRequest
from storefront.schemas.product import CategoryListResponse, FacetResponse, ProductPage, ProductResponse
from storefront.services.catalog_service import CatalogService
from storefront.services.query_builder import STOREFRONT_PROFILE, parse_filter_request

router = APIRouter(tags=["Catalog"])


def get_catalog_service(db: AsyncIOMotorDatabase = Depends(get_mongo_db)) -> CatalogService:
    return CatalogService(db, STOREFRONT_PROFILE)


def storefront_filters(
    search: str | None = Query(None, description="Substring match against the product name"),
    category: list[str] | None = Query(None, description="Category filter (can be repeated)"),
    price_min: str | None = Query(None, description="Inclusive lower price bound"),
    price_max: str | None = Query(None, description="Inclusive upper price bound"),
    sort: str | None = Query(None, description="One of: name, price, createdAt"),
    order: str | None = Query(None, description="asc or desc"),
    page: str | None = Query(None, description="1-based page number"),
    limit: str | None = Query(None, description="Page size"),
) -> FilterRequest:
    """Raw query-string values; anything malformed is defaulted, never rejected."""
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
        STOREFRONT_PROFILE,
    )


@router.get("/products", response_model=ProductPage)
async def list_products(
    filters: FilterRequest = Depends(storefront_filters),
    tenant: str = Depends(get_tenant),
    service: CatalogService = Depends(get_catalog_service),
):
    """List products with search, category, price filters, sorting and pagination.
    Use: ?search=cable&category=Audio&category=Video&price_min=50&sort=price&order=desc&page=2"""
    return await service.list_products(tenant, filters)


@router.get("/products/{code}", response_model=ProductResponse)
async def get_product(
    code: str,
    tenant: str = Depends(get_tenant),
    service: CatalogService = Depends(get_catalog_service),
):
    """Get a single product by its code."""
    return await service.get_product(tenant, code)


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    with_counts: bool = Query(False, description="Include per-category product counts"),
    tenant: str = Depends(get_tenant),
    service: CatalogService = Depends(get_catalog_service),
):
    counts = await service.category_counts(tenant)
    return CategoryListResponse(
        categories=[row.name for row in counts],
        counts=counts if with_counts else None,
    )


@router.get("/categories/facets", response_model=FacetResponse)
async def category_facets(
    filters: FilterRequest = Depends(storefront_filters),
    tenant: str = Depends(get_tenant),
    service: CatalogService = Depends(get_catalog_service),
):
    """Per-category counts under every active filter except the category selection."""
    return await service.category_facets(tenant, filters)
