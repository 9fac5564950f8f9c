from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(..., ge=0, description="Unit price in USD")
    image_url: str | None = None
    category: str | None = Field(None, max_length=120)


class ProductCreate(ProductBase):
    code: str = Field(..., min_length=1, max_length=100, description="Tenant-scoped product code")


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    price: float | None = Field(None, ge=0)
    image_url: str | None = None
    category: str | None = Field(None, max_length=120)


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    code: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductPage(BaseModel):
    """One page of a filtered product listing."""

    items: list[ProductResponse]
    total: int = Field(..., ge=0, description="Matching rows across all pages")
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=1)


# ============================================================================
# Category listings and facets
# ============================================================================


class CategoryCount(BaseModel):
    name: str
    count: int = 0


class CategoryListResponse(BaseModel):
    """Distinct category labels, alphabetically sorted."""

    categories: list[str]
    counts: list[CategoryCount] | None = None


class FacetResponse(BaseModel):
    """Per-category counts under the active filters, highest count first."""

    facets: list[CategoryCount]
    degraded: bool = Field(
        default=False,
        description="True when counts could not be computed and default to 0",
    )


class CategoryRename(BaseModel):
    old_name: str = Field(..., min_length=1)
    new_name: str = Field(..., min_length=1, max_length=120)
