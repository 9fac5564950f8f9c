from datetime import datetime

from pydantic import BaseModel, Field


class CartItemIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., ge=0)
    image: str | None = None
    quantity: int = Field(default=1, ge=1, le=999)


class CartItem(BaseModel):
    product_code: str
    product_name: str
    product_price: float
    product_image: str | None = None
    quantity: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartSyncRequest(BaseModel):
    items: list[CartItemIn]


class WishlistItemIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str | None = None
    image: str | None = None


class WishlistItem(BaseModel):
    product_code: str
    product_name: str | None = None
    product_image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
