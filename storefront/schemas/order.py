from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class CheckoutLineItem(BaseModel):
    """Line item handed to the hosted checkout provider."""

    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., gt=0, description="Unit price in USD")
    quantity: int = Field(..., ge=1, le=999)
    image: str | None = None
    description: str | None = None


class CheckoutRequest(BaseModel):
    items: list[CheckoutLineItem]

    @field_validator("items")
    @classmethod
    def items_not_empty(cls, value: list[CheckoutLineItem]) -> list[CheckoutLineItem]:
        if not value:
            raise ValueError("No items provided")
        return value


class CheckoutSession(BaseModel):
    id: str
    url: str


class PaymentCompletedEvent(BaseModel):
    """Normalized 'payment completed' event emitted by the payment collaborator."""

    session_id: str
    payment_intent_id: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    amount_total: float = Field(..., ge=0, description="Amount in major currency units")
    currency: str = "usd"
    line_items: list[dict[str, Any]] = Field(default_factory=list)
    shipping_address: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class OrderResponse(BaseModel):
    session_id: str
    payment_intent_id: str | None = None
    tenant: str | None = None
    user_id: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    amount_total: float
    currency: str
    status: str
    line_items: list[dict[str, Any]] = Field(default_factory=list)
    shipping_address: dict[str, Any] | None = None
    created_at: datetime | None = None


class OrderPage(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class DashboardStats(BaseModel):
    total_products: int
    total_categories: int
    total_orders: int
    orders_today: int
    total_revenue: float
    recent_orders: list[OrderResponse]
