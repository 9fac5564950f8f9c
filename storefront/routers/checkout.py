from fastapi import APIRouter, Depends, Header, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.core.identity import CurrentUser, get_optional_user, get_tenant
from storefront.core.mongo import get_mongo_db
from storefront.schemas.order import CheckoutRequest, CheckoutSession
from storefront.services.payment_gateway import PaymentGateway, get_payment_gateway
from storefront.services.webhook_service import WebhookService

router = APIRouter(prefix="/checkout", tags=["Checkout"])


def get_webhook_service(
    db: AsyncIOMotorDatabase = Depends(get_mongo_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> WebhookService:
    return WebhookService(db, gateway)


@router.post("/sessions", response_model=CheckoutSession)
async def create_checkout_session(
    payload: CheckoutRequest,
    tenant: str = Depends(get_tenant),
    user: CurrentUser | None = Depends(get_optional_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Create a hosted checkout session and return its redirect URL."""
    metadata = {"tenant": tenant, "user_id": user.id if user else "guest"}
    return await gateway.create_checkout_session(payload.items, metadata)


@router.get("/sessions/{session_id}")
async def session_status(session_id: str, gateway: PaymentGateway = Depends(get_payment_gateway)):
    return await gateway.get_session(session_id)


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    service: WebhookService = Depends(get_webhook_service),
):
    """Receive payment provider events. The raw body is needed for signature checks."""
    payload = await request.body()
    return await service.handle_payment_webhook(payload, stripe_signature)
