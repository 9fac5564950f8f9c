from fastapi import APIRouter, Depends, Header, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.core.identity import CurrentUser, get_optional_user, get_tenant
from storefront.core.mongo import get_mongo_db
from storefront.schemas.engagement import AnalyticsEventIn, NewsletterSubscribe, RequestContext
from storefront.services.engagement_service import EngagementService

router = APIRouter(tags=["Engagement"])


def get_engagement_service(db: AsyncIOMotorDatabase = Depends(get_mongo_db)) -> EngagementService:
    return EngagementService(db)


@router.post("/newsletter")
async def subscribe_newsletter(
    payload: NewsletterSubscribe,
    tenant: str = Depends(get_tenant),
    service: EngagementService = Depends(get_engagement_service),
):
    subscriber = await service.subscribe(tenant, payload)
    return {"success": True, "subscriber": subscriber}


@router.post("/analytics")
async def record_analytics_event(
    payload: AnalyticsEventIn,
    request: Request,
    user_agent: str | None = Header(default=None),
    tenant: str = Depends(get_tenant),
    user: CurrentUser | None = Depends(get_optional_user),
    service: EngagementService = Depends(get_engagement_service),
):
    """Store a client-side event. Anonymous visitors are recorded without a user id."""
    context = RequestContext(
        tenant=tenant,
        user_id=user.id if user else None,
        ip_address=request.client.host if request.client else None,
        user_agent=user_agent,
    )
    await service.record_event(context, payload)
    return {"success": True}
