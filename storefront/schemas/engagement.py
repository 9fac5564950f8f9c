from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class NewsletterSubscribe(BaseModel):
    # Presence is checked by the service so a blank email answers 400
    email: str | None = Field(default=None, max_length=320)
    name: str | None = Field(default=None, max_length=255)


class NewsletterSubscriber(BaseModel):
    email: str
    name: str | None = None
    source: str
    tenant: str
    subscribed_at: datetime | None = None
    updated_at: datetime | None = None


class AnalyticsEventIn(BaseModel):
    event_type: str | None = Field(default=None, max_length=100)
    event_data: dict[str, Any] | None = None


class RequestContext(BaseModel):
    """Who sent an analytics event and from where."""

    tenant: str
    user_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
