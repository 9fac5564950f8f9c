"""
Request-scoped identity resolution.

Authentication itself happens upstream: the auth gateway forwards the
signed-in user as ``X-User-*`` headers. Browsing never needs a user;
cart, wishlist and order history do.
"""

import hmac

from fastapi import Depends, Header
from pydantic import BaseModel

from storefront.core.config import settings
from storefront.core.errors import Forbidden, Unauthorized


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


def get_tenant(x_tenant_id: str | None = Header(default=None)) -> str:
    """Active tenant for the request, falling back to the configured default."""
    if x_tenant_id and x_tenant_id.strip():
        return x_tenant_id.strip()
    return settings.DEFAULT_TENANT


def get_optional_user(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> CurrentUser | None:
    if not x_user_id or not x_user_id.strip():
        return None
    return CurrentUser(id=x_user_id.strip(), email=x_user_email, name=x_user_name)


def require_user(user: CurrentUser | None = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise Unauthorized("Not authenticated")
    return user


def require_admin(x_admin_token: str | None = Header(default=None)) -> str:
    """Guard for the admin panel. Returns the token on success."""
    if not x_admin_token:
        raise Unauthorized("Admin token required")
    expected = settings.ADMIN_API_TOKEN
    if not expected or not hmac.compare_digest(x_admin_token, expected):
        raise Forbidden("Invalid admin token")
    return x_admin_token
