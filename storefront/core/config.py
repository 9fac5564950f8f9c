from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    APP_NAME: str = "Storefront Catalog API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # MongoDB settings
    MONGO_URL: str
    MONGO_DB_NAME: str = "storefront"
    STORE_TIMEOUT_MS: int = 5000

    # Collection names
    PRODUCTS_COLLECTION: str = "products"
    CART_COLLECTION: str = "cart_items"
    WISHLIST_COLLECTION: str = "wishlists"
    ORDERS_COLLECTION: str = "orders"
    WEBHOOKS_COLLECTION: str = "webhooks"
    NEWSLETTER_COLLECTION: str = "newsletter_subscribers"
    ANALYTICS_COLLECTION: str = "analytics_events"

    # Tenant used when the request does not name one
    DEFAULT_TENANT: str = "default"

    # Page sizes per consumer
    STOREFRONT_PAGE_SIZE: int = 24
    ADMIN_PAGE_SIZE: int = 50
    ORDERS_PAGE_SIZE: int = 25
    MAX_PAGE_SIZE: int = 100

    # Admin panel (unset = admin endpoints disabled)
    ADMIN_API_TOKEN: str | None = None

    # Payment-session provider
    PAYMENT_API_BASE: str = "https://api.stripe.com"
    PAYMENT_SECRET_KEY: str | None = None
    PAYMENT_WEBHOOK_SECRET: str | None = None
    PAYMENT_WEBHOOK_TOLERANCE_SECONDS: int = 300
    SITE_URL: str = "http://localhost:8000"
    CHECKOUT_ALLOWED_COUNTRIES: list[str] = ["US", "CA", "MX", "VE", "CO", "EC", "PE", "CL", "AR", "BR"]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
