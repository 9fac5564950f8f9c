from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront.core.config import settings
from storefront.core.errors import register_error_handlers
from storefront.core.logging_config import setup_logging
from storefront.core.mongo import close_mongo, connect_mongo, ensure_indexes, get_mongo_db
from storefront.routers.admin import router as admin_router
from storefront.routers.cart import router as cart_router
from storefront.routers.catalog import router as catalog_router
from storefront.routers.checkout import router as checkout_router
from storefront.routers.engagement import router as engagement_router

# Setup logging (must be done before any other imports that use logging)
setup_logging(log_level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_mongo()
    await ensure_indexes(get_mongo_db())
    yield
    # Shutdown
    await close_mongo()


app = FastAPI(
    title=settings.APP_NAME,
    description="Product catalog browsing, cart, checkout and admin API",
    version="1.0.0",
    lifespan=lifespan,
)

register_error_handlers(app)

app.include_router(catalog_router, prefix="/api")
app.include_router(cart_router, prefix="/api")
app.include_router(checkout_router, prefix="/api")
app.include_router(engagement_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
