"""Pytest configuration and fixtures for the storefront service."""

import os

# Settings are read once at import time
os.environ["MONGO_URL"] = "mongodb://localhost:27017"
os.environ["ADMIN_API_TOKEN"] = "admin-secret"
os.environ["PAYMENT_SECRET_KEY"] = "sk_test"
os.environ["PAYMENT_WEBHOOK_SECRET"] = "whsec_test"
os.environ["PAYMENT_API_BASE"] = "https://payments.test"

from datetime import UTC, datetime, timedelta  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from mongomock_motor import AsyncMongoMockClient  # noqa: E402

from storefront.core.config import settings  # noqa: E402
from storefront.core.mongo import ensure_indexes, get_mongo_db  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.services.payment_gateway import HostedCheckoutGateway, get_payment_gateway  # noqa: E402

ADMIN_HEADERS = {"X-Admin-Token": "admin-secret"}
USER_HEADERS = {"X-User-Id": "user-1", "X-User-Email": "ana@example.com", "X-User-Name": "Ana"}


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


@pytest_asyncio.fixture()
async def db():
    """Provide an in-memory MongoDB database for each test."""
    client = AsyncMongoMockClient()
    database = client["storefront_test"]
    await ensure_indexes(database)
    app.dependency_overrides[get_mongo_db] = lambda: database
    try:
        yield database
    finally:
        app.dependency_overrides.pop(get_mongo_db, None)


class PaymentProviderStub:
    """Records requests made to the hosted checkout provider and answers them."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.line_items = [{"description": "HDMI Cable", "quantity": 2, "amount_total": 2598}]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/v1/checkout/sessions":
            return httpx.Response(200, json={"id": "cs_test_1", "url": "https://pay.test/cs_test_1"})
        if path.endswith("/line_items"):
            return httpx.Response(200, json={"data": self.line_items})
        if path.startswith("/v1/checkout/sessions/"):
            return httpx.Response(
                200,
                json={
                    "id": path.rsplit("/", 1)[-1],
                    "payment_status": "paid",
                    "customer_details": {"email": "ana@example.com", "name": "Ana"},
                    "amount_total": 2598,
                    "currency": "usd",
                    "line_items": {"data": self.line_items},
                },
            )
        return httpx.Response(404, json={"error": {"message": "No such resource"}})


@pytest_asyncio.fixture()
async def payment_provider():
    """Route the payment gateway to an in-process provider stub."""
    stub = PaymentProviderStub()
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    gateway = HostedCheckoutGateway(
        api_base=settings.PAYMENT_API_BASE,
        secret_key=settings.PAYMENT_SECRET_KEY,
        webhook_secret=settings.PAYMENT_WEBHOOK_SECRET,
        client=http_client,
    )
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    try:
        yield stub
    finally:
        app.dependency_overrides.pop(get_payment_gateway, None)
        await http_client.aclose()


@pytest_asyncio.fixture()
async def client(db):
    """Return an HTTPX async client pointing at the FastAPI app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client


def _product(code: str, name: str, price: float, category: str | None = None, tenant: str = "acme"):
    return {
        "tenant": tenant,
        "code": code,
        "name": name,
        "price": price,
        "category": category,
        "description": f"{name} description",
        "image_url": None,
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
    }


@pytest_asyncio.fixture()
async def catalog(db):
    """A small mixed catalog for tenant 'acme' plus one foreign-tenant product."""
    products = [
        _product("AUD-1", "Bluetooth Speaker", 49.99, "Audio"),
        _product("AUD-2", "Studio Headphones", 100.00, "Audio"),
        _product("AUD-3", "Soundbar", 250.00, "Audio"),
        _product("VID-1", "4K Monitor", 320.00, "Video"),
        _product("VID-2", "HDMI Cable", 12.99, "Video"),
        _product("NET-1", "Ethernet Cable", 8.50, "Networking"),
        _product("NET-2", "Wi-Fi Router", 75.00, "Networking"),
        _product("MSC-1", "Gift Card", 50.00, None),
        _product("AUD-9", "Rival Speaker", 10.00, "Audio", tenant="other"),
    ]
    for minute, product in enumerate(products):
        product["created_at"] += timedelta(minutes=minute)
    await db[settings.PRODUCTS_COLLECTION].insert_many(products)
    return products


@pytest.fixture()
def make_product():
    """Factory for raw product documents, for tests that seed their own rows."""
    return _product
