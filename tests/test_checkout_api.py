"""Tests for hosted checkout sessions and the payment webhook."""

import json
import time
from urllib.parse import parse_qs

import pytest

from storefront.core.config import settings
from storefront.core.errors import PaymentError
from storefront.services.payment_gateway import (
    compute_signature,
    parse_signature_header,
    to_minor_units,
    verify_signature,
)

ADMIN = {"X-Admin-Token": "admin-secret"}
USER = {"X-User-Id": "user-1", "X-User-Email": "ana@example.com", "X-Tenant-Id": "acme"}


def completed_event(session_id="cs_test_1", event_type="checkout.session.completed"):
    return {
        "id": "evt_1",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "payment_intent": "pi_1",
                "amount_total": 2598,
                "currency": "USD",
                "customer_details": {"email": "ana@example.com", "name": "Ana"},
                "shipping_details": {"address": {"country": "US", "city": "Austin"}},
                "metadata": {"tenant": "acme", "user_id": "user-1"},
            }
        },
    }


def signed(event, secret="whsec_test", timestamp=None):
    body = json.dumps(event).encode()
    timestamp = int(time.time()) if timestamp is None else timestamp
    header = f"t={timestamp},v1={compute_signature(secret, timestamp, body)}"
    return body, {"Stripe-Signature": header, "Content-Type": "application/json"}


# ============================================================================
# Signature helpers
# ============================================================================


def test_to_minor_units_rounds_to_cents():
    assert to_minor_units(12.99) == 1299
    assert to_minor_units(0.1 + 0.2) == 30


def test_parse_signature_header_collects_every_v1():
    assert parse_signature_header("t=100,v1=aa,v0=zz,v1=bb") == (100, ["aa", "bb"])


@pytest.mark.parametrize("header", ["", "v1=aa", "t=abc,v1=aa", "t=100"])
def test_parse_signature_header_rejects_malformed(header):
    with pytest.raises(PaymentError):
        parse_signature_header(header)


def test_verify_signature_tolerance():
    body = b'{"type": "ping"}'
    header = f"t=1000,v1={compute_signature('secret', 1000, body)}"

    verify_signature(body, header, "secret", tolerance_seconds=300, now=1200)
    with pytest.raises(PaymentError):
        verify_signature(body, header, "secret", tolerance_seconds=300, now=2000)
    with pytest.raises(PaymentError):
        verify_signature(body + b" ", header, "secret", tolerance_seconds=300, now=1200)


# ============================================================================
# Checkout sessions
# ============================================================================


@pytest.mark.asyncio
async def test_create_checkout_session(client, payment_provider):
    response = await client.post(
        "/api/checkout/sessions",
        json={"items": [{"name": "HDMI Cable", "price": 12.99, "quantity": 2}]},
        headers=USER,
    )

    assert response.status_code == 200
    assert response.json() == {"id": "cs_test_1", "url": "https://pay.test/cs_test_1"}

    request = payment_provider.requests[0]
    form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
    assert request.headers["Authorization"] == "Bearer sk_test"
    assert form["mode"] == "payment"
    assert form["line_items[0][quantity]"] == "2"
    assert form["line_items[0][price_data][unit_amount]"] == "1299"
    assert form["line_items[0][price_data][product_data][name]"] == "HDMI Cable"
    assert form["metadata[tenant]"] == "acme"
    assert form["metadata[user_id]"] == "user-1"


@pytest.mark.asyncio
async def test_guest_checkout_metadata(client, payment_provider):
    await client.post("/api/checkout/sessions", json={"items": [{"name": "Kite", "price": 5, "quantity": 1}]})

    form = parse_qs(payment_provider.requests[0].content.decode())
    assert form["metadata[user_id]"] == ["guest"]
    assert form["metadata[tenant]"] == [settings.DEFAULT_TENANT]


@pytest.mark.asyncio
async def test_checkout_without_items_is_rejected(client, payment_provider):
    response = await client.post("/api/checkout/sessions", json={"items": []})

    assert response.status_code == 422
    assert "No items provided" in response.text
    assert payment_provider.requests == []


@pytest.mark.asyncio
async def test_session_status(client, payment_provider):
    response = await client.get("/api/checkout/sessions/cs_test_1")

    body = response.json()
    assert body["status"] == "paid"
    assert body["customer_email"] == "ana@example.com"
    assert body["line_items"][0]["description"] == "HDMI Cable"


# ============================================================================
# Webhook
# ============================================================================


@pytest.mark.asyncio
async def test_completed_webhook_records_order(client, db, payment_provider):
    body, headers = signed(completed_event())

    response = await client.post("/api/checkout/webhook", content=body, headers=headers)

    assert response.json() == {"received": True, "type": "checkout.session.completed"}
    order = await db[settings.ORDERS_COLLECTION].find_one({"session_id": "cs_test_1"})
    assert order["amount_total"] == 25.98
    assert order["currency"] == "usd"
    assert order["tenant"] == "acme"
    assert order["user_id"] == "user-1"
    assert order["status"] == "completed"
    assert order["shipping_address"] == {"country": "US", "city": "Austin"}
    assert order["line_items"][0]["quantity"] == 2

    receipt = await db[settings.WEBHOOKS_COLLECTION].find_one({"event_id": "evt_1"})
    assert receipt["processed"] is True


@pytest.mark.asyncio
async def test_replayed_webhook_keeps_one_order(client, db, payment_provider):
    body, headers = signed(completed_event())

    await client.post("/api/checkout/webhook", content=body, headers=headers)
    await client.post("/api/checkout/webhook", content=body, headers=headers)

    assert await db[settings.ORDERS_COLLECTION].count_documents({"session_id": "cs_test_1"}) == 1
    receipts = await client.get("/api/admin/webhooks", headers=ADMIN)
    assert receipts.json()["count"] == 2


@pytest.mark.asyncio
async def test_order_appears_in_history_and_stats(client, db, payment_provider):
    body, headers = signed(completed_event())
    await client.post("/api/checkout/webhook", content=body, headers=headers)

    history = await client.get("/api/orders", headers=USER)
    stats = await client.get("/api/admin/stats", headers={**ADMIN, "X-Tenant-Id": "acme"})

    assert [order["session_id"] for order in history.json()["orders"]] == ["cs_test_1"]
    assert stats.json()["orders_today"] == 1
    assert stats.json()["total_revenue"] == 25.98


@pytest.mark.asyncio
async def test_webhook_with_bad_signature_is_rejected(client, db, payment_provider):
    body, headers = signed(completed_event(), secret="whsec_wrong")

    response = await client.post("/api/checkout/webhook", content=body, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "PaymentError"
    assert await db[settings.ORDERS_COLLECTION].count_documents({}) == 0
    assert await db[settings.WEBHOOKS_COLLECTION].count_documents({}) == 0


@pytest.mark.asyncio
async def test_webhook_without_signature_is_rejected(client, db, payment_provider):
    response = await client.post("/api/checkout/webhook", content=json.dumps(completed_event()))

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing webhook signature"


@pytest.mark.asyncio
async def test_stale_webhook_is_rejected(client, db, payment_provider):
    body, headers = signed(completed_event(), timestamp=int(time.time()) - 3600)

    response = await client.post("/api/checkout/webhook", content=body, headers=headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_other_events_are_stored_but_not_processed(client, db, payment_provider):
    body, headers = signed(completed_event(event_type="checkout.session.async_payment_failed"))

    response = await client.post("/api/checkout/webhook", content=body, headers=headers)

    assert response.json()["type"] == "checkout.session.async_payment_failed"
    assert await db[settings.ORDERS_COLLECTION].count_documents({}) == 0
    receipts = await client.get(
        "/api/admin/webhooks",
        params={"event_type": "checkout.session.async_payment_failed"},
        headers=ADMIN,
    )
    assert receipts.json()["webhooks"][0]["processed"] is False
