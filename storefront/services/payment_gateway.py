"""
Hosted checkout provider boundary.

``PaymentGateway`` is the contract the checkout routes depend on.
``HostedCheckoutGateway`` implements it against a Stripe-compatible REST
API with httpx; tests swap in a fake through FastAPI dependency overrides.
"""

import hashlib
import hmac
import json
import logging
import time
from functools import lru_cache
from typing import Any, Protocol

import httpx

from storefront.core.config import settings
from storefront.core.errors import PaymentError
from storefront.schemas.order import CheckoutLineItem, CheckoutSession

logger = logging.getLogger(__name__)

CURRENCY = "usd"


class PaymentGateway(Protocol):
    async def create_checkout_session(
        self, items: list[CheckoutLineItem], metadata: dict[str, str]
    ) -> CheckoutSession: ...

    async def get_session(self, session_id: str) -> dict[str, Any]: ...

    async def list_line_items(self, session_id: str) -> list[dict[str, Any]]: ...

    def verify_webhook(self, payload: bytes, signature_header: str | None) -> dict[str, Any]: ...


def to_minor_units(price: float) -> int:
    """Dollars to cents, rounded to the nearest cent."""
    return int(round(price * 100))


def encode_line_items(items: list[CheckoutLineItem]) -> dict[str, str]:
    """Flatten line items into the provider's bracketed form encoding."""
    form: dict[str, str] = {}
    for index, item in enumerate(items):
        prefix = f"line_items[{index}]"
        form[f"{prefix}[quantity]"] = str(item.quantity)
        form[f"{prefix}[price_data][currency]"] = CURRENCY
        form[f"{prefix}[price_data][unit_amount]"] = str(to_minor_units(item.price))
        form[f"{prefix}[price_data][product_data][name]"] = item.name
        if item.image:
            form[f"{prefix}[price_data][product_data][images][0]"] = item.image
        if item.description:
            form[f"{prefix}[price_data][product_data][description]"] = item.description
    return form


def parse_signature_header(header: str) -> tuple[int, list[str]]:
    """Split ``t=<unix>,v1=<hex>[,v1=<hex>...]`` into timestamp and signatures."""
    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as e:
                raise PaymentError("Malformed webhook signature timestamp") from e
        elif key == "v1" and value:
            signatures.append(value)
    if timestamp is None or not signatures:
        raise PaymentError("Malformed webhook signature header")
    return timestamp, signatures


def compute_signature(secret: str, timestamp: int, payload: bytes) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def verify_signature(
    payload: bytes,
    signature_header: str | None,
    secret: str,
    tolerance_seconds: int,
    now: float | None = None,
) -> None:
    if not signature_header:
        raise PaymentError("Missing webhook signature")
    timestamp, signatures = parse_signature_header(signature_header)
    expected = compute_signature(secret, timestamp, payload)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise PaymentError("Webhook signature verification failed")
    current = time.time() if now is None else now
    if tolerance_seconds > 0 and abs(current - timestamp) > tolerance_seconds:
        raise PaymentError("Webhook signature timestamp outside tolerance")


class HostedCheckoutGateway:
    """Stripe-compatible checkout sessions over plain HTTPS."""

    def __init__(
        self,
        api_base: str,
        secret_key: str | None,
        webhook_secret: str | None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.client = client

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        if not self.secret_key:
            raise PaymentError("Payment provider is not configured")
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        try:
            if self.client is not None:
                response = await self.client.request(method, f"{self.api_base}{path}", headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=15.0) as client:
                    response = await client.request(method, f"{self.api_base}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Payment provider request failed: {e}")
            raise PaymentError("Payment provider is unreachable") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            logger.error(f"Payment provider error {response.status_code}: {message}")
            raise PaymentError(f"Payment provider error: {message}")
        return response.json()

    async def create_checkout_session(
        self, items: list[CheckoutLineItem], metadata: dict[str, str]
    ) -> CheckoutSession:
        form = encode_line_items(items)
        form["mode"] = "payment"
        form["success_url"] = f"{settings.SITE_URL}/success?session_id={{CHECKOUT_SESSION_ID}}"
        form["cancel_url"] = f"{settings.SITE_URL}/store"
        form["customer_creation"] = "always"
        for index, country in enumerate(settings.CHECKOUT_ALLOWED_COUNTRIES):
            form[f"shipping_address_collection[allowed_countries][{index}]"] = country
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = value

        session = await self._request("POST", "/v1/checkout/sessions", data=form)
        logger.info(f"Checkout session created: {session['id']} ({len(items)} items)")
        return CheckoutSession(id=session["id"], url=session["url"])

    async def get_session(self, session_id: str) -> dict[str, Any]:
        session = await self._request(
            "GET", f"/v1/checkout/sessions/{session_id}", params={"expand[]": "line_items"}
        )
        customer = session.get("customer_details") or {}
        return {
            "status": session.get("payment_status"),
            "customer_email": customer.get("email"),
            "customer_name": customer.get("name"),
            "amount_total": session.get("amount_total"),
            "currency": session.get("currency"),
            "line_items": (session.get("line_items") or {}).get("data", []),
        }

    async def list_line_items(self, session_id: str) -> list[dict[str, Any]]:
        result = await self._request("GET", f"/v1/checkout/sessions/{session_id}/line_items")
        return result.get("data", [])

    def verify_webhook(self, payload: bytes, signature_header: str | None) -> dict[str, Any]:
        if not self.webhook_secret:
            raise PaymentError("Webhook secret is not configured")
        verify_signature(
            payload,
            signature_header,
            self.webhook_secret,
            settings.PAYMENT_WEBHOOK_TOLERANCE_SECONDS,
        )
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise PaymentError("Webhook payload is not valid JSON") from e


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return HostedCheckoutGateway(
        api_base=settings.PAYMENT_API_BASE,
        secret_key=settings.PAYMENT_SECRET_KEY,
        webhook_secret=settings.PAYMENT_WEBHOOK_SECRET,
    )
