"""
Stripe integration: checkout sessions for orders and webhook verification.
"""
import json
from typing import List, Optional

import stripe

import config
from logger import get_logger

logger = get_logger(__name__)


class PaymentsNotConfigured(RuntimeError):
    pass


class InvalidWebhook(ValueError):
    pass


def is_configured() -> bool:
    return bool(config.STRIPE_SECRET_KEY)


def _client_key() -> str:
    if not is_configured():
        raise PaymentsNotConfigured(
            "Stripe is not configured. Please set STRIPE_SECRET_KEY in your environment variables."
        )
    return config.STRIPE_SECRET_KEY


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def create_checkout_session(items: List[dict], order_id: str, user_id: str) -> dict:
    """
    Create a hosted Checkout session for the given order items.

    `items` are order item snapshots (title, price, quantity). Returns the
    session id and the redirect url.
    """
    stripe.api_key = _client_key()
    session = stripe.checkout.Session.create(
        payment_method_types=["card"],
        line_items=[
            {
                "price_data": {
                    "currency": config.STRIPE_CURRENCY,
                    "product_data": {"name": item["title"]},
                    "unit_amount": to_cents(item["price"]),
                },
                "quantity": item["quantity"],
            }
            for item in items
        ],
        mode="payment",
        success_url=f"{config.FRONTEND_URL}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{config.FRONTEND_URL}/checkout/cancel",
        metadata={"order_id": order_id, "user_id": user_id},
    )
    logger.info(f"Created Stripe session {session.id} for order {order_id}")
    return {"id": session.id, "url": session.url}


def construct_event(payload: bytes, signature: Optional[str]) -> dict:
    """Verify the webhook signature and return the event as a plain dict."""
    _client_key()
    try:
        stripe.Webhook.construct_event(payload, signature or "", config.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise InvalidWebhook(str(e)) from e
    return json.loads(payload)
