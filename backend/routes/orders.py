from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

import payments
from database import (
    collection,
    create_document,
    find_by_id,
    is_valid_id,
    paginate,
    pagination_meta,
    serialize_doc,
    update_document,
    utcnow,
)
from logger import get_logger
from schemas import Order as OrderSchema, OrderItem, ShippingAddress
from security import get_current_user, is_admin, user_id_of
from serializers import ARTWORK_CARD, lookup

logger = get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

STATUS_TIMESTAMPS = {"paid": "paid_at", "cancelled": "cancelled_at", "refunded": "refunded_at"}


class CheckoutPayload(BaseModel):
    shipping_address: Optional[ShippingAddress] = None


def set_order_status(order: dict, status: str, **fields) -> None:
    """Move an order to `status`, stamping its *_at field the first time."""
    updates = {"status": status, **fields}
    stamp = STATUS_TIMESTAMPS.get(status)
    if stamp and not order.get(stamp):
        updates[stamp] = utcnow()
    update_document("order", str(order["_id"]), updates)


def order_view(order: dict) -> dict:
    out = serialize_doc(order)
    artworks = lookup("artwork", [i["artwork_id"] for i in order.get("items", [])], ARTWORK_CARD)
    out["items"] = [{**i, "artwork": artworks.get(i["artwork_id"])} for i in order.get("items", [])]
    return out


def _get_order_or_404(order_id: str) -> dict:
    order = find_by_id("order", order_id)
    if not order:
        raise HTTPException(404, "Order not found")
    return order


@router.post("/checkout")
def create_checkout_session(body: Optional[CheckoutPayload] = None, user: dict = Depends(get_current_user)):
    if not payments.is_configured():
        raise HTTPException(500, "Stripe is not configured. Please set STRIPE_SECRET_KEY in your environment variables.")

    uid = user_id_of(user)
    cart = collection("cart").find_one({"user_id": uid})
    if not cart or not cart.get("items"):
        raise HTTPException(400, "Cart is empty")

    items = []
    total_amount = 0.0
    for item in cart["items"]:
        artwork = find_by_id("artwork", item["artwork_id"])
        if not artwork or artwork.get("status") != "available":
            title = artwork["title"] if artwork else "Unknown"
            raise HTTPException(400, f'Artwork "{title}" is not available')
        items.append(OrderItem(
            artwork_id=item["artwork_id"],
            quantity=item["quantity"],
            price=artwork["price"],
            title=artwork["title"],
        ))
        total_amount += artwork["price"] * item["quantity"]

    order = OrderSchema(
        user_id=uid,
        items=items,
        total_amount=total_amount,
        shipping_address=body.shipping_address if body else None,
    )
    order_id = create_document("order", order)

    session = payments.create_checkout_session([i.model_dump() for i in items], order_id, uid)
    update_document("order", order_id, {"stripe_session_id": session["id"]})
    logger.info(f"Checkout started for order {order_id} ({total_amount:.2f}) by user {uid}")

    return {
        "success": True,
        "data": {"session_id": session["id"], "url": session["url"], "order_id": order_id},
    }


def handle_checkout_session_completed(session: dict) -> None:
    order_id = (session.get("metadata") or {}).get("order_id")
    if not is_valid_id(order_id):
        return
    order = find_by_id("order", order_id)
    if not order:
        return
    if order.get("status") == "paid":
        logger.info(f"Order {order_id} already paid; ignoring redelivered session")
        return

    set_order_status(order, "paid", stripe_payment_intent_id=session.get("payment_intent"))

    for item in order["items"]:
        update_document("artwork", item["artwork_id"], {"status": "sold"})

    collection("cart").update_one({"user_id": order["user_id"]}, {"$set": {"items": [], "updated_at": utcnow()}})

    for item in order["items"]:
        artwork = find_by_id("artwork", item["artwork_id"])
        if artwork and is_valid_id(artwork.get("artist_id")):
            collection("user").update_one(
                {"_id": ObjectId(artwork["artist_id"])},
                {"$inc": {"total_sales": item["price"]}},
            )
    logger.info(f"Order {order_id} paid; {len(order['items'])} artwork(s) marked sold")


def handle_payment_intent_succeeded(intent: dict) -> None:
    order = collection("order").find_one({"stripe_payment_intent_id": intent.get("id")})
    if order:
        set_order_status(order, "paid")


def handle_payment_intent_failed(intent: dict) -> None:
    order = collection("order").find_one({"stripe_payment_intent_id": intent.get("id")})
    if order:
        set_order_status(order, "cancelled")
        logger.info(f"Order {order['_id']} cancelled after failed payment")


WEBHOOK_HANDLERS = {
    "checkout.session.completed": handle_checkout_session_completed,
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "payment_intent.payment_failed": handle_payment_intent_failed,
}


@router.post("/webhook")
async def stripe_webhook(request: Request):
    if not payments.is_configured():
        raise HTTPException(500, "Stripe is not configured")

    payload = await request.body()
    try:
        event = payments.construct_event(payload, request.headers.get("stripe-signature"))
    except payments.InvalidWebhook as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(400, f"Webhook Error: {e}")

    handler = WEBHOOK_HANDLERS.get(event.get("type"))
    if handler is not None:
        handler(event["data"]["object"])
    else:
        logger.info(f"Unhandled Stripe event type {event.get('type')}")
    return {"received": True}


@router.get("/")
def list_orders(page: int = 1, limit: int = 10, status: Optional[str] = None, user: dict = Depends(get_current_user)):
    query = {"user_id": user_id_of(user)}
    if status:
        query["status"] = status
    page, limit, skip = paginate(page, limit, max_limit=50)
    docs = collection("order").find(query).sort("created_at", -1).skip(skip).limit(limit)
    total = collection("order").count_documents(query)
    return {
        "success": True,
        "data": [order_view(o) for o in docs],
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/{order_id}")
def get_order(order_id: str, user: dict = Depends(get_current_user)):
    order = _get_order_or_404(order_id)
    if order["user_id"] != user_id_of(user) and not is_admin(user):
        raise HTTPException(403, "Not authorized to view this order")
    out = order_view(order)
    out["user"] = lookup("user", [order["user_id"]], ("name", "email")).get(order["user_id"])
    return {"success": True, "data": out}


@router.patch("/{order_id}/cancel")
def cancel_order(order_id: str, user: dict = Depends(get_current_user)):
    order = _get_order_or_404(order_id)
    if order["user_id"] != user_id_of(user) and not is_admin(user):
        raise HTTPException(403, "Not authorized to cancel this order")
    if order["status"] == "paid":
        raise HTTPException(400, "Cannot cancel a paid order")
    set_order_status(order, "cancelled")
    return {"success": True, "message": "Order cancelled successfully"}
