import json
import time
from types import SimpleNamespace

import pytest
import stripe

import config
import database
import payments
from conftest import auth


@pytest.fixture
def stripe_stub(monkeypatch):
    calls = []

    def create_checkout_session(items, order_id, user_id):
        calls.append({"items": items, "order_id": order_id, "user_id": user_id})
        return {"id": "cs_test_123", "url": "https://checkout.stripe.test/cs_test_123"}

    monkeypatch.setattr(payments, "is_configured", lambda: True)
    monkeypatch.setattr(payments, "create_checkout_session", create_checkout_session)
    monkeypatch.setattr(payments, "construct_event", lambda payload, signature: json.loads(payload))
    return calls


@pytest.fixture
def filled_cart(client, make_user, make_artwork):
    artist = make_user(role="artist")
    artworks = [make_artwork(artist["id"], title="One", price=100), make_artwork(artist["id"], title="Two", price=50)]
    buyer = make_user()
    for aid in artworks:
        client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": aid})
    return {"artist": artist, "buyer": buyer, "artworks": artworks}


def checkout(client, buyer):
    return client.post("/api/orders/checkout", headers=auth(buyer), json={})


def test_checkout_requires_stripe(client, filled_cart):
    response = checkout(client, filled_cart["buyer"])
    assert response.status_code == 500
    assert "Stripe is not configured" in response.json()["message"]


def test_checkout_empty_cart(client, make_user, stripe_stub):
    assert checkout(client, make_user()).status_code == 400


def test_checkout_creates_pending_order(client, filled_cart, stripe_stub):
    response = checkout(client, filled_cart["buyer"])
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["session_id"] == "cs_test_123"

    order = database.find_by_id("order", data["order_id"])
    assert order["status"] == "pending"
    assert order["total_amount"] == 150
    assert order["stripe_session_id"] == "cs_test_123"
    assert [i["title"] for i in order["items"]] == ["One", "Two"]
    assert stripe_stub[0]["order_id"] == data["order_id"]


def test_checkout_rejects_unavailable_artwork(client, filled_cart, stripe_stub):
    database.update_document("artwork", filled_cart["artworks"][1], {"status": "reserved"})
    response = checkout(client, filled_cart["buyer"])
    assert response.status_code == 400
    assert response.json()["message"] == 'Artwork "Two" is not available'


def send_event(client, event_type, obj):
    return client.post(
        "/api/orders/webhook",
        content=json.dumps({"type": event_type, "data": {"object": obj}}),
        headers={"stripe-signature": "t=1,v1=test"},
    )


def test_webhook_checkout_completed(client, filled_cart, stripe_stub):
    order_id = checkout(client, filled_cart["buyer"]).json()["data"]["order_id"]

    response = send_event(client, "checkout.session.completed", {
        "id": "cs_test_123", "payment_intent": "pi_123", "metadata": {"order_id": order_id},
    })
    assert response.json() == {"received": True}

    order = database.find_by_id("order", order_id)
    assert order["status"] == "paid"
    assert order["paid_at"] is not None
    assert order["stripe_payment_intent_id"] == "pi_123"
    for aid in filled_cart["artworks"]:
        assert database.find_by_id("artwork", aid)["status"] == "sold"
    assert database.collection("cart").find_one({"user_id": filled_cart["buyer"]["id"]})["items"] == []
    assert database.find_by_id("user", filled_cart["artist"]["id"])["total_sales"] == 150


def test_webhook_payment_failed_cancels(client, filled_cart, stripe_stub):
    order_id = checkout(client, filled_cart["buyer"]).json()["data"]["order_id"]
    database.update_document("order", order_id, {"stripe_payment_intent_id": "pi_999"})

    send_event(client, "payment_intent.payment_failed", {"id": "pi_999"})
    order = database.find_by_id("order", order_id)
    assert order["status"] == "cancelled"
    assert order["cancelled_at"] is not None


def test_webhook_unknown_event_is_acknowledged(client, stripe_stub):
    assert send_event(client, "customer.created", {"id": "cus_1"}).json() == {"received": True}


def test_webhook_bad_signature(client, monkeypatch):
    monkeypatch.setattr(payments, "is_configured", lambda: True)

    def reject(payload, signature):
        raise payments.InvalidWebhook("No signatures found")

    monkeypatch.setattr(payments, "construct_event", reject)
    response = client.post("/api/orders/webhook", content=b"{}")
    assert response.status_code == 400
    assert response.json()["message"] == "Webhook Error: No signatures found"


def test_list_get_and_cancel(client, filled_cart, stripe_stub, make_user):
    buyer = filled_cart["buyer"]
    order_id = checkout(client, buyer).json()["data"]["order_id"]

    listing = client.get("/api/orders/", headers=auth(buyer)).json()
    assert [o["id"] for o in listing["data"]] == [order_id]

    stranger = make_user()
    assert client.get(f"/api/orders/{order_id}", headers=auth(stranger)).status_code == 403
    detail = client.get(f"/api/orders/{order_id}", headers=auth(buyer)).json()["data"]
    assert detail["user"]["id"] == buyer["id"]
    assert detail["items"][0]["artwork"]["title"] == "One"

    assert client.patch(f"/api/orders/{order_id}/cancel", headers=auth(buyer)).status_code == 200
    assert database.find_by_id("order", order_id)["status"] == "cancelled"


def test_paid_orders_cannot_be_cancelled(client, filled_cart, stripe_stub):
    buyer = filled_cart["buyer"]
    order_id = checkout(client, buyer).json()["data"]["order_id"]
    database.update_document("order", order_id, {"status": "paid"})
    assert client.patch(f"/api/orders/{order_id}/cancel", headers=auth(buyer)).status_code == 400


def test_to_cents():
    assert payments.to_cents(19.99) == 1999
    assert payments.to_cents(0.1 + 0.2) == 30


def test_webhook_redelivery_does_not_double_count(client, filled_cart, stripe_stub):
    order_id = checkout(client, filled_cart["buyer"]).json()["data"]["order_id"]
    session = {"id": "cs_test_123", "payment_intent": "pi_123", "metadata": {"order_id": order_id}}

    send_event(client, "checkout.session.completed", session)
    paid_at = database.find_by_id("order", order_id)["paid_at"]
    assert send_event(client, "checkout.session.completed", session).json() == {"received": True}

    assert database.find_by_id("user", filled_cart["artist"]["id"])["total_sales"] == 150
    assert database.find_by_id("order", order_id)["paid_at"] == paid_at


def test_payment_intent_succeeded(client, filled_cart, stripe_stub):
    order_id = checkout(client, filled_cart["buyer"]).json()["data"]["order_id"]
    database.update_document("order", order_id, {"stripe_payment_intent_id": "pi_456"})

    send_event(client, "payment_intent.succeeded", {"id": "pi_456"})
    order = database.find_by_id("order", order_id)
    assert order["status"] == "paid"
    paid_at = order["paid_at"]
    assert paid_at is not None

    send_event(client, "payment_intent.succeeded", {"id": "pi_456"})
    assert database.find_by_id("order", order_id)["paid_at"] == paid_at


WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def stripe_keys(monkeypatch):
    sessions = []

    def create(**params):
        sessions.append(params)
        return SimpleNamespace(id="cs_live_path", url="https://checkout.stripe.test/cs_live_path")

    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(stripe, "api_key", None)
    monkeypatch.setattr(stripe.checkout.Session, "create", create)
    return sessions


def signed_headers(payload, secret=WEBHOOK_SECRET):
    timestamp = int(time.time())
    signature = stripe.WebhookSignature._compute_signature(f"{timestamp}.{payload}", secret)
    return {"stripe-signature": f"t={timestamp},v1={signature}", "content-type": "application/json"}


def test_checkout_session_line_items(client, filled_cart, stripe_keys):
    data = checkout(client, filled_cart["buyer"]).json()["data"]
    assert data["session_id"] == "cs_live_path"

    params = stripe_keys[0]
    assert params["mode"] == "payment"
    assert params["metadata"] == {"order_id": data["order_id"], "user_id": filled_cart["buyer"]["id"]}
    assert [item["price_data"]["unit_amount"] for item in params["line_items"]] == [10000, 5000]
    assert {item["price_data"]["currency"] for item in params["line_items"]} == {config.STRIPE_CURRENCY}
    assert params["line_items"][0]["price_data"]["product_data"] == {"name": "One"}
    assert params["line_items"][0]["quantity"] == 1


def test_signed_webhook_is_accepted(client, filled_cart, stripe_keys):
    order_id = checkout(client, filled_cart["buyer"]).json()["data"]["order_id"]
    payload = json.dumps({
        "id": "evt_1",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_live_path", "payment_intent": "pi_live", "metadata": {"order_id": order_id}}},
    })

    response = client.post("/api/orders/webhook", content=payload, headers=signed_headers(payload))
    assert response.status_code == 200
    order = database.find_by_id("order", order_id)
    assert order["status"] == "paid"
    assert order["stripe_payment_intent_id"] == "pi_live"


def test_webhook_signed_with_other_secret_is_rejected(client, filled_cart, stripe_keys):
    order_id = checkout(client, filled_cart["buyer"]).json()["data"]["order_id"]
    payload = json.dumps({
        "id": "evt_2",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_live_path", "metadata": {"order_id": order_id}}},
    })

    response = client.post(
        "/api/orders/webhook", content=payload, headers=signed_headers(payload, secret="whsec_forged"),
    )
    assert response.status_code == 400
    assert response.json()["message"].startswith("Webhook Error")
    assert database.find_by_id("order", order_id)["status"] == "pending"
