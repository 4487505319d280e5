import database
from conftest import auth


def test_get_cart_creates_empty_cart(client, make_user):
    buyer = make_user()
    response = client.get("/api/cart/", headers=auth(buyer))
    assert response.status_code == 200
    assert response.json()["data"] == {"items": [], "total_amount": 0.0, "item_count": 0}
    assert database.collection("cart").count_documents({"user_id": buyer["id"]}) == 1


def test_add_increments_existing_item(client, make_user, make_artwork):
    artist = make_user(role="artist")
    aid = make_artwork(artist["id"], price=25)
    buyer = make_user()

    client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": aid})
    response = client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": aid, "quantity": 2})
    data = response.json()["data"]
    assert data["item_count"] == 1
    assert data["items"][0]["quantity"] == 3
    assert data["total_amount"] == 75
    assert data["items"][0]["artwork"]["artist"]["id"] == artist["id"]


def test_add_rejections(client, make_user, make_artwork):
    artist = make_user(role="artist")
    sold = make_artwork(artist["id"], status="sold")
    own = make_artwork(artist["id"])
    buyer = make_user()

    missing = client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": "64b7f0c2a1b2c3d4e5f60718"})
    assert missing.status_code == 404
    assert client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": sold}).status_code == 400
    assert client.post("/api/cart/add", headers=auth(artist), json={"artwork_id": own}).status_code == 400


def test_unavailable_items_are_hidden(client, make_user, make_artwork):
    artist = make_user(role="artist")
    aid = make_artwork(artist["id"])
    buyer = make_user()
    client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": aid})

    database.update_document("artwork", aid, {"status": "sold"})
    data = client.get("/api/cart/", headers=auth(buyer)).json()["data"]
    assert data["items"] == []
    assert data["total_amount"] == 0


def test_update_quantity(client, make_user, make_artwork):
    artist = make_user(role="artist")
    aid = make_artwork(artist["id"], price=10)
    buyer = make_user()

    assert client.put(f"/api/cart/items/{aid}", headers=auth(buyer), json={"quantity": 2}).status_code == 404
    client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": aid})
    assert client.put(f"/api/cart/items/{aid}", headers=auth(buyer), json={"quantity": 0}).status_code == 400

    response = client.put(f"/api/cart/items/{aid}", headers=auth(buyer), json={"quantity": 4})
    assert response.json()["data"]["total_amount"] == 40


def test_remove_and_clear(client, make_user, make_artwork):
    artist = make_user(role="artist")
    first = make_artwork(artist["id"])
    second = make_artwork(artist["id"])
    buyer = make_user()

    assert client.delete("/api/cart/clear", headers=auth(buyer)).status_code == 404

    for aid in (first, second):
        client.post("/api/cart/add", headers=auth(buyer), json={"artwork_id": aid})
    response = client.delete(f"/api/cart/items/{first}", headers=auth(buyer))
    assert [i["artwork_id"] for i in response.json()["data"]["items"]] == [second]

    assert client.delete("/api/cart/clear", headers=auth(buyer)).status_code == 200
    assert database.collection("cart").find_one({"user_id": buyer["id"]})["items"] == []
