from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from database import collection, create_document, find_by_id, find_many_by_ids, serialize_doc, utcnow
from logger import get_logger
from schemas import Cart as CartSchema
from security import get_current_user, user_id_of
from serializers import lookup

logger = get_logger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])


class AddToCartPayload(BaseModel):
    artwork_id: str
    quantity: int = Field(1, ge=1)


class UpdateCartItemPayload(BaseModel):
    quantity: int


def _get_or_create_cart(user_id: str) -> dict:
    cart = collection("cart").find_one({"user_id": user_id})
    if not cart:
        create_document("cart", CartSchema(user_id=user_id))
        cart = collection("cart").find_one({"user_id": user_id})
    return cart


def _get_cart_or_404(user_id: str) -> dict:
    cart = collection("cart").find_one({"user_id": user_id})
    if not cart:
        raise HTTPException(404, "Cart not found")
    return cart


def _save_items(cart: dict, items: list) -> None:
    collection("cart").update_one({"_id": cart["_id"]}, {"$set": {"items": items, "updated_at": utcnow()}})


def cart_view(cart: dict) -> dict:
    """Cart items whose artwork is still available, with details and total."""
    items = cart.get("items", [])
    artworks = {str(a["_id"]): a for a in find_many_by_ids("artwork", [i["artwork_id"] for i in items])}
    artists = lookup("user", [a.get("artist_id") for a in artworks.values()], ("name", "avatar"))

    total_amount = 0.0
    valid = []
    for item in items:
        artwork = artworks.get(item["artwork_id"])
        if not artwork or artwork.get("status") != "available":
            continue
        total_amount += artwork["price"] * item["quantity"]
        details = serialize_doc(artwork)
        details["artist"] = artists.get(artwork.get("artist_id"))
        valid.append({
            "artwork_id": item["artwork_id"],
            "quantity": item["quantity"],
            "added_at": item.get("added_at"),
            "artwork": details,
        })
    return {"items": valid, "total_amount": total_amount, "item_count": len(valid)}


@router.get("/")
def get_cart(user: dict = Depends(get_current_user)):
    cart = _get_or_create_cart(user_id_of(user))
    return {"success": True, "data": cart_view(cart)}


@router.post("/add")
def add_to_cart(body: AddToCartPayload, user: dict = Depends(get_current_user)):
    uid = user_id_of(user)
    artwork = find_by_id("artwork", body.artwork_id)
    if not artwork:
        raise HTTPException(404, "Artwork not found")
    if artwork.get("status") != "available":
        raise HTTPException(400, "Artwork is not available for purchase")
    if artwork["artist_id"] == uid:
        raise HTTPException(400, "Cannot add your own artwork to cart")

    cart = _get_or_create_cart(uid)
    items = cart.get("items", [])
    found = False
    for it in items:
        if it["artwork_id"] == body.artwork_id:
            it["quantity"] += body.quantity
            found = True
            break
    if not found:
        items.append({"artwork_id": body.artwork_id, "quantity": body.quantity, "added_at": utcnow()})
    _save_items(cart, items)

    return {
        "success": True,
        "message": "Item added to cart successfully",
        "data": cart_view(collection("cart").find_one({"_id": cart["_id"]})),
    }


@router.put("/items/{artwork_id}")
def update_cart_item(artwork_id: str, body: UpdateCartItemPayload, user: dict = Depends(get_current_user)):
    if body.quantity < 1:
        raise HTTPException(400, "Quantity must be at least 1")
    cart = _get_cart_or_404(user_id_of(user))
    items = cart.get("items", [])
    item = next((it for it in items if it["artwork_id"] == artwork_id), None)
    if item is None:
        raise HTTPException(404, "Item not found in cart")
    item["quantity"] = body.quantity
    _save_items(cart, items)
    return {
        "success": True,
        "message": "Cart item updated successfully",
        "data": cart_view(collection("cart").find_one({"_id": cart["_id"]})),
    }


@router.delete("/items/{artwork_id}")
def remove_from_cart(artwork_id: str, user: dict = Depends(get_current_user)):
    cart = _get_cart_or_404(user_id_of(user))
    items = [it for it in cart.get("items", []) if it["artwork_id"] != artwork_id]
    _save_items(cart, items)
    return {
        "success": True,
        "message": "Item removed from cart successfully",
        "data": cart_view(collection("cart").find_one({"_id": cart["_id"]})),
    }


@router.delete("/clear")
def clear_cart(user: dict = Depends(get_current_user)):
    cart = _get_cart_or_404(user_id_of(user))
    _save_items(cart, [])
    return {"success": True, "message": "Cart cleared successfully"}
