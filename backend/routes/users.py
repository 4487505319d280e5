import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from database import collection, find_by_id, paginate, pagination_meta, to_object_id, update_document
from logger import get_logger
from security import require_roles
from serializers import pick, user_out

logger = get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

ARTIST_LIST_FIELDS = (
    "name", "avatar", "bio", "location", "verified", "specializations",
    "rating", "total_sales", "total_ratings", "created_at",
)
ARTIST_PROFILE_FIELDS = ARTIST_LIST_FIELDS + ("social_links",)
ADMIN_LIST_FIELDS = ("name", "email", "role", "avatar", "verified", "is_active", "last_login", "created_at")


def _search(term: str, fields) -> dict:
    pattern = {"$regex": re.escape(term), "$options": "i"}
    return {"$or": [{f: pattern} for f in fields]}


@router.get("/artists")
def list_artists(
    page: int = 1,
    limit: int = 12,
    search: Optional[str] = None,
    specialization: Optional[str] = None,
):
    query = {"role": "artist", "is_active": True}
    if search:
        query.update(_search(search, ("name", "bio", "location")))
    if specialization:
        query["specializations"] = {"$in": [specialization]}

    page, limit, skip = paginate(page, limit, max_limit=50)
    docs = (
        collection("user")
        .find(query)
        .sort([("verified", -1), ("rating", -1), ("total_sales", -1)])
        .skip(skip)
        .limit(limit)
    )
    total = collection("user").count_documents(query)
    return {
        "success": True,
        "artists": [pick(d, ARTIST_LIST_FIELDS) for d in docs],
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/artists/{artist_id}")
def get_artist(artist_id: str):
    artist = collection("user").find_one({"_id": to_object_id(artist_id), "role": "artist", "is_active": True})
    if not artist:
        raise HTTPException(404, "Artist not found")
    return {"success": True, "artist": pick(artist, ARTIST_PROFILE_FIELDS)}


@router.get("/")
def list_users(
    page: int = 1,
    limit: int = 20,
    role: Optional[str] = None,
    search: Optional[str] = None,
    admin: dict = Depends(require_roles("admin")),
):
    query = {}
    if role:
        query["role"] = role
    if search:
        query.update(_search(search, ("name", "email")))

    page, limit, skip = paginate(page, limit, max_limit=50)
    docs = collection("user").find(query).sort("created_at", -1).skip(skip).limit(limit)
    total = collection("user").count_documents(query)
    return {
        "success": True,
        "users": [pick(d, ADMIN_LIST_FIELDS) for d in docs],
        "pagination": pagination_meta(page, limit, total),
    }


@router.patch("/{user_id}/toggle-status")
def toggle_status(user_id: str, admin: dict = Depends(require_roles("admin"))):
    user = find_by_id("user", user_id)
    if not user:
        raise HTTPException(404, "User not found")
    is_active = not user.get("is_active", True)
    update_document("user", user_id, {"is_active": is_active})
    logger.info(f"Admin {admin['_id']} set user {user_id} is_active={is_active}")
    return {
        "success": True,
        "message": f"User {'activated' if is_active else 'deactivated'} successfully",
        "user": {"id": user_id, "name": user["name"], "email": user["email"], "is_active": is_active},
    }


@router.patch("/{user_id}/verify")
def toggle_verified(user_id: str, admin: dict = Depends(require_roles("admin"))):
    user = collection("user").find_one({"_id": to_object_id(user_id), "role": "artist"})
    if not user:
        raise HTTPException(404, "Artist not found")
    verified = not user.get("verified", False)
    update_document("user", user_id, {"verified": verified})
    return {
        "success": True,
        "message": f"Artist {'verified' if verified else 'unverified'} successfully",
        "user": {"id": user_id, "name": user["name"], "email": user["email"], "verified": verified},
    }


@router.get("/{user_id}")
def get_public_profile(user_id: str):
    user = find_by_id("user", user_id)
    if not user or not user.get("is_active", True):
        raise HTTPException(404, "User not found")
    out = user_out(user)
    out.pop("email", None)
    out.pop("phone", None)
    out["follower_count"] = len(user.get("followers", []))
    out["following_count"] = len(user.get("following", []))
    return {"success": True, "user": out}
