from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from database import (
    collection,
    delete_document,
    find_by_id,
    paginate,
    pagination_meta,
    update_document,
    utcnow,
)
from logger import get_logger
from schemas import SocialLinks
from security import require_roles
from serializers import lookup, pick, user_out

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_roles("admin"))])


class AdminUserUpdatePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[Literal["artist", "community", "admin"]] = None
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    social_links: Optional[SocialLinks] = None
    specializations: Optional[List[str]] = None
    verified: Optional[bool] = None
    total_sales: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    total_ratings: Optional[int] = Field(None, ge=0)


class VerifyPayload(BaseModel):
    verified: bool


class UserStatsPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_sales: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    total_ratings: Optional[int] = Field(None, ge=0)


def _group_count(collection_name: str, field: str) -> list:
    pipeline = [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}, {"$sort": {"_id": 1}}]
    return [{"id": row["_id"], "count": row["count"]} for row in collection(collection_name).aggregate(pipeline)]


def _update_user(user_id: str, updates: dict) -> dict:
    if not find_by_id("user", user_id):
        raise HTTPException(404, "User not found")
    if updates:
        try:
            update_document("user", user_id, updates)
        except DuplicateKeyError:
            raise HTTPException(400, "Email already in use")
    return user_out(find_by_id("user", user_id))


@router.get("/stats")
def dashboard_stats():
    recent_users = collection("user").find({}).sort("created_at", -1).limit(5)
    recent_artworks = list(collection("artwork").find({}).sort("created_at", -1).limit(5))
    artists = lookup("user", [a.get("artist_id") for a in recent_artworks], ("name",))
    return {
        "success": True,
        "stats": {
            "total_users": collection("user").count_documents({}),
            "total_artists": collection("user").count_documents({"role": "artist"}),
            "total_artworks": collection("artwork").count_documents({}),
            "total_exhibitions": collection("exhibition").count_documents({}),
            "recent_users": [pick(u, ("name", "email", "role", "created_at")) for u in recent_users],
            "recent_artworks": [
                {**pick(a, ("title", "price", "status", "created_at")), "artist": artists.get(a.get("artist_id"))}
                for a in recent_artworks
            ],
        },
    }


@router.get("/overview")
def platform_overview():
    now = utcnow()
    month_start = datetime(now.year, now.month, 1, tzinfo=now.tzinfo)
    per_day = {}
    for u in collection("user").find({"created_at": {"$gte": month_start}}, {"created_at": 1}):
        day = u["created_at"].strftime("%Y-%m-%d")
        per_day[day] = per_day.get(day, 0) + 1

    return {
        "success": True,
        "overview": {
            "users_by_role": _group_count("user", "role"),
            "artworks_by_category": _group_count("artwork", "category"),
            "exhibitions_by_status": _group_count("exhibition", "status"),
            "monthly_stats": [{"id": day, "count": per_day[day]} for day in sorted(per_day)],
        },
    }


@router.get("/users")
def list_users(page: int = 1, limit: int = 20, role: Optional[str] = None, verified: Optional[bool] = None):
    query = {}
    if role:
        query["role"] = role
    if verified is not None:
        query["verified"] = verified

    page, limit, skip = paginate(page, limit, max_limit=100)
    docs = collection("user").find(query).sort("created_at", -1).skip(skip).limit(limit)
    total = collection("user").count_documents(query)
    return {
        "success": True,
        "users": [user_out(d) for d in docs],
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/users/{user_id}")
def get_user(user_id: str):
    user = find_by_id("user", user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return {"success": True, "user": user_out(user)}


@router.put("/users/{user_id}")
def update_user(user_id: str, body: AdminUserUpdatePayload):
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in updates:
        updates["email"] = updates["email"].lower()
    user = _update_user(user_id, updates)
    logger.info(f"Admin updated user {user_id}: {sorted(updates)}")
    return {"success": True, "message": "User updated successfully", "user": user}


@router.delete("/users/{user_id}")
def delete_user(user_id: str):
    if not delete_document("user", user_id):
        raise HTTPException(404, "User not found")
    logger.info(f"Admin deleted user {user_id}")
    return {"success": True, "message": "User deleted successfully"}


@router.patch("/users/{user_id}/verify")
def set_verified(user_id: str, body: VerifyPayload):
    user = _update_user(user_id, {"verified": body.verified})
    return {
        "success": True,
        "message": f"User {'verified' if body.verified else 'unverified'} successfully",
        "user": user,
    }


@router.patch("/users/{user_id}/stats")
def update_user_stats(user_id: str, body: UserStatsPayload):
    user = _update_user(user_id, body.model_dump(exclude_none=True))
    return {"success": True, "message": "User stats updated successfully", "user": user}
