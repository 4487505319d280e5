"""
Read-only dashboards computed at request time from the existing collections.
"""
from datetime import timedelta
from typing import Literal

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query

from database import collection, find_by_id, paginate, pagination_meta, utcnow
from logger import get_logger
from security import get_current_user, require_roles, user_id_of
from serializers import USER_CARD, comment_out, lookup, pick, users_by_ids

logger = get_logger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

ENGAGEMENT_WINDOW_DAYS = 30


def rate(numerator: float, denominator: float) -> float:
    """Percentage rounded to two decimals; 0 when there is nothing to divide by."""
    if not denominator:
        return 0
    return round(numerator / denominator * 100, 2)


@router.get("/artist")
def artist_analytics(user: dict = Depends(require_roles("artist"))):
    uid = user_id_of(user)
    artworks = list(collection("artwork").find({"artist_id": uid}))
    artwork_ids = [str(a["_id"]) for a in artworks]

    artwork_stats = {
        "total": len(artworks),
        "available": sum(1 for a in artworks if a.get("status") == "available"),
        "sold": sum(1 for a in artworks if a.get("status") == "sold"),
        "reserved": sum(1 for a in artworks if a.get("status") == "reserved"),
        "total_views": sum(a.get("views", 0) for a in artworks),
        "total_likes": sum(len(a.get("likes", [])) for a in artworks),
        "total_comments": sum(len(a.get("comments", [])) for a in artworks),
    }
    follower_stats = {
        "followers": len(user.get("followers", [])),
        "following": len(user.get("following", [])),
    }

    exhibitions = list(collection("exhibition").find({"organizer_id": uid}))
    virtual = list(collection("virtualexhibition").find({"organizer_id": uid}))
    exhibition_stats = {
        "total": len(exhibitions) + len(virtual),
        "regular": len(exhibitions),
        "virtual": len(virtual),
        "total_attendees": sum(len(e.get("attendees", [])) for e in virtual),
        "total_views": sum(e.get("views", 0) for e in virtual),
    }

    since = utcnow() - timedelta(days=ENGAGEMENT_WINDOW_DAYS)
    recent_comments = list(
        collection("comment")
        .find({"artwork_id": {"$in": artwork_ids}, "created_at": {"$gte": since}, "is_deleted": False})
        .sort("created_at", -1)
    )
    recent_follows = list(
        collection("follow").find({"following_id": uid, "created_at": {"$gte": since}}).sort("created_at", -1)
    )
    people = lookup(
        "user",
        [c["author_id"] for c in recent_comments[:5]] + [f["follower_id"] for f in recent_follows[:5]],
        USER_CARD,
    )

    return {
        "success": True,
        "data": {
            "artwork_stats": artwork_stats,
            "follower_stats": follower_stats,
            "exhibition_stats": exhibition_stats,
            "recent_engagement": {
                "comments": len(recent_comments),
                "new_followers": len(recent_follows),
                "recent_comments": [comment_out(c, people.get(c["author_id"])) for c in recent_comments[:5]],
                "recent_followers": [
                    {"follower": people.get(f["follower_id"]), "followed_at": f["created_at"]}
                    for f in recent_follows[:5]
                ],
            },
        },
    }


@router.get("/artwork/{artwork_id}")
def artwork_analytics(artwork_id: str, user: dict = Depends(get_current_user)):
    artwork = find_by_id("artwork", artwork_id)
    if not artwork:
        raise HTTPException(404, "Artwork not found")
    if artwork["artist_id"] != user_id_of(user):
        raise HTTPException(403, "Not authorized to view this artwork analytics")

    comments = list(collection("comment").find({"artwork_id": artwork_id, "is_deleted": False}).sort("created_at", -1))
    authors = lookup("user", [c["author_id"] for c in comments], USER_CARD)
    likes = artwork.get("likes", [])
    views = artwork.get("views", 0)

    return {
        "success": True,
        "data": {
            "artwork": pick(artwork, ("title", "status", "price", "created_at")),
            "engagement_metrics": {
                "views": views,
                "likes": len(likes),
                "comments": len(comments),
                "engagement_rate": rate(len(likes) + len(comments), views),
            },
            "comments": [comment_out(c, authors.get(c["author_id"])) for c in comments],
            "likes": users_by_ids(likes),
        },
    }


@router.get("/exhibition/{exhibition_id}")
def exhibition_analytics(
    exhibition_id: str,
    type: Literal["virtual", "regular"] = "virtual",
    user: dict = Depends(get_current_user),
):
    name = "virtualexhibition" if type == "virtual" else "exhibition"
    exhibition = find_by_id(name, exhibition_id)
    if not exhibition:
        raise HTTPException(404, "Exhibition not found")
    if exhibition["organizer_id"] != user_id_of(user):
        raise HTTPException(403, "Not authorized to view this exhibition analytics")

    people_fields = USER_CARD + ("email", "created_at")
    if type == "virtual":
        attendees = exhibition.get("attendees", [])
        views, visits = exhibition.get("views", 0), exhibition.get("visits", 0)
        analytics = {
            "views": views,
            "visits": visits,
            "attendee_count": len(attendees),
            "attendees": users_by_ids(attendees, people_fields),
            "engagement_rate": rate(visits, views),
        }
    else:
        registered = exhibition.get("registered_users", [])
        capacity = exhibition.get("max_capacity")
        analytics = {
            "registered_count": len(registered),
            "registered_users": users_by_ids(registered, people_fields),
            "max_capacity": capacity,
            "capacity_utilization": rate(len(registered), capacity),
        }

    return {
        "success": True,
        "data": {
            "exhibition": pick(exhibition, ("title", "status", "start_date", "end_date")),
            "analytics": analytics,
        },
    }


@router.get("/followers")
def follower_analytics(page: int = 1, limit: int = 20, user: dict = Depends(require_roles("artist"))):
    page, limit, skip = paginate(page, limit, max_limit=100)
    query = {"_id": {"$in": [ObjectId(i) for i in user.get("followers", []) if ObjectId.is_valid(i)]}}
    followers = collection("user").find(query).sort("created_at", -1).skip(skip).limit(limit)
    total = collection("user").count_documents(query)

    data = []
    for follower in followers:
        artworks = list(collection("artwork").find({"artist_id": str(follower["_id"])}, {"likes": 1, "views": 1}))
        out = pick(follower, ("name", "avatar", "bio", "role", "verified", "created_at"))
        out["engagement"] = {
            "artworks_count": len(artworks),
            "total_likes": sum(len(a.get("likes", [])) for a in artworks),
            "total_views": sum(a.get("views", 0) for a in artworks),
        }
        data.append(out)

    return {"success": True, "data": data, "pagination": pagination_meta(page, limit, total)}


@router.get("/sales")
def sales_analytics(period: int = Query(30, ge=1), user: dict = Depends(require_roles("artist"))):
    since = utcnow() - timedelta(days=period)
    sold = list(
        collection("artwork")
        .find({"artist_id": user_id_of(user), "status": "sold", "updated_at": {"$gte": since}})
        .sort("updated_at", -1)
    )
    total_sales = sum(a["price"] for a in sold)
    return {
        "success": True,
        "data": {
            "total_sales": total_sales,
            "sold_count": len(sold),
            "average_price": round(total_sales / len(sold), 2) if sold else 0,
            "period": period,
            "sold_artworks": [
                {"id": str(a["_id"]), "title": a["title"], "price": a["price"], "sold_at": a.get("updated_at")}
                for a in sold
            ],
        },
    }
