from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from database import collection, create_document, find_by_id, paginate, pagination_meta
from logger import get_logger
from schemas import Follow as FollowSchema
from security import get_current_user, user_id_of
from serializers import pick

logger = get_logger(__name__)

router = APIRouter(prefix="/api/follows", tags=["follows"])

FOLLOW_CARD = ("name", "avatar", "bio", "role", "verified")


def _user_list(user_id: str, field: str, page: int, limit: int) -> dict:
    user = find_by_id("user", user_id)
    if not user:
        raise HTTPException(404, "User not found")
    ids = [ObjectId(i) for i in user.get(field, []) if ObjectId.is_valid(i)]
    query = {"_id": {"$in": ids}}
    page, limit, skip = paginate(page, limit, max_limit=100)
    docs = collection("user").find(query).sort("name", 1).skip(skip).limit(limit)
    total = collection("user").count_documents(query)
    return {
        "success": True,
        "data": [pick(d, FOLLOW_CARD) for d in docs],
        "pagination": pagination_meta(page, limit, total),
    }


# Static paths first so "suggested" is not taken for a user id
@router.get("/suggested")
def suggested_users(limit: int = 10, user: dict = Depends(get_current_user)):
    excluded = [ObjectId(i) for i in user.get("following", []) if ObjectId.is_valid(i)] + [user["_id"]]
    docs = (
        collection("user")
        .find({"_id": {"$nin": excluded}, "role": "artist", "is_active": True})
        .sort([("verified", -1), ("total_sales", -1)])
        .limit(max(1, min(50, limit)))
    )
    return {"success": True, "data": [pick(d, FOLLOW_CARD + ("specializations",)) for d in docs]}


@router.get("/{user_id}/followers")
def list_followers(user_id: str, page: int = 1, limit: int = 20):
    return _user_list(user_id, "followers", page, limit)


@router.get("/{user_id}/following")
def list_following(user_id: str, page: int = 1, limit: int = 20):
    return _user_list(user_id, "following", page, limit)


@router.get("/{user_id}/status")
def follow_status(user_id: str, user: dict = Depends(get_current_user)):
    follow = collection("follow").find_one({"follower_id": user_id_of(user), "following_id": user_id})
    return {"success": True, "data": {"is_following": follow is not None}}


@router.post("/{user_id}")
def follow_user(user_id: str, user: dict = Depends(get_current_user)):
    follower_id = user_id_of(user)
    if follower_id == user_id:
        raise HTTPException(400, "Cannot follow yourself")
    target = find_by_id("user", user_id)
    if not target:
        raise HTTPException(404, "User not found")
    if collection("follow").find_one({"follower_id": follower_id, "following_id": user_id}):
        raise HTTPException(400, "Already following this user")

    try:
        create_document("follow", FollowSchema(follower_id=follower_id, following_id=user_id))
    except DuplicateKeyError:
        raise HTTPException(400, "Already following this user")

    collection("user").update_one({"_id": user["_id"]}, {"$addToSet": {"following": user_id}})
    collection("user").update_one({"_id": target["_id"]}, {"$addToSet": {"followers": follower_id}})
    return {"success": True, "message": "Successfully followed user"}


@router.delete("/{user_id}")
def unfollow_user(user_id: str, user: dict = Depends(get_current_user)):
    follower_id = user_id_of(user)
    follow = collection("follow").find_one({"follower_id": follower_id, "following_id": user_id})
    if not follow:
        raise HTTPException(400, "Not following this user")

    collection("follow").delete_one({"_id": follow["_id"]})
    collection("user").update_one({"_id": user["_id"]}, {"$pull": {"following": user_id}})
    if ObjectId.is_valid(user_id):
        collection("user").update_one({"_id": ObjectId(user_id)}, {"$pull": {"followers": follower_id}})
    return {"success": True, "message": "Successfully unfollowed user"}
