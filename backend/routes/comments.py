from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from database import (
    collection,
    create_document,
    find_by_id,
    paginate,
    pagination_meta,
    to_object_id,
    update_document,
    utcnow,
)
from logger import get_logger
from schemas import Comment as CommentSchema
from security import get_current_user, is_admin, user_id_of
from serializers import comment_out, lookup

logger = get_logger(__name__)

router = APIRouter(prefix="/api/comments", tags=["comments"])


class CommentPayload(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)
    parent_comment_id: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class EditCommentPayload(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


def _with_authors(docs) -> list:
    docs = list(docs)
    authors = lookup("user", [d["author_id"] for d in docs], ("name", "avatar"))
    return [comment_out(d, authors.get(d["author_id"])) for d in docs]


def _comment_view(comment_id: str) -> dict:
    comment = find_by_id("comment", comment_id)
    out = _with_authors([comment])[0]
    parent_id = comment.get("parent_comment_id")
    if parent_id:
        parent = find_by_id("comment", parent_id)
        out["parent_comment"] = {"id": parent_id, "content": parent["content"], "author_id": parent["author_id"]} if parent else None
    return out


def _get_comment_or_404(comment_id: str) -> dict:
    comment = find_by_id("comment", comment_id)
    if not comment:
        raise HTTPException(404, "Comment not found")
    return comment


def _ensure_author_or_admin(comment: dict, user: dict, action: str) -> None:
    if comment["author_id"] != user_id_of(user) and not is_admin(user):
        raise HTTPException(403, f"Not authorized to {action} this comment")


def _paged(query: dict, sort_dir: int, page: int, limit: int) -> dict:
    page, limit, skip = paginate(page, limit, max_limit=100)
    docs = collection("comment").find(query).sort("created_at", sort_dir).skip(skip).limit(limit)
    total = collection("comment").count_documents(query)
    return {"success": True, "data": _with_authors(docs), "pagination": pagination_meta(page, limit, total)}


@router.get("/artwork/{artwork_id}")
def list_artwork_comments(artwork_id: str, page: int = 1, limit: int = 20):
    query = {"artwork_id": artwork_id, "is_deleted": False, "parent_comment_id": None}
    return _paged(query, -1, page, limit)


@router.get("/{comment_id}/replies")
def list_replies(comment_id: str, page: int = 1, limit: int = 10):
    return _paged({"parent_comment_id": comment_id, "is_deleted": False}, 1, page, limit)


@router.post("/artwork/{artwork_id}", status_code=201)
def create_comment(artwork_id: str, body: CommentPayload, user: dict = Depends(get_current_user)):
    artwork = find_by_id("artwork", artwork_id)
    if not artwork:
        raise HTTPException(404, "Artwork not found")

    if body.parent_comment_id:
        parent = find_by_id("comment", body.parent_comment_id)
        if not parent or parent.get("is_deleted"):
            raise HTTPException(404, "Parent comment not found")

    comment = CommentSchema(
        artwork_id=artwork_id,
        author_id=user_id_of(user),
        content=body.content,
        parent_comment_id=body.parent_comment_id,
    )
    cid = create_document("comment", comment)
    collection("artwork").update_one({"_id": artwork["_id"]}, {"$push": {"comments": cid}})

    return {"success": True, "message": "Comment created successfully", "data": _comment_view(cid)}


@router.put("/{comment_id}")
def update_comment(comment_id: str, body: EditCommentPayload, user: dict = Depends(get_current_user)):
    comment = _get_comment_or_404(comment_id)
    _ensure_author_or_admin(comment, user, "edit")
    if comment.get("is_deleted"):
        raise HTTPException(400, "Cannot edit deleted comment")

    update_document("comment", comment_id, {"content": body.content, "is_edited": True, "edited_at": utcnow()})
    return {"success": True, "message": "Comment updated successfully", "data": _comment_view(comment_id)}


@router.delete("/{comment_id}")
def delete_comment(comment_id: str, user: dict = Depends(get_current_user)):
    comment = _get_comment_or_404(comment_id)
    _ensure_author_or_admin(comment, user, "delete")

    update_document("comment", comment_id, {
        "is_deleted": True,
        "deleted_at": utcnow(),
        "deleted_by": user_id_of(user),
    })
    return {"success": True, "message": "Comment deleted successfully"}


@router.post("/{comment_id}/like")
def toggle_comment_like(comment_id: str, user: dict = Depends(get_current_user)):
    comment = _get_comment_or_404(comment_id)
    if comment.get("is_deleted"):
        raise HTTPException(400, "Cannot like deleted comment")

    uid = user_id_of(user)
    liked = uid not in comment.get("likes", [])
    op = {"$addToSet": {"likes": uid}} if liked else {"$pull": {"likes": uid}}
    collection("comment").update_one({"_id": to_object_id(comment_id)}, op)
    likes = find_by_id("comment", comment_id).get("likes", [])
    return {
        "success": True,
        "message": "Comment liked" if liked else "Comment unliked",
        "data": {"liked": liked, "like_count": len(likes)},
    }
