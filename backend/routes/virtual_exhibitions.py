"""
Virtual exhibitions curated by artists.

A virtual exhibition starts as a draft, becomes joinable once published and
tracks two counters: `views` (detail page loads) and `visits` (joins).
"""
import re
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from database import (
    collection,
    create_document,
    delete_document,
    ensure_utc,
    find_by_id,
    paginate,
    pagination_meta,
    serialize_doc,
    update_document,
)
from logger import get_logger
from schemas import VirtualExhibition as VirtualExhibitionSchema, VirtualExhibitionSettings, normalize_tags
from security import get_current_user, is_admin, user_id_of
from serializers import ARTWORK_CARD, USER_CARD, lookup, users_by_ids

logger = get_logger(__name__)

router = APIRouter(prefix="/api/virtual-exhibitions", tags=["virtual-exhibitions"])


class CreateVirtualExhibitionPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    theme: str = Field(..., min_length=1, max_length=100)
    artist_notes: Optional[str] = Field(None, max_length=1000)
    start_date: datetime
    end_date: datetime
    cover_image: str = Field(..., min_length=1)
    additional_images: List[str] = Field(default_factory=list)
    featured_artworks: List[str] = Field(default_factory=list)
    is_free: bool = True
    price: float = Field(0, ge=0)
    tags: List[str] = Field(default_factory=list)
    settings: VirtualExhibitionSettings = Field(default_factory=VirtualExhibitionSettings)


class UpdateVirtualExhibitionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    theme: Optional[str] = Field(None, min_length=1, max_length=100)
    artist_notes: Optional[str] = Field(None, max_length=1000)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    cover_image: Optional[str] = None
    additional_images: Optional[List[str]] = None
    featured_artworks: Optional[List[str]] = None
    is_free: Optional[bool] = None
    price: Optional[float] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    status: Optional[Literal["draft", "published", "archived"]] = None
    settings: Optional[VirtualExhibitionSettings] = None


def _get_or_404(exhibition_id: str) -> dict:
    doc = find_by_id("virtualexhibition", exhibition_id)
    if not doc:
        raise HTTPException(404, "Virtual exhibition not found")
    return doc


def _ensure_organizer_or_admin(doc: dict, user: dict, action: str) -> None:
    if doc["organizer_id"] != user_id_of(user) and not is_admin(user):
        raise HTTPException(403, f"Not authorized to {action} this exhibition")


def _view(doc: dict, detailed: bool = False) -> dict:
    out = serialize_doc(doc)
    out["organizer"] = lookup("user", [doc["organizer_id"]], USER_CARD + ("bio",)).get(doc["organizer_id"])
    out["attendee_count"] = len(doc.get("attendees", []))
    if detailed:
        artworks = lookup("artwork", doc.get("featured_artworks", []), ARTWORK_CARD)
        out["featured_artworks"] = [artworks[a] for a in doc.get("featured_artworks", []) if a in artworks]
    return out


@router.get("/")
def list_virtual_exhibitions(
    page: int = 1,
    limit: int = 12,
    status: Optional[str] = None,
    organizer: Optional[str] = None,
    theme: Optional[str] = None,
    is_free: Optional[bool] = None,
    search: Optional[str] = None,
):
    query = {}
    if status:
        query["status"] = status
    if organizer:
        query["organizer_id"] = organizer
    if theme:
        query["theme"] = {"$regex": re.escape(theme), "$options": "i"}
    if is_free is not None:
        query["is_free"] = is_free
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"description": pattern}, {"theme": pattern}]

    page, limit, skip = paginate(page, limit, max_limit=50)
    docs = list(collection("virtualexhibition").find(query).sort("created_at", -1).skip(skip).limit(limit))
    total = collection("virtualexhibition").count_documents(query)
    return {"success": True, "data": [_view(d) for d in docs], "pagination": pagination_meta(page, limit, total)}


@router.get("/{exhibition_id}")
def get_virtual_exhibition(exhibition_id: str):
    doc = _get_or_404(exhibition_id)
    collection("virtualexhibition").update_one({"_id": doc["_id"]}, {"$inc": {"views": 1}})
    doc["views"] = doc.get("views", 0) + 1
    return {"success": True, "data": _view(doc, detailed=True)}


@router.post("/", status_code=201)
def create_virtual_exhibition(body: CreateVirtualExhibitionPayload, user: dict = Depends(get_current_user)):
    if user.get("role") != "artist":
        raise HTTPException(403, "Only artists can create virtual exhibitions")
    if ensure_utc(body.end_date) <= ensure_utc(body.start_date):
        raise HTTPException(400, "End date must be after start date")

    exhibition = VirtualExhibitionSchema(**body.model_dump(), organizer_id=user_id_of(user))
    eid = create_document("virtualexhibition", exhibition)
    logger.info(f"Artist {user['_id']} created virtual exhibition {eid}")
    return {
        "success": True,
        "message": "Virtual exhibition created successfully",
        "data": _view(find_by_id("virtualexhibition", eid), detailed=True),
    }


@router.put("/{exhibition_id}")
def update_virtual_exhibition(
    exhibition_id: str,
    body: UpdateVirtualExhibitionPayload,
    user: dict = Depends(get_current_user),
):
    doc = _get_or_404(exhibition_id)
    _ensure_organizer_or_admin(doc, user, "update")

    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if "tags" in updates:
        updates["tags"] = normalize_tags(updates["tags"])

    # validate the merged record so the date order still holds
    merged = {k: v for k, v in doc.items() if k in VirtualExhibitionSchema.model_fields}
    merged.update(updates)
    try:
        VirtualExhibitionSchema(**merged)
    except ValidationError as e:
        raise HTTPException(400, e.errors()[0]["msg"])

    if updates:
        update_document("virtualexhibition", exhibition_id, updates)
    return {
        "success": True,
        "message": "Virtual exhibition updated successfully",
        "data": _view(find_by_id("virtualexhibition", exhibition_id), detailed=True),
    }


@router.delete("/{exhibition_id}")
def delete_virtual_exhibition(exhibition_id: str, user: dict = Depends(get_current_user)):
    doc = _get_or_404(exhibition_id)
    _ensure_organizer_or_admin(doc, user, "delete")
    delete_document("virtualexhibition", exhibition_id)
    return {"success": True, "message": "Virtual exhibition deleted successfully"}


@router.post("/{exhibition_id}/join")
def join_virtual_exhibition(exhibition_id: str, user: dict = Depends(get_current_user)):
    doc = _get_or_404(exhibition_id)
    if doc.get("status") != "published":
        raise HTTPException(400, "Exhibition is not available for joining")

    uid = user_id_of(user)
    attendees = doc.get("attendees", [])
    if uid in attendees:
        raise HTTPException(400, "Already joined this exhibition")

    max_attendees = (doc.get("settings") or {}).get("max_attendees")
    if max_attendees and len(attendees) >= max_attendees:
        raise HTTPException(400, "Exhibition is at full capacity")

    update_document(
        "virtualexhibition",
        exhibition_id,
        {},
        extra={"$addToSet": {"attendees": uid}, "$inc": {"visits": 1}},
    )
    return {
        "success": True,
        "message": "Successfully joined the exhibition",
        "data": {"attendee_count": len(attendees) + 1},
    }


@router.get("/{exhibition_id}/analytics")
def virtual_exhibition_analytics(exhibition_id: str, user: dict = Depends(get_current_user)):
    doc = _get_or_404(exhibition_id)
    _ensure_organizer_or_admin(doc, user, "view analytics for")
    attendees = doc.get("attendees", [])
    return {
        "success": True,
        "data": {
            "views": doc.get("views", 0),
            "visits": doc.get("visits", 0),
            "attendee_count": len(attendees),
            "attendees": users_by_ids(attendees, USER_CARD + ("email",)),
        },
    }
