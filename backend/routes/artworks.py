import re
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field, field_validator

import config
import media
from database import (
    collection,
    create_document,
    delete_document,
    find_by_id,
    paginate,
    pagination_meta,
    update_document,
)
from logger import get_logger
from schemas import ARTWORK_CATEGORIES, Artwork as ArtworkSchema, normalize_tags
from security import get_current_user, get_optional_user, is_admin, user_id_of
from serializers import ARTIST_CARD, artwork_out, artworks_with_artists, lookup, users_by_ids

logger = get_logger(__name__)

router = APIRouter(prefix="/api/artworks", tags=["artworks"])

ARTIST_DETAIL = ("name", "avatar", "bio", "location", "verified", "rating", "total_sales", "social_links")
SORTABLE_FIELDS = {"created_at", "price", "views", "title", "updated_at"}
MAX_IMAGES = 5


class CreateArtworkPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    price: float = Field(..., ge=0)
    category: str
    medium: str = Field(..., min_length=1, max_length=100)
    dimensions: str = Field(..., min_length=1, max_length=100)
    images: List[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    tags: List[str] = Field(default_factory=list)

    @field_validator("title", "description", "medium", "dimensions", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: str) -> str:
        if v not in ARTWORK_CATEGORIES:
            raise ValueError("Invalid category")
        return v


class UpdateArtworkPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    medium: Optional[str] = Field(None, min_length=1, max_length=100)
    dimensions: Optional[str] = Field(None, min_length=1, max_length=100)
    tags: Optional[List[str]] = None
    status: Optional[Literal["available", "sold", "reserved"]] = None

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ARTWORK_CATEGORIES:
            raise ValueError("Invalid category")
        return v


def _get_artwork_or_404(artwork_id: str) -> dict:
    artwork = find_by_id("artwork", artwork_id)
    if not artwork:
        raise HTTPException(404, "Artwork not found")
    return artwork


def _ensure_can_modify(artwork: dict, user: dict, action: str) -> None:
    if artwork["artist_id"] != user_id_of(user) and not is_admin(user):
        raise HTTPException(403, f"Not authorized to {action} this artwork")


def _with_artist(artwork: dict, fields=ARTIST_CARD) -> dict:
    artist = lookup("user", [artwork["artist_id"]], fields).get(artwork["artist_id"])
    return artwork_out(artwork, artist)


@router.get("/")
def list_artworks(
    page: int = 1,
    limit: int = 12,
    category: Optional[str] = None,
    search: Optional[str] = None,
    artist: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    status: Optional[str] = "available",
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
):
    query = {}
    if category:
        query["category"] = category
    if artist:
        query["artist_id"] = artist
    if status:
        query["status"] = status
    if min_price is not None or max_price is not None:
        query["price"] = {}
        if min_price is not None:
            query["price"]["$gte"] = min_price
        if max_price is not None:
            query["price"]["$lte"] = max_price
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"title": pattern}, {"description": pattern}, {"tags": pattern}]

    if sort_by not in SORTABLE_FIELDS:
        raise HTTPException(400, f"Cannot sort by '{sort_by}'")

    page, limit, skip = paginate(page, limit, max_limit=50)
    docs = list(
        collection("artwork")
        .find(query)
        .sort(sort_by, -1 if sort_order == "desc" else 1)
        .skip(skip)
        .limit(limit)
    )
    total = collection("artwork").count_documents(query)
    return {
        "success": True,
        "artworks": artworks_with_artists(docs),
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/categories")
def get_categories():
    return {"success": True, "categories": ARTWORK_CATEGORIES}


@router.get("/{artwork_id}")
def get_artwork(artwork_id: str, viewer: Optional[dict] = Depends(get_optional_user)):
    artwork = _get_artwork_or_404(artwork_id)

    # the artist looking at their own piece does not count as a view
    if viewer is None or user_id_of(viewer) != artwork["artist_id"]:
        collection("artwork").update_one({"_id": artwork["_id"]}, {"$inc": {"views": 1}})
        artwork["views"] = artwork.get("views", 0) + 1

    out = _with_artist(artwork, ARTIST_DETAIL)
    out["liked_by"] = users_by_ids(artwork.get("likes", []))
    return {"success": True, "artwork": out}


@router.post("/", status_code=201)
def create_artwork(body: CreateArtworkPayload, user: dict = Depends(get_current_user)):
    if user.get("role") != "artist":
        raise HTTPException(403, "Only artists can create artworks")

    artwork = ArtworkSchema(
        title=body.title,
        description=body.description,
        price=body.price,
        category=body.category,
        medium=body.medium,
        dimensions=body.dimensions,
        images=body.images or [config.FALLBACK_IMAGE_URL],
        artist_id=user_id_of(user),
        tags=body.tags,
    )
    aid = create_document("artwork", artwork)
    logger.info(f"Artist {user['_id']} created artwork {aid}")
    return {
        "success": True,
        "message": "Artwork created successfully",
        "artwork": _with_artist(find_by_id("artwork", aid)),
    }


@router.put("/{artwork_id}")
def update_artwork(artwork_id: str, body: UpdateArtworkPayload, user: dict = Depends(get_current_user)):
    artwork = _get_artwork_or_404(artwork_id)
    _ensure_can_modify(artwork, user, "update")

    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if "tags" in updates:
        updates["tags"] = normalize_tags(updates["tags"])
    if updates:
        update_document("artwork", artwork_id, updates)
    return {
        "success": True,
        "message": "Artwork updated successfully",
        "artwork": _with_artist(find_by_id("artwork", artwork_id)),
    }


@router.delete("/{artwork_id}")
def delete_artwork(artwork_id: str, user: dict = Depends(get_current_user)):
    artwork = _get_artwork_or_404(artwork_id)
    _ensure_can_modify(artwork, user, "delete")
    delete_document("artwork", artwork_id)
    for url in artwork.get("images", []):
        public_id = media.public_id_from_url(url)
        if public_id:
            media.delete_image(public_id)
    logger.info(f"User {user['_id']} deleted artwork {artwork_id}")
    return {"success": True, "message": "Artwork deleted successfully"}


@router.post("/{artwork_id}/like")
def like_artwork(artwork_id: str, user: dict = Depends(get_current_user)):
    artwork = _get_artwork_or_404(artwork_id)
    uid = user_id_of(user)
    liked = uid in artwork.get("likes", [])
    op = {"$pull": {"likes": uid}} if liked else {"$addToSet": {"likes": uid}}
    collection("artwork").update_one({"_id": artwork["_id"]}, op)
    likes = collection("artwork").find_one({"_id": artwork["_id"]}, {"likes": 1}).get("likes", [])
    return {
        "success": True,
        "message": "Artwork unliked" if liked else "Artwork liked",
        "liked": not liked,
        "like_count": len(likes),
    }


@router.post("/{artwork_id}/images")
def upload_images(
    artwork_id: str,
    files: List[UploadFile] = File(...),
    user: dict = Depends(get_current_user),
):
    artwork = _get_artwork_or_404(artwork_id)
    _ensure_can_modify(artwork, user, "update")

    existing = [u for u in artwork.get("images", []) if u != config.FALLBACK_IMAGE_URL]
    if len(existing) + len(files) > MAX_IMAGES:
        raise HTTPException(400, f"An artwork can have at most {MAX_IMAGES} images")

    urls = []
    for f in files:
        if not (f.content_type or "").startswith("image/"):
            raise HTTPException(400, "Only image files are allowed")
        data = f.file.read(media.MAX_UPLOAD_BYTES + 1)
        if len(data) > media.MAX_UPLOAD_BYTES:
            raise HTTPException(400, "Image exceeds the 5MB limit")
        urls.append(media.upload_image(data, folder="artworks")["secure_url"])

    update_document("artwork", artwork_id, {"images": existing + urls})
    return {
        "success": True,
        "message": "Images uploaded successfully",
        "artwork": _with_artist(find_by_id("artwork", artwork_id)),
    }
