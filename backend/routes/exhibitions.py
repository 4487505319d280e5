from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from database import (
    collection,
    create_document,
    ensure_utc,
    find_by_id,
    paginate,
    pagination_meta,
    serialize_doc,
    update_document,
    utcnow,
)
from logger import get_logger
from schemas import Exhibition as ExhibitionSchema
from security import get_current_user, require_roles, user_id_of
from serializers import ARTWORK_CARD, USER_CARD, lookup, users_by_ids

logger = get_logger(__name__)

router = APIRouter(prefix="/api/exhibitions", tags=["exhibitions"])


class CreateExhibitionPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=10, max_length=2000)
    start_date: datetime
    end_date: datetime
    location: str = Field(..., min_length=1, max_length=200)
    image: str = Field(..., pattern=r"^https?://")
    featured_artworks: List[str] = Field(default_factory=list)
    max_capacity: Optional[int] = Field(None, ge=1)
    price: float = Field(0, ge=0)
    tags: List[str] = Field(default_factory=list)


def exhibition_status(start_date: datetime, end_date: datetime, now: Optional[datetime] = None) -> str:
    """upcoming before start, ongoing between the dates, completed after the end."""
    now = now or utcnow()
    if now < ensure_utc(start_date):
        return "upcoming"
    if now > ensure_utc(end_date):
        return "completed"
    return "ongoing"


def _refresh_status(doc: dict) -> dict:
    status = exhibition_status(doc["start_date"], doc["end_date"])
    if status != doc.get("status"):
        collection("exhibition").update_one({"_id": doc["_id"]}, {"$set": {"status": status}})
        doc["status"] = status
    return doc


@router.get("/")
def list_exhibitions(page: int = 1, limit: int = 10, status: Optional[str] = None, upcoming: bool = False):
    query = {}
    if status:
        query["status"] = status
    elif upcoming:
        query["status"] = {"$in": ["upcoming", "ongoing"]}

    page, limit, skip = paginate(page, limit, max_limit=50)
    docs = [_refresh_status(d) for d in collection("exhibition").find(query).sort("start_date", 1).skip(skip).limit(limit)]
    total = collection("exhibition").count_documents(query)

    organizers = lookup("user", [d["organizer_id"] for d in docs], USER_CARD)
    data = []
    for d in docs:
        out = serialize_doc(d)
        out["organizer"] = organizers.get(d["organizer_id"])
        out["registered_count"] = len(d.get("registered_users", []))
        data.append(out)
    return {"success": True, "data": data, "pagination": pagination_meta(page, limit, total)}


@router.get("/{exhibition_id}")
def get_exhibition(exhibition_id: str):
    doc = find_by_id("exhibition", exhibition_id)
    if not doc:
        raise HTTPException(404, "Exhibition not found")
    doc = _refresh_status(doc)

    out = serialize_doc(doc)
    out["organizer"] = lookup("user", [doc["organizer_id"]], USER_CARD + ("email",)).get(doc["organizer_id"])
    artworks = lookup("artwork", doc.get("featured_artworks", []), ARTWORK_CARD)
    out["featured_artworks"] = [artworks[a] for a in doc.get("featured_artworks", []) if a in artworks]
    out["registered_users"] = users_by_ids(doc.get("registered_users", []))
    return {"success": True, "data": out}


@router.post("/", status_code=201)
def create_exhibition(body: CreateExhibitionPayload, admin: dict = Depends(require_roles("admin"))):
    if ensure_utc(body.end_date) <= ensure_utc(body.start_date):
        raise HTTPException(400, "End date must be after start date")
    try:
        exhibition = ExhibitionSchema(
            **body.model_dump(),
            organizer_id=user_id_of(admin),
            status=exhibition_status(body.start_date, body.end_date),
            is_free=body.price == 0,
            access_type="free" if body.price == 0 else "paid",
        )
    except ValidationError as e:
        raise HTTPException(400, e.errors()[0]["msg"])

    eid = create_document("exhibition", exhibition)
    logger.info(f"Admin {admin['_id']} created exhibition {eid}")
    return {"success": True, "message": "Exhibition created successfully", "data": serialize_doc(find_by_id("exhibition", eid))}


@router.post("/{exhibition_id}/register")
def toggle_registration(exhibition_id: str, user: dict = Depends(get_current_user)):
    doc = find_by_id("exhibition", exhibition_id)
    if not doc:
        raise HTTPException(404, "Exhibition not found")
    doc = _refresh_status(doc)
    if doc["status"] == "completed":
        raise HTTPException(400, "Cannot register for a completed exhibition")

    uid = user_id_of(user)
    registered = doc.get("registered_users", [])
    if uid in registered:
        update_document("exhibition", exhibition_id, {}, extra={"$pull": {"registered_users": uid}})
        return {"success": True, "message": "Unregistered from exhibition", "data": {"registered": False, "registered_count": len(registered) - 1}}

    capacity = doc.get("max_capacity")
    if capacity and len(registered) >= capacity:
        raise HTTPException(400, "Exhibition is at full capacity")
    update_document("exhibition", exhibition_id, {}, extra={"$addToSet": {"registered_users": uid}})
    return {"success": True, "message": "Registered for exhibition", "data": {"registered": True, "registered_count": len(registered) + 1}}
