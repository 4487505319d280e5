"""
MongoDB access helpers.

Each Pydantic model in `schemas.py` maps to one collection (class name in
lowercase). Documents reference each other by string ids; only `_id` is an
ObjectId, and `serialize_doc` turns it into an `id` string for responses.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

from config import DATABASE_NAME, DATABASE_URL
from logger import get_logger

logger = get_logger(__name__)

_client = None
db = None


def connect(client=None):
    """Open (or inject) the Mongo client and select the application database."""
    global _client, db
    _client = client if client is not None else MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = _client[DATABASE_NAME]
    logger.info(f"Using database '{DATABASE_NAME}'")
    return db


def get_db():
    if db is None:
        connect()
    return db


def close() -> None:
    global _client, db
    if _client is not None:
        _client.close()
    _client = None
    db = None


def collection(name: str):
    return get_db()[name]


def ensure_indexes() -> None:
    collection("user").create_index("email", unique=True)
    collection("user").create_index("role")
    collection("artwork").create_index("artist_id")
    collection("artwork").create_index([("created_at", DESCENDING)])
    collection("cart").create_index("user_id", unique=True)
    collection("order").create_index("user_id")
    collection("order").create_index("stripe_session_id")
    collection("comment").create_index([("artwork_id", ASCENDING), ("created_at", DESCENDING)])
    collection("follow").create_index([("follower_id", ASCENDING), ("following_id", ASCENDING)], unique=True)
    collection("conversation").create_index("participants")


# Time helpers

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Mongo hands back naive datetimes unless the client is tz aware
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Ids and serialization

def to_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and ObjectId.is_valid(value)


def serialize_doc(doc: Optional[dict], exclude: Tuple[str, ...] = ()) -> Optional[dict]:
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    for key in exclude:
        doc.pop(key, None)
    return doc


def find_by_id(collection_name: str, doc_id: str) -> Optional[dict]:
    return collection(collection_name).find_one({"_id": to_object_id(doc_id)})


def find_many_by_ids(collection_name: str, ids: List[str], projection: Optional[dict] = None) -> List[dict]:
    object_ids = [ObjectId(i) for i in ids if is_valid_id(i)]
    if not object_ids:
        return []
    return list(collection(collection_name).find({"_id": {"$in": object_ids}}, projection))


# CRUD helpers

def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping created_at/updated_at, and return its id."""
    if isinstance(data, BaseModel):
        payload = data.model_dump()
    else:
        payload = dict(data)
    now = utcnow()
    payload["created_at"] = now
    payload["updated_at"] = now
    result = collection(collection_name).insert_one(payload)
    return str(result.inserted_id)


def update_document(collection_name: str, doc_id: str, fields: Dict[str, Any], extra: Optional[dict] = None) -> int:
    """$set `fields` (plus updated_at) on one document; `extra` carries other operators."""
    update: Dict[str, Any] = {"$set": {**fields, "updated_at": utcnow()}}
    if extra:
        update.update(extra)
    result = collection(collection_name).update_one({"_id": to_object_id(doc_id)}, update)
    return result.matched_count


def delete_document(collection_name: str, doc_id: str) -> int:
    result = collection(collection_name).delete_one({"_id": to_object_id(doc_id)})
    return result.deleted_count


# Pagination

def paginate(page: int = 1, limit: int = 20, max_limit: int = 50) -> Tuple[int, int, int]:
    """Clamp page/limit and return (page, limit, skip)."""
    page = max(1, int(page))
    limit = min(max_limit, max(1, int(limit)))
    return page, limit, (page - 1) * limit


def pagination_meta(page: int, limit: int, total: int) -> dict:
    pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }
