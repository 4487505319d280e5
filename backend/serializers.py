"""
Response shaping shared by the route modules: strips secrets, converts ids and
embeds small summaries of referenced users and artworks.
"""
from typing import Dict, Iterable, List, Optional

from database import find_many_by_ids, serialize_doc

PRIVATE_USER_FIELDS = ("password_hash",)

USER_CARD = ("name", "avatar")
ARTIST_CARD = ("name", "avatar", "location", "verified", "rating")
ARTWORK_CARD = ("title", "images", "price", "artist_id", "status")


def user_out(doc: Optional[dict]) -> Optional[dict]:
    return serialize_doc(doc, exclude=PRIVATE_USER_FIELDS)


def pick(doc: Optional[dict], fields: Iterable[str]) -> Optional[dict]:
    if not doc:
        return None
    out = {"id": str(doc["_id"])}
    for f in fields:
        out[f] = doc.get(f)
    return out


def lookup(collection_name: str, ids: Iterable[Optional[str]], fields: Iterable[str]) -> Dict[str, dict]:
    """Fetch the referenced documents once and index their summaries by id."""
    fields = tuple(fields)
    wanted = list({i for i in ids if i})
    return {str(d["_id"]): pick(d, fields) for d in find_many_by_ids(collection_name, wanted)}


def users_by_ids(ids: Iterable[str], fields: Iterable[str] = USER_CARD) -> List[dict]:
    index = lookup("user", ids, fields)
    return [index[i] for i in ids if i in index]


def artwork_out(doc: Optional[dict], artist: Optional[dict] = None) -> Optional[dict]:
    if not doc:
        return doc
    out = serialize_doc(doc)
    out["like_count"] = len(doc.get("likes", []))
    if artist is not None:
        out["artist"] = artist
    return out


def artworks_with_artists(docs: List[dict], fields: Iterable[str] = ARTIST_CARD) -> List[dict]:
    artists = lookup("user", [d.get("artist_id") for d in docs], fields)
    return [artwork_out(d, artists.get(d.get("artist_id"))) for d in docs]


def comment_out(doc: dict, author: Optional[dict] = None) -> dict:
    out = serialize_doc(doc)
    out["like_count"] = len(doc.get("likes", []))
    out["author"] = author
    return out
