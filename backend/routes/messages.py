"""
Direct messages between two users.

Each pair of users shares one conversation document holding the participant
ids (sorted), a pointer to the last message and a per-user unread counter.
Sending bumps the receiver's counter; reading a conversation resets the
reader's counter and flags their received messages as read.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from database import (
    collection,
    create_document,
    find_by_id,
    find_many_by_ids,
    is_valid_id,
    paginate,
    serialize_doc,
    utcnow,
)
from logger import get_logger
from schemas import Conversation as ConversationSchema, Message as MessageSchema
from security import get_current_user, user_id_of
from serializers import lookup

logger = get_logger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])

PARTICIPANT_CARD = ("name", "avatar", "role")


class SendMessagePayload(BaseModel):
    receiver_id: str
    content: str = Field(..., min_length=1, max_length=1000)
    artwork_id: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


def _conversation_for(user_id: str, conversation_id: str) -> dict:
    conversation = find_by_id("conversation", conversation_id)
    if not conversation or user_id not in conversation.get("participants", []):
        raise HTTPException(403, "Access denied to this conversation")
    return conversation


def _mark_read(conversation: dict, user_id: str) -> None:
    now = utcnow()
    collection("message").update_many(
        {"conversation_id": str(conversation["_id"]), "receiver_id": user_id, "read": False},
        {"$set": {"read": True, "read_at": now}},
    )
    collection("conversation").update_one(
        {"_id": conversation["_id"]},
        {"$set": {f"unread_count.{user_id}": 0, "updated_at": now}},
    )


def _message_view(docs: list) -> list:
    users = lookup("user", [d["sender_id"] for d in docs] + [d["receiver_id"] for d in docs], ("name", "avatar"))
    out = []
    for d in docs:
        m = serialize_doc(d)
        m["sender"] = users.get(d["sender_id"])
        m["receiver"] = users.get(d["receiver_id"])
        out.append(m)
    return out


@router.get("/conversations")
def list_conversations(user: dict = Depends(get_current_user)):
    uid = user_id_of(user)
    conversations = list(collection("conversation").find({"participants": uid}).sort("last_message_at", -1))

    others = [next((p for p in c["participants"] if p != uid), uid) for c in conversations]
    users = lookup("user", others, PARTICIPANT_CARD)
    artworks = lookup("artwork", [c.get("artwork_id") for c in conversations], ("title", "images"))
    last_messages = {
        str(m["_id"]): serialize_doc(m)
        for m in find_many_by_ids("message", [c.get("last_message_id") for c in conversations])
    }

    result = []
    for conv, other in zip(conversations, others):
        result.append({
            "id": str(conv["_id"]),
            "other_user": users.get(other),
            "last_message": last_messages.get(conv.get("last_message_id")),
            "unread_count": conv.get("unread_count", {}).get(uid, 0),
            "artwork": artworks.get(conv.get("artwork_id")),
            "last_message_at": conv.get("last_message_at"),
        })
    return {"success": True, "data": result}


@router.get("/unread-count")
def unread_count(user: dict = Depends(get_current_user)):
    uid = user_id_of(user)
    total = sum(
        c.get("unread_count", {}).get(uid, 0)
        for c in collection("conversation").find({"participants": uid}, {"unread_count": 1})
    )
    return {"success": True, "data": {"unread_count": total}}


@router.get("/conversations/{conversation_id}")
def get_messages(conversation_id: str, page: int = 1, limit: int = 50, user: dict = Depends(get_current_user)):
    uid = user_id_of(user)
    conversation = _conversation_for(uid, conversation_id)

    page, limit, skip = paginate(page, limit, max_limit=100)
    docs = list(
        collection("message")
        .find({"conversation_id": conversation_id})
        .sort([("created_at", -1), ("_id", -1)])
        .skip(skip)
        .limit(limit)
    )
    _mark_read(conversation, uid)

    # newest page first from the store, oldest first on the wire
    docs.reverse()
    return {"success": True, "data": _message_view(docs)}


@router.post("/", status_code=201)
def send_message(body: SendMessagePayload, user: dict = Depends(get_current_user)):
    sender_id = user_id_of(user)
    if not is_valid_id(body.receiver_id) or not find_by_id("user", body.receiver_id):
        raise HTTPException(404, "Receiver not found")
    if body.receiver_id == sender_id:
        raise HTTPException(400, "Cannot send a message to yourself")
    if body.artwork_id and (not is_valid_id(body.artwork_id) or not find_by_id("artwork", body.artwork_id)):
        raise HTTPException(404, "Artwork not found")

    participants = sorted([sender_id, body.receiver_id])
    conversation = collection("conversation").find_one({"participants": participants})
    if not conversation:
        create_document("conversation", ConversationSchema(
            participants=participants,
            artwork_id=body.artwork_id,
            unread_count={sender_id: 0, body.receiver_id: 0},
        ))
        conversation = collection("conversation").find_one({"participants": participants})
    conversation_id = str(conversation["_id"])

    mid = create_document("message", MessageSchema(
        conversation_id=conversation_id,
        sender_id=sender_id,
        receiver_id=body.receiver_id,
        artwork_id=body.artwork_id,
        content=body.content,
    ))
    now = utcnow()
    collection("conversation").update_one(
        {"_id": conversation["_id"]},
        {
            "$set": {"last_message_id": mid, "last_message_at": now, "updated_at": now},
            "$inc": {f"unread_count.{body.receiver_id}": 1},
        },
    )

    message = find_by_id("message", mid)
    return {"success": True, "message": "Message sent successfully", "data": _message_view([message])[0]}


@router.patch("/conversations/{conversation_id}/read")
def mark_conversation_read(conversation_id: str, user: dict = Depends(get_current_user)):
    uid = user_id_of(user)
    conversation = _conversation_for(uid, conversation_id)
    _mark_read(conversation, uid)
    return {"success": True, "message": "Conversation marked as read"}
