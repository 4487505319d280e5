"""
Database Schemas for the Sundays Art Hub platform.
Each Pydantic model represents a MongoDB collection (collection name = class name lowercased).
References to other documents are stored as string ids.
"""
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

ARTWORK_CATEGORIES = [
    "Painting",
    "Photography",
    "Sculpture",
    "Digital Art",
    "Mixed Media",
    "Abstract",
    "Portrait",
    "Landscape",
    "Still Life",
    "Street Art",
    "Other",
]

UserRole = Literal["artist", "community", "admin"]
ArtworkStatus = Literal["available", "sold", "reserved"]
OrderStatus = Literal["pending", "paid", "cancelled", "refunded"]
ExhibitionStatus = Literal["upcoming", "ongoing", "completed"]
VirtualExhibitionStatus = Literal["draft", "published", "archived"]


def normalize_tags(tags: List[str]) -> List[str]:
    return [t.strip().lower() for t in tags if t and t.strip()]


def as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class SocialLinks(BaseModel):
    instagram: Optional[str] = None
    website: Optional[str] = None
    facebook: Optional[str] = None


# Users
class User(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password_hash: str
    role: UserRole = Field(default="community", description="artist | community | admin")
    avatar: str = ""
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    social_links: SocialLinks = Field(default_factory=SocialLinks)
    verified: bool = False
    specializations: List[str] = Field(default_factory=list)
    total_sales: float = Field(0, ge=0)
    rating: float = Field(0, ge=0, le=5)
    total_ratings: int = Field(0, ge=0)
    followers: List[str] = Field(default_factory=list)
    following: List[str] = Field(default_factory=list)
    is_active: bool = True
    last_login: Optional[datetime] = None


# Artworks
class Artwork(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., max_length=2000)
    price: float = Field(..., ge=0)
    category: str
    medium: str = Field(..., min_length=1, max_length=100)
    dimensions: str = Field(..., min_length=1, max_length=100)
    images: List[str] = Field(default_factory=list)
    artist_id: str
    status: ArtworkStatus = "available"
    tags: List[str] = Field(default_factory=list)
    likes: List[str] = Field(default_factory=list)
    views: int = Field(0, ge=0)
    featured: bool = False
    comments: List[str] = Field(default_factory=list)

    @field_validator("category")
    @classmethod
    def _known_category(cls, v: str) -> str:
        if v not in ARTWORK_CATEGORIES:
            raise ValueError("Invalid category")
        return v

    @field_validator("tags")
    @classmethod
    def _lower_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)


# Cart (one per user)
class CartItem(BaseModel):
    artwork_id: str
    quantity: int = Field(1, ge=1)
    added_at: datetime


class Cart(BaseModel):
    user_id: str
    items: List[CartItem] = Field(default_factory=list)


# Orders
class ShippingAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class OrderItem(BaseModel):
    artwork_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    title: str


class Order(BaseModel):
    user_id: str
    items: List[OrderItem]
    total_amount: float = Field(..., ge=0)
    status: OrderStatus = "pending"
    payment_method: Literal["stripe", "other"] = "stripe"
    stripe_payment_intent_id: Optional[str] = None
    stripe_session_id: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None


# Comments
class Comment(BaseModel):
    artwork_id: str
    author_id: str
    content: str = Field(..., min_length=1, max_length=500)
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None
    likes: List[str] = Field(default_factory=list)
    parent_comment_id: Optional[str] = None


# Follows
class Follow(BaseModel):
    follower_id: str
    following_id: str

    @model_validator(mode="after")
    def _not_self(self):
        if self.follower_id == self.following_id:
            raise ValueError("Cannot follow yourself")
        return self


# Messaging
class Conversation(BaseModel):
    participants: List[str]
    last_message_id: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: Dict[str, int] = Field(default_factory=dict)
    artwork_id: Optional[str] = None

    @field_validator("participants")
    @classmethod
    def _unique_sorted(cls, v: List[str]) -> List[str]:
        return sorted(set(v))


class Message(BaseModel):
    conversation_id: str
    sender_id: str
    receiver_id: str
    artwork_id: Optional[str] = None
    content: str = Field(..., min_length=1, max_length=1000)
    read: bool = False
    read_at: Optional[datetime] = None


# Exhibitions
class Exhibition(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., max_length=2000)
    start_date: datetime
    end_date: datetime
    location: str = Field(..., min_length=1, max_length=200)
    image: str
    featured_artworks: List[str] = Field(default_factory=list)
    organizer_id: str
    status: ExhibitionStatus = "upcoming"
    max_capacity: Optional[int] = Field(None, ge=1)
    price: float = Field(0, ge=0)
    is_free: bool = True
    tags: List[str] = Field(default_factory=list)
    additional_images: List[str] = Field(default_factory=list)
    registered_users: List[str] = Field(default_factory=list)
    access_type: Literal["free", "paid"] = "free"

    @field_validator("start_date", "end_date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class VirtualExhibitionSettings(BaseModel):
    allow_comments: bool = True
    allow_sharing: bool = True
    require_registration: bool = False
    max_attendees: Optional[int] = Field(None, ge=1)


class VirtualExhibition(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    theme: str = Field(..., min_length=1, max_length=100)
    artist_notes: Optional[str] = Field(None, max_length=1000)
    start_date: datetime
    end_date: datetime
    organizer_id: str
    status: VirtualExhibitionStatus = "draft"
    featured_artworks: List[str] = Field(default_factory=list)
    attendees: List[str] = Field(default_factory=list)
    views: int = Field(0, ge=0)
    visits: int = Field(0, ge=0)
    is_free: bool = True
    price: float = Field(0, ge=0)
    tags: List[str] = Field(default_factory=list)
    cover_image: str
    additional_images: List[str] = Field(default_factory=list)
    settings: VirtualExhibitionSettings = Field(default_factory=VirtualExhibitionSettings)

    @field_validator("tags")
    @classmethod
    def _lower_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)

    @field_validator("start_date", "end_date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def _dates_in_order(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self
