from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from database import collection, create_document, find_by_id, update_document, utcnow
from logger import get_logger
from schemas import SocialLinks, User as UserSchema
from security import create_access_token, get_current_user, hash_password, user_id_of, verify_password
from serializers import user_out

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["artist", "community"] = "community"
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    specializations: Optional[List[str]] = None


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdatePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    social_links: Optional[SocialLinks] = None
    specializations: Optional[List[str]] = None


class ChangePasswordPayload(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


@router.post("/register", status_code=201)
def register(body: RegisterPayload):
    email = body.email.lower().strip()
    if collection("user").find_one({"email": email}):
        raise HTTPException(400, "User with this email already exists")

    user = UserSchema(
        name=body.name.strip(),
        email=email,
        password_hash=hash_password(body.password),
        role=body.role,
        bio=body.bio.strip() if body.bio else None,
        location=body.location.strip() if body.location else None,
        specializations=[s.strip() for s in body.specializations] if body.role == "artist" and body.specializations else [],
        last_login=utcnow(),
    )
    try:
        uid = create_document("user", user)
    except DuplicateKeyError:
        raise HTTPException(400, "Email already exists")

    logger.info(f"Registered {body.role} {uid}")
    return {
        "success": True,
        "message": "User registered successfully",
        "user": user_out(find_by_id("user", uid)),
        "token": create_access_token(uid),
    }


@router.post("/login")
def login(body: LoginPayload):
    u = collection("user").find_one({"email": body.email.lower()})
    if not u:
        raise HTTPException(401, "Invalid email or password")
    if not u.get("is_active", True):
        raise HTTPException(401, "Account is deactivated. Please contact support.")
    if not verify_password(body.password, u.get("password_hash")):
        raise HTTPException(401, "Invalid email or password")

    uid = str(u["_id"])
    update_document("user", uid, {"last_login": utcnow()})
    return {
        "success": True,
        "message": "Login successful",
        "user": user_out(find_by_id("user", uid)),
        "token": create_access_token(uid),
    }


@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return {"success": True, "user": user_out(user)}


@router.put("/profile")
def update_profile(body: ProfileUpdatePayload, user: dict = Depends(get_current_user)):
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    uid = user_id_of(user)
    if updates:
        update_document("user", uid, updates)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": user_out(find_by_id("user", uid)),
    }


@router.put("/change-password")
def change_password(body: ChangePasswordPayload, user: dict = Depends(get_current_user)):
    if not body.current_password or not body.new_password:
        raise HTTPException(400, "Current password and new password are required")
    if len(body.new_password) < 6:
        raise HTTPException(400, "Password must be at least 6 characters")
    if not verify_password(body.current_password, user.get("password_hash")):
        raise HTTPException(400, "Current password is incorrect")

    update_document("user", user_id_of(user), {"password_hash": hash_password(body.new_password)})
    return {"success": True, "message": "Password changed successfully"}
