"""
Password hashing, JWT issuing and the request dependencies that resolve the
calling user from the `Authorization: Bearer <token>` header.
"""
import hashlib
import hmac
import os
from datetime import timedelta
from typing import Optional

import jwt
from bson import ObjectId
from fastapi import Depends, Header, HTTPException

import config
from database import collection, is_valid_id, utcnow
from logger import get_logger

logger = get_logger(__name__)

_PBKDF2_ROUNDS = 120_000


def hash_password(password: str) -> str:
    salt = os.urandom(16).hex()
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), _PBKDF2_ROUNDS).hex()
    return f"{salt}${digest}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored or "$" not in stored:
        return False
    salt, digest = stored.split("$", 1)
    try:
        salt_bytes = bytes.fromhex(salt)
    except ValueError:
        return False
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode(), salt_bytes, _PBKDF2_ROUNDS).hex()
    return hmac.compare_digest(candidate, digest)


def create_access_token(user_id: str) -> str:
    if not config.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not defined")
    now = utcnow()
    payload = {
        "user_id": user_id,
        "iat": now,
        "exp": now + timedelta(days=config.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):]


def _load_user(user_id: Optional[str]) -> Optional[dict]:
    if not is_valid_id(user_id):
        return None
    return collection("user").find_one({"_id": ObjectId(user_id)})


def get_current_user(authorization: Optional[str] = Header(None)) -> dict:
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(401, "Access denied. No token provided.")
    if not config.JWT_SECRET:
        raise HTTPException(500, "JWT secret not configured")
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(401, "Token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(401, "Token is not valid")

    user = _load_user(payload.get("user_id"))
    if not user:
        raise HTTPException(401, "Token is not valid - user not found")
    if not user.get("is_active", True):
        raise HTTPException(401, "Account is deactivated")
    return user


def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[dict]:
    """Like `get_current_user` but anonymous or broken tokens just yield None."""
    token = _bearer_token(authorization)
    if token is None or not config.JWT_SECRET:
        return None
    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError:
        return None
    user = _load_user(payload.get("user_id"))
    if user and user.get("is_active", True):
        return user
    return None


def require_roles(*roles: str):
    def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in roles:
            logger.warning(f"User {user['_id']} with role {user.get('role')} denied; requires {roles}")
            raise HTTPException(403, f"Access denied. Required roles: {', '.join(roles)}")
        return user

    return dependency


def user_id_of(user: dict) -> str:
    return str(user["_id"])


def is_admin(user: Optional[dict]) -> bool:
    return bool(user) and user.get("role") == "admin"
