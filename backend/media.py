"""
Cloudinary image hosting. When credentials are missing uploads resolve to a
fallback image so artwork creation keeps working in development.
"""
from typing import Optional

import cloudinary
import cloudinary.uploader

import config
from logger import get_logger

logger = get_logger(__name__)

ALLOWED_FORMATS = ["jpg", "jpeg", "png", "gif", "webp"]
MAX_UPLOAD_BYTES = 5 * 1024 * 1024

_configured: Optional[bool] = None


def is_configured() -> bool:
    global _configured
    if _configured is None:
        _configured = bool(
            config.CLOUDINARY_CLOUD_NAME and config.CLOUDINARY_API_KEY and config.CLOUDINARY_API_SECRET
        )
        if _configured:
            cloudinary.config(
                cloud_name=config.CLOUDINARY_CLOUD_NAME,
                api_key=config.CLOUDINARY_API_KEY,
                api_secret=config.CLOUDINARY_API_SECRET,
                secure=True,
            )
            logger.info("Cloudinary configured")
        else:
            logger.warning("Cloudinary credentials not found. Image uploads will use fallback images.")
    return _configured


def fallback_image() -> dict:
    return {
        "public_id": "fallback",
        "secure_url": config.FALLBACK_IMAGE_URL,
        "width": 800,
        "height": 600,
        "format": "jpeg",
        "resource_type": "image",
    }


def upload_image(data: bytes, folder: str = "artworks") -> dict:
    if not is_configured():
        return fallback_image()
    result = cloudinary.uploader.upload(
        data,
        folder=folder,
        resource_type="image",
        allowed_formats=ALLOWED_FORMATS,
        transformation=[{"quality": "auto:good"}, {"fetch_format": "auto"}],
    )
    return {
        "public_id": result["public_id"],
        "secure_url": result["secure_url"],
        "width": result.get("width"),
        "height": result.get("height"),
        "format": result.get("format"),
        "resource_type": result.get("resource_type", "image"),
    }


def public_id_from_url(url: str) -> Optional[str]:
    """Public id inside a Cloudinary delivery URL, e.g. ".../upload/v12/artworks/abc.jpg" -> "artworks/abc"."""
    if "res.cloudinary.com" not in (url or "") or "/upload/" not in url:
        return None
    path = url.split("/upload/", 1)[1]
    parts = path.split("/")
    if parts and parts[0].startswith("v") and parts[0][1:].isdigit():
        parts = parts[1:]
    return "/".join(parts).rsplit(".", 1)[0] or None


def delete_image(public_id: str) -> bool:
    if not is_configured() or public_id == "fallback":
        return False
    result = cloudinary.uploader.destroy(public_id)
    return result.get("result") == "ok"
