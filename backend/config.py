"""
Central configuration. Values come from the environment (and a local .env
file when present) and are exposed as module constants.
"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


# Runtime
ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
PORT: int = int(os.getenv("PORT", "8000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# MongoDB
DATABASE_URL: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME: str = os.getenv("DATABASE_NAME", "sundays_art_hub")

# Auth
JWT_SECRET: str = os.getenv("JWT_SECRET", "")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRES_DAYS: int = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

# Stripe
STRIPE_SECRET_KEY: str = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_CURRENCY: str = os.getenv("STRIPE_CURRENCY", "usd")
FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Cloudinary
CLOUDINARY_CLOUD_NAME: str = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY: str = os.getenv("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET: str = os.getenv("CLOUDINARY_API_SECRET", "")

FALLBACK_IMAGE_URL: str = "https://images.pexels.com/photos/1545743/pexels-photo-1545743.jpeg"


def _parse_origins(raw: str) -> List[str]:
    raw = (raw or "").strip()
    if not raw or raw == "*":
        return ["*"]
    return [p.strip() for p in raw.split(",") if p.strip()]


CORS_ORIGINS: List[str] = _parse_origins(
    os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173,http://127.0.0.1:3000",
    )
)


def is_production() -> bool:
    return ENVIRONMENT.lower() == "production"
