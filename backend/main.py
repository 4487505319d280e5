from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import database
from logger import get_logger
from routes import (
    admin,
    analytics,
    artworks,
    auth,
    cart,
    comments,
    exhibitions,
    follows,
    messages,
    orders,
    users,
    virtual_exhibitions,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.get_db()
    try:
        database.ensure_indexes()
    except PyMongoError as e:
        logger.error(f"Could not create indexes: {e}")
    logger.info(f"Sundays Art Hub API starting in {config.ENVIRONMENT} mode")
    yield
    database.close()
    logger.info("Sundays Art Hub API stopped")


app = FastAPI(title="Sundays Art Hub API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (auth, users, artworks, cart, orders, comments, follows, messages,
               exhibitions, virtual_exhibitions, analytics, admin):
    app.include_router(module.router)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


def _validation_message(err: dict) -> str:
    msg = err.get("msg", "Invalid value")
    # pydantic prefixes messages raised from custom validators
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return msg


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(404, "API endpoint not found")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(e.get("type") == "extra_forbidden" for e in errors):
        return error_response(400, "Invalid updates")
    details = [
        {"field": ".".join(str(p) for p in e.get("loc", ())[1:]), "message": _validation_message(e)}
        for e in errors
    ]
    return error_response(400, "; ".join(d["message"] for d in details), errors=details)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if config.is_production():
        return error_response(500, "Internal server error")
    return error_response(500, "Internal server error", error=str(exc))


def _status() -> dict:
    return {
        "status": "OK",
        "message": "Sundays Art Hub API is running",
        "timestamp": database.utcnow().isoformat(),
        "environment": config.ENVIRONMENT,
    }


@app.get("/")
def root():
    return _status()


@app.get("/api/health")
def health():
    return _status()


@app.get("/test")
def test_database():
    try:
        collections = sorted(database.get_db().list_collection_names())
        ok = True
    except PyMongoError as e:
        logger.warning(f"Database check failed: {e}")
        collections, ok = [], False
    return {
        "backend": "✅ Running",
        "database": "✅ Connected" if ok else "❌ Not Connected",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": config.DATABASE_NAME or "-",
        "collections": collections,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
