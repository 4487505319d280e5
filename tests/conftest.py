import os

# config reads the environment at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["CLOUDINARY_CLOUD_NAME"] = ""
os.environ["CLOUDINARY_API_KEY"] = ""
os.environ["CLOUDINARY_API_SECRET"] = ""

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
from schemas import Artwork, User
from security import create_access_token, hash_password

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def db():
    """A fresh in-memory database for every test."""
    handle = database.connect(client=mongomock.MongoClient())
    database.ensure_indexes()
    yield handle
    database.close()


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make(role="community", name=None, email=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"{role.title()} {n}",
            email=email or f"{role}{n}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
            **fields,
        )
        uid = database.create_document("user", user)
        return {"id": uid, "token": create_access_token(uid), "doc": database.find_by_id("user", uid)}

    return _make


@pytest.fixture
def make_artwork():
    def _make(artist_id, **fields):
        data = dict(
            title="Untitled",
            description="An artwork used in tests.",
            price=100.0,
            category="Painting",
            medium="Oil on canvas",
            dimensions="10 x 10",
            images=["https://example.com/a.jpg"],
        )
        data.update(fields)
        return database.create_document("artwork", Artwork(artist_id=artist_id, **data))

    return _make


def auth(user_or_token):
    token = user_or_token["token"] if isinstance(user_or_token, dict) else user_or_token
    return {"Authorization": f"Bearer {token}"}
