from datetime import timedelta

import jwt

import config
import database
from conftest import PASSWORD, auth
from database import utcnow
from security import verify_password


def register(client, **overrides):
    payload = {"name": "Ada", "email": "Ada@Example.com", "password": "hunter22"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_returns_user_and_token(client):
    response = register(client)
    assert response.status_code == 201

    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["role"] == "community"
    assert "password_hash" not in body["user"]
    assert body["user"]["last_login"] is not None

    claims = jwt.decode(body["token"], config.JWT_SECRET, algorithms=["HS256"])
    assert claims["user_id"] == body["user"]["id"]


def test_register_duplicate_email_is_rejected(client):
    register(client)
    response = register(client, email="ada@example.com")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User with this email already exists"}


def test_register_validates_password_length(client):
    response = register(client, password="123")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_specializations_kept_only_for_artists(client):
    community = register(client, specializations=["Painting"]).json()["user"]
    artist = register(client, email="artist@example.com", role="artist", specializations=["Painting"]).json()["user"]
    assert community["specializations"] == []
    assert artist["specializations"] == ["Painting"]


def test_login_and_me(client, make_user):
    user = make_user(email="me@example.com")
    response = client.post("/api/auth/login", json={"email": "ME@example.com", "password": PASSWORD})
    assert response.status_code == 200
    token = response.json()["token"]

    me = client.get("/api/auth/me", headers=auth(token))
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user["id"]


def test_login_wrong_password(client, make_user):
    make_user(email="me@example.com")
    response = client.post("/api/auth/login", json={"email": "me@example.com", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


def test_login_with_malformed_stored_hash(client, make_user):
    user = make_user(email="broken@example.com")
    database.update_document("user", user["id"], {"password_hash": "zz$abc"})
    response = client.post("/api/auth/login", json={"email": "broken@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"
    assert verify_password(PASSWORD, "zz$abc") is False


def test_login_deactivated_account(client, make_user):
    make_user(email="gone@example.com", is_active=False)
    response = client.post("/api/auth/login", json={"email": "gone@example.com", "password": PASSWORD})
    assert response.status_code == 401


def test_missing_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Access denied. No token provided."


def test_expired_token(client, make_user):
    user = make_user()
    now = utcnow()
    token = jwt.encode(
        {"user_id": user["id"], "iat": now - timedelta(days=8), "exp": now - timedelta(days=1)},
        config.JWT_SECRET,
        algorithm="HS256",
    )
    response = client.get("/api/auth/me", headers=auth(token))
    assert response.status_code == 401
    assert response.json()["message"] == "Token has expired"


def test_garbage_token(client):
    response = client.get("/api/auth/me", headers=auth("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["message"] == "Token is not valid"


def test_update_profile(client, make_user):
    user = make_user()
    response = client.put("/api/auth/profile", headers=auth(user), json={"bio": "Hello", "location": "Paris"})
    assert response.status_code == 200
    assert response.json()["user"]["bio"] == "Hello"
    assert response.json()["user"]["location"] == "Paris"


def test_update_profile_rejects_unknown_fields(client, make_user):
    user = make_user()
    response = client.put("/api/auth/profile", headers=auth(user), json={"role": "admin"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid updates"


def test_change_password(client, make_user):
    user = make_user(email="pw@example.com")
    bad = client.put(
        "/api/auth/change-password",
        headers=auth(user),
        json={"current_password": "wrong-one", "new_password": "brandnew"},
    )
    assert bad.status_code == 400

    missing = client.put("/api/auth/change-password", headers=auth(user), json={"new_password": "brandnew"})
    assert missing.status_code == 400

    ok = client.put(
        "/api/auth/change-password",
        headers=auth(user),
        json={"current_password": PASSWORD, "new_password": "brandnew"},
    )
    assert ok.status_code == 200

    login = client.post("/api/auth/login", json={"email": "pw@example.com", "password": "brandnew"})
    assert login.status_code == 200
