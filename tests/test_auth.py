from datetime import datetime, timedelta, timezone

from conftest import bearer, register
from sqlmodel import select

from clinic.core.security import create_access_token, decode_access_token
from clinic.models.user import User


def test_register_creates_client_with_valid_token(client, session):
    data = register(client, email="Ana@Example.com ", phone="555-0101", date_of_birth="1990-04-02")

    assert data["success"] is True
    assert data["user"]["role"] == "client"
    assert data["user"]["email"] == "ana@example.com"

    claims = decode_access_token(data["token"])
    assert claims.id == data["user"]["id"]
    assert claims.role == "client"

    user = session.get(User, data["user"]["id"])
    assert user.password_hash != "secret123"


def test_register_ignores_role_in_body(client):
    data = register(client, role="admin")
    assert data["user"]["role"] == "client"


def test_register_same_email_twice_conflicts(client):
    register(client)
    r = client.post(
        "/api/auth/register",
        json={"full_name": "Other", "email": "ana@example.com", "password": "secret456"},
    )

    assert r.status_code == 400
    assert r.json() == {"error": "Email already registered"}


def test_register_requires_fields(client):
    r = client.post("/api/auth/register", json={"email": "ana@example.com"})

    assert r.status_code == 400
    assert r.json()["error"] == "Please provide name, email, and password"


def test_register_rejects_blank_name(client, session):
    r = client.post(
        "/api/auth/register",
        json={"full_name": "   ", "email": "ana@example.com", "password": "secret123"},
    )

    assert r.status_code == 400
    assert r.json() == {"error": "Name cannot be empty"}
    assert session.exec(select(User)).all() == []


def test_register_rejects_malformed_body(client):
    r = client.post(
        "/api/auth/register",
        json={"full_name": "Ana", "email": "ana@example.com", "password": "secret123", "date_of_birth": "soon"},
    )

    assert r.status_code == 400
    assert "date_of_birth" in r.json()["error"]


def test_login(client):
    register(client)
    r = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert decode_access_token(body["token"]).email == "ana@example.com"


def test_login_wrong_password(client):
    register(client)
    r = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope"})

    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}


def test_login_unknown_email(client):
    r = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope"})
    assert r.status_code == 401


def test_login_inactive_account(client, session):
    data = register(client)
    user = session.get(User, data["user"]["id"])
    user.is_active = False
    session.add(user)
    session.commit()

    r = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})
    assert r.status_code == 403


def test_profile_requires_token(client):
    r = client.get("/api/auth/profile")

    assert r.status_code == 401
    assert r.json() == {"error": "Access denied. No token provided."}


def test_profile_rejects_invalid_token(client):
    r = client.get("/api/auth/profile", headers=bearer("garbage"))

    assert r.status_code == 403
    assert r.json() == {"error": "Invalid or expired token"}


def test_profile_rejects_expired_token(client):
    data = register(client)
    old = datetime.now(timezone.utc) - timedelta(days=8)
    token = create_access_token(data["user"]["id"], "ana@example.com", "client", now=old)

    r = client.get("/api/auth/profile", headers=bearer(token))
    assert r.status_code == 403


def test_profile_get_and_update(client):
    headers = bearer(register(client)["token"])

    r = client.get("/api/auth/profile", headers=headers)
    assert r.status_code == 200
    assert r.json()["user"]["full_name"] == "Ana Souza"
    assert "password_hash" not in r.json()["user"]

    r = client.put("/api/auth/profile", json={"phone": "555-0199", "gender": "female"}, headers=headers)
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["phone"] == "555-0199"
    assert user["gender"] == "female"
    assert user["full_name"] == "Ana Souza"


def test_profile_of_deleted_user_is_not_found(client):
    token = create_access_token(999, "ghost@example.com", "client")
    r = client.get("/api/auth/profile", headers=bearer(token))
    assert r.status_code == 404


def test_change_password(client):
    headers = bearer(register(client)["token"])

    r = client.post(
        "/api/auth/change-password",
        json={"current_password": "wrong", "new_password": "newsecret"},
        headers=headers,
    )
    assert r.status_code == 400

    r = client.post(
        "/api/auth/change-password",
        json={"current_password": "secret123", "new_password": "newsecret"},
        headers=headers,
    )
    assert r.status_code == 200

    r = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "newsecret"})
    assert r.status_code == 200


def test_change_password_too_short(client):
    headers = bearer(register(client)["token"])
    r = client.post(
        "/api/auth/change-password",
        json={"current_password": "secret123", "new_password": "abc"},
        headers=headers,
    )
    assert r.status_code == 400


def test_forgot_password_does_not_reveal_accounts(client):
    register(client)

    known = client.post("/api/auth/forgot-password", json={"email": "ana@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert known.json()["success"] is True


def test_admin_reset_password(client, admin_headers):
    data = register(client)

    r = client.post(
        "/api/auth/admin/reset-password",
        json={"user_id": data["user"]["id"], "new_password": "reset123"},
        headers=admin_headers,
    )
    assert r.status_code == 200

    r = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "reset123"})
    assert r.status_code == 200


def test_admin_reset_password_by_email_unknown(client, admin_headers):
    r = client.post(
        "/api/auth/admin/reset-password",
        json={"email": "ghost@example.com", "new_password": "reset123"},
        headers=admin_headers,
    )
    assert r.status_code == 404


def test_admin_reset_password_forbidden_for_clients(client, client_headers):
    r = client.post(
        "/api/auth/admin/reset-password",
        json={"email": "ana@example.com", "new_password": "reset123"},
        headers=client_headers,
    )
    assert r.status_code == 403
