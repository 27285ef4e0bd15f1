"""Test registration, login, bearer tokens and the health endpoint."""
import asyncio

import jwt
import pytest

from core.errors import AuthError, ConflictError
from core.security import (
    INVALID_TOKEN,
    MISSING_TOKEN,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from verticals.bookstore.models.schemas import RegisterRequest
from verticals.bookstore.services.accounts import AccountService


@pytest.mark.asyncio
async def test_register_login_me(client):
    registered = await client.post(
        "/auth/register",
        json={"email": "Ada@Example.com", "password": "secret123", "username": "ada"},
    )
    assert registered.status_code == 201
    assert registered.json()["data"]["email"] == "ada@example.com"

    login = await client.post("/auth/login", json={"email": "ada@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["data"]["access_token"]
    assert login.json()["data"]["token_type"] == "bearer"

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    profile = me.json()["data"]
    assert profile["email"] == "ada@example.com"
    assert profile["username"] == "ada"
    assert "password_hash" not in profile


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    payload = {"email": "ada@example.com", "password": "secret123"}
    await client.post("/auth/register", json=payload)

    response = await client.post("/auth/register", json=payload)

    assert response.status_code == 409
    assert response.json()["message"] == "Email already used"


@pytest.mark.asyncio
async def test_register_short_password(client):
    response = await client.post("/auth/register", json={"email": "ada@example.com", "password": "123"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    await client.post("/auth/register", json={"email": "ada@example.com", "password": "secret123"})

    response = await client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    response = await client.post("/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_missing_token(client):
    response = await client.get("/auth/me")

    assert response.status_code == 401
    assert response.json()["message"] == MISSING_TOKEN


@pytest.mark.asyncio
async def test_non_bearer_scheme(client):
    response = await client.get("/auth/me", headers={"Authorization": "Basic YWRhOnNlY3JldA=="})
    assert response.json()["message"] == MISSING_TOKEN


@pytest.mark.asyncio
async def test_invalid_token(client):
    response = await client.get("/books", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == INVALID_TOKEN


@pytest.mark.asyncio
async def test_token_signed_with_other_secret(client):
    forged = jwt.encode({"sub": "user-1"}, "another-secret-of-sufficient-length", algorithm="HS256")

    response = await client.get("/books", headers={"Authorization": f"Bearer {forged}"})

    assert response.status_code == 401
    assert response.json()["message"] == INVALID_TOKEN


def test_token_round_trip(settings):
    token = create_access_token(settings, "user-1", "ada@example.com")
    user = decode_access_token(settings, token)
    assert user.id == "user-1"
    assert user.email == "ada@example.com"


def test_token_without_subject(settings):
    token = jwt.encode({"email": "x@example.com"}, settings.jwt_secret, algorithm="HS256")
    with pytest.raises(AuthError, match=INVALID_TOKEN):
        decode_access_token(settings, token)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("other", hashed)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health-check", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["database"] == "connected"
    assert response.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client):
    response = await client.get("/nowhere")

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_concurrent_registrations_keep_one(database, settings):
    payload = RegisterRequest(email="ada@example.com", password="secret123")

    async def register():
        async with database.session() as session:
            return await AccountService(session, settings).register(payload)

    results = await asyncio.gather(register(), register(), return_exceptions=True)

    assert len([r for r in results if isinstance(r, dict)]) == 1
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert [c.message for c in conflicts] == ["Email already used"]
