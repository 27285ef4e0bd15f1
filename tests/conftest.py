"""Shared fixtures: a fresh SQLite database and an HTTP client per test."""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.main import create_app
from core.config import Settings
from core.database import Database


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bookstore.db'}",
        jwt_secret="test-secret-that-is-long-enough-for-hs256",
        create_tables=False,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def client(settings, database):
    app = create_app(settings)
    app.state.database = database
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def register_and_login(client, email="reader@example.com", password="secret123"):
    await client.post(
        "/auth/register",
        json={"email": email, "password": password, "username": email.split("@")[0]},
    )
    response = await client.post("/auth/login", json={"email": email, "password": password})
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


async def create_genre(client, headers, name="Fiction"):
    response = await client.post("/genres", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def create_book(client, headers, genre_id, **overrides):
    payload = {
        "title": "Dune",
        "writer": "Frank Herbert",
        "publisher": "Chilton",
        "publication_year": 1965,
        "price": 10.0,
        "stock_quantity": 5,
        "genre_id": genre_id,
    }
    payload.update(overrides)
    response = await client.post("/books", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest_asyncio.fixture
async def auth_headers(client):
    return await register_and_login(client)
