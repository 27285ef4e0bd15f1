"""Test order placement, stock consistency and transaction reads."""
import asyncio

import pytest

from conftest import create_book, create_genre, register_and_login
from core.errors import AuthError, BookNotFound, InsufficientStock, ValidationError
from core.security import create_access_token
from verticals.bookstore.services.orders import OrderService, validate_items


async def _stock(client, headers, book_id):
    response = await client.get(f"/books/{book_id}", headers=headers)
    return response.json()["data"]["stock_quantity"]


async def _transaction_total(client, headers):
    response = await client.get("/transactions", headers=headers)
    return response.json()["data"]["pagination"]["total"]


@pytest.mark.asyncio
async def test_order_decrements_stock(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"], stock_quantity=5)

    response = await client.post(
        "/transactions",
        json={"items": [{"book_id": book["id"], "quantity": 3}]},
        headers=auth_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Transaction created successfully"
    order = body["data"]
    assert len(order["items"]) == 1
    assert order["items"][0]["quantity"] == 3
    assert order["items"][0]["book"]["stock_quantity"] == 2
    assert order["items"][0]["book"]["genre"]["name"] == "Fiction"
    assert await _stock(client, auth_headers, book["id"]) == 2


@pytest.mark.asyncio
async def test_order_uses_token_user(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"])
    me = (await client.get("/auth/me", headers=auth_headers)).json()["data"]

    response = await client.post(
        "/transactions",
        json={"user_id": "someone-else", "items": [{"book_id": book["id"], "quantity": 1}]},
        headers=auth_headers,
    )

    assert response.status_code == 201
    assert response.json()["data"]["user_id"] == me["id"]


@pytest.mark.asyncio
async def test_insufficient_stock_rejected(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"], stock_quantity=2)

    response = await client.post(
        "/transactions",
        json={"items": [{"book_id": book["id"], "quantity": 3}]},
        headers=auth_headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == 'Insufficient stock for "Dune". Available: 2, Requested: 3'
    assert await _stock(client, auth_headers, book["id"]) == 2
    assert await _transaction_total(client, auth_headers) == 0


@pytest.mark.asyncio
async def test_multi_item_order_is_all_or_nothing(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    plenty = await create_book(client, auth_headers, genre["id"], title="Plenty", stock_quantity=5)
    scarce = await create_book(client, auth_headers, genre["id"], title="Scarce", stock_quantity=1)

    response = await client.post(
        "/transactions",
        json={
            "items": [
                {"book_id": plenty["id"], "quantity": 2},
                {"book_id": scarce["id"], "quantity": 2},
            ]
        },
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert "Scarce" in response.json()["message"]
    assert await _stock(client, auth_headers, plenty["id"]) == 5
    assert await _stock(client, auth_headers, scarce["id"]) == 1
    assert await _transaction_total(client, auth_headers) == 0


@pytest.mark.asyncio
async def test_multi_item_order_keeps_input_order(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    first = await create_book(client, auth_headers, genre["id"], title="Zeta")
    second = await create_book(client, auth_headers, genre["id"], title="Alpha")

    response = await client.post(
        "/transactions",
        json={
            "items": [
                {"book_id": first["id"], "quantity": 1},
                {"book_id": second["id"], "quantity": 4},
            ]
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    items = response.json()["data"]["items"]
    assert [item["book_id"] for item in items] == [first["id"], second["id"]]
    assert [item["quantity"] for item in items] == [1, 4]


@pytest.mark.asyncio
async def test_unknown_book_returns_404(client, auth_headers):
    response = await client.post(
        "/transactions",
        json={"items": [{"book_id": "missing-book", "quantity": 1}]},
        headers=auth_headers,
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Book with ID missing-book not found"


@pytest.mark.asyncio
async def test_deleted_book_cannot_be_ordered(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"])
    await client.delete(f"/books/{book['id']}", headers=auth_headers)

    response = await client.post(
        "/transactions",
        json={"items": [{"book_id": book["id"], "quantity": 1}]},
        headers=auth_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, status, message",
    [
        ({}, 400, "Items are required and must be a non-empty array"),
        ({"items": []}, 400, "Items are required and must be a non-empty array"),
        ({"items": [{"quantity": 1}]}, 400, "Invalid book_id for item at index 0"),
        ({"items": [{"book_id": "  ", "quantity": 1}]}, 400, "Invalid book_id for item at index 0"),
        ({"items": [{"book_id": "b", "quantity": 0}]}, 422, "Invalid quantity for item at index 0 (must be integer >= 1)"),
        ({"items": [{"book_id": "b", "quantity": "2"}]}, 422, "Invalid quantity for item at index 0 (must be integer >= 1)"),
        ({"items": [{"book_id": "b", "quantity": 1.5}]}, 422, "Invalid quantity for item at index 0 (must be integer >= 1)"),
    ],
)
async def test_invalid_items_rejected(client, auth_headers, payload, status, message):
    response = await client.post("/transactions", json=payload, headers=auth_headers)

    assert response.status_code == status
    assert response.json()["message"] == message


@pytest.mark.asyncio
async def test_transactions_require_auth(client):
    response = await client.post("/transactions", json={"items": []})

    assert response.status_code == 401
    assert response.json()["message"] == "Authentication required. Please login first."


@pytest.mark.asyncio
async def test_concurrent_orders_never_oversell(client, auth_headers, database):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"], stock_quantity=5)
    me = (await client.get("/auth/me", headers=auth_headers)).json()["data"]

    service = OrderService(database)
    results = await asyncio.gather(
        service.place_order(me["id"], [{"book_id": book["id"], "quantity": 3}]),
        service.place_order(me["id"], [{"book_id": book["id"], "quantity": 3}]),
        return_exceptions=True,
    )

    placed = [r for r in results if isinstance(r, dict)]
    rejected = [r for r in results if isinstance(r, InsufficientStock)]
    assert len(placed) == 1
    assert len(rejected) == 1
    assert rejected[0].requested == 3
    assert await _stock(client, auth_headers, book["id"]) == 2
    assert await _transaction_total(client, auth_headers) == 1


@pytest.mark.asyncio
async def test_service_raises_book_not_found(client, auth_headers, database):
    me = (await client.get("/auth/me", headers=auth_headers)).json()["data"]

    with pytest.raises(BookNotFound, match="Book with ID nope not found"):
        await OrderService(database).place_order(me["id"], [{"book_id": "nope", "quantity": 1}])


@pytest.mark.asyncio
async def test_order_for_vanished_user_is_unauthorized(client, auth_headers, settings):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"], stock_quantity=5)
    ghost_headers = {"Authorization": f"Bearer {create_access_token(settings, 'no-such-user')}"}

    response = await client.post(
        "/transactions",
        json={"items": [{"book_id": book["id"], "quantity": 1}]},
        headers=ghost_headers,
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"
    assert await _stock(client, auth_headers, book["id"]) == 5
    assert await _transaction_total(client, auth_headers) == 0


@pytest.mark.asyncio
async def test_service_rejects_unknown_user(database):
    with pytest.raises(AuthError):
        await OrderService(database).place_order("user-1", [{"book_id": "nope", "quantity": 1}])


def test_validate_items_strips_book_id():
    lines = validate_items([{"book_id": " abc ", "quantity": 2}])
    assert lines[0].book_id == "abc"
    assert lines[0].quantity == 2


def test_validate_items_rejects_non_objects():
    with pytest.raises(ValidationError, match="Invalid item at index 1"):
        validate_items([{"book_id": "a", "quantity": 1}, "oops"])


def test_validate_items_rejects_bool_quantity():
    with pytest.raises(ValidationError) as exc_info:
        validate_items([{"book_id": "a", "quantity": True}])
    assert exc_info.value.status_code == 422


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_transaction_detail(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"])
    created = (
        await client.post(
            "/transactions",
            json={"items": [{"book_id": book["id"], "quantity": 1}]},
            headers=auth_headers,
        )
    ).json()["data"]

    response = await client.get(f"/transactions/{created['id']}", headers=auth_headers)

    assert response.status_code == 200
    detail = response.json()["data"]
    assert detail["id"] == created["id"]
    assert detail["items"][0]["book"]["title"] == "Dune"


@pytest.mark.asyncio
async def test_get_unknown_transaction(client, auth_headers):
    response = await client.get("/transactions/unknown", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Transaction not found"


@pytest.mark.asyncio
async def test_list_transactions_filters_by_user(client, auth_headers):
    genre = await create_genre(client, auth_headers)
    book = await create_book(client, auth_headers, genre["id"], stock_quantity=10)
    other_headers = await register_and_login(client, "other@example.com")
    other = (await client.get("/auth/me", headers=other_headers)).json()["data"]

    for headers in (auth_headers, other_headers, other_headers):
        await client.post(
            "/transactions",
            json={"items": [{"book_id": book["id"], "quantity": 1}]},
            headers=headers,
        )

    response = await client.get(
        "/transactions",
        params={"user_id": other["id"], "limit": 1, "sort_order": "asc"},
        headers=auth_headers,
    )

    data = response.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}
    assert len(data["orders"]) == 1
    assert data["orders"][0]["user_id"] == other["id"]
