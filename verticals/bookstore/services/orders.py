"""Order placement and inventory consistency.

``OrderService.place_order`` is the one write path that touches several rows
at once. It opens its own session and a single transaction on the shared
``Database``: every stock decrement and the order insert commit together or
not at all. Mutual exclusion between concurrent placements is left to the
database: the book row is locked on read (``SELECT ... FOR UPDATE``) and the
decrement itself is guarded by ``stock_quantity >= quantity``.
"""

import logging
from typing import Any, Iterable, Mapping

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from core.database import Database
from core.errors import AuthError, BookNotFound, InsufficientStock, NotFoundError, ValidationError
from core.security import INVALID_TOKEN
from patterns.repository import Page, PageRequest
from patterns.rules_engine import check_stock_availability
from verticals.bookstore.models.db_models import Order, OrderItem
from verticals.bookstore.models.schemas import OrderItemIn
from verticals.bookstore.repository import BookRepository, OrderRepository, UserRepository

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(list[OrderItemIn])


def validate_items(items: Iterable[OrderItemIn | Mapping[str, Any]]) -> list[OrderItemIn]:
    """Normalise order lines before any database access.

    Raises ValidationError with 400 for an empty list or a bad book_id and
    422 for a quantity that is not an integer >= 1.
    """
    raw = [item.model_dump() if isinstance(item, OrderItemIn) else item for item in items or []]
    if not raw:
        raise ValidationError("Items are required and must be a non-empty array")

    try:
        return _items_adapter.validate_python(raw)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        index = error["loc"][0] if error["loc"] else 0
        field = error["loc"][1] if len(error["loc"]) > 1 else None
        if field is None:
            raise ValidationError(f"Invalid item at index {index}") from exc
        if field == "quantity":
            raise ValidationError(
                f"Invalid quantity for item at index {index} (must be integer >= 1)",
                status_code=422,
            ) from exc
        raise ValidationError(f"Invalid book_id for item at index {index}") from exc


class OrderService:
    """Places and reads orders against one Database."""

    def __init__(self, database: Database):
        self.database = database

    async def place_order(
        self,
        user_id: str,
        items: Iterable[OrderItemIn | Mapping[str, Any]],
    ) -> dict:
        """Reserve stock for every line and create the order, atomically.

        A token whose user no longer exists is rejected before any stock
        is touched.

        Returns the order with items, books and genres inlined.
        """
        lines = validate_items(items)

        async with self.database.session_factory() as session:
            try:
                async with session.begin():
                    order_id = await self._reserve_and_create(session, user_id, lines)
            except (BookNotFound, InsufficientStock) as exc:
                logger.info("Order rejected for user %s: %s", user_id, exc.message)
                raise

            session.expire_all()
            order = await OrderRepository(session).get_detail(order_id)

        logger.info(
            "Order %s placed by user %s with %d item(s)", order_id, user_id, len(lines)
        )
        return order.to_dict()

    async def _reserve_and_create(self, session, user_id: str, lines: list[OrderItemIn]) -> str:
        if await UserRepository(session).get(user_id) is None:
            raise AuthError(INVALID_TOKEN)

        books = BookRepository(session)
        order_items: list[OrderItem] = []

        for position, line in enumerate(lines):
            book = await books.lock_for_order(line.book_id)
            if book is None:
                raise BookNotFound(line.book_id)

            rule = check_stock_availability(book.stock_quantity, line.quantity)
            if not rule.passed:
                raise InsufficientStock(book.title, book.stock_quantity, line.quantity)

            if not await books.decrement_stock(book.id, line.quantity):
                # another transaction took the stock between our read and write
                available = await books.current_stock(book.id)
                raise InsufficientStock(book.title, available, line.quantity)

            order_items.append(
                OrderItem(book_id=book.id, quantity=line.quantity, position=position)
            )

        order = Order(user_id=user_id, items=order_items)
        session.add(order)
        await session.flush()
        return order.id

    # -- Reads --

    async def get_order(self, order_id: str) -> dict:
        async with self.database.session() as session:
            order = await OrderRepository(session).get_detail(order_id)
            if order is None:
                raise NotFoundError("Transaction not found")
            return order.to_dict()

    async def list_orders(
        self,
        page: PageRequest,
        user_id: str | None = None,
        sort_order: str = "desc",
    ) -> dict:
        async with self.database.session() as session:
            result: Page[Order] = await OrderRepository(session).search(
                page, user_id=user_id, sort_order=sort_order
            )
            return {
                "orders": [order.to_dict() for order in result.items],
                "pagination": result.pagination(),
            }
