"""Bookstore repositories — async database access for catalog, users and orders.

Extends BaseRepository with bookstore-specific queries: book search with
filters, name/title uniqueness lookups among active rows, order listings
with items, books and genres loaded eagerly, and the guarded stock decrement
used by the order workflow.
"""

from datetime import datetime

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.models.base import RecordStatus
from patterns.repository import BaseRepository, Page, PageRequest, resolve_sort
from verticals.bookstore.models.db_models import Book, Genre, Order, OrderItem, User
from verticals.bookstore.models.schemas import BookFilters


# Sort allow-lists: token -> column
BOOK_SORT_COLUMNS = {
    "title": Book.title,
    "writer": Book.writer,
    "publisher": Book.publisher,
    "publication_year": Book.publication_year,
    "price": Book.price,
    "stock_quantity": Book.stock_quantity,
    "created_at": Book.created_at,
}

GENRE_SORT_COLUMNS = {
    "name": Genre.name,
    "created_at": Genre.created_at,
}

ORDER_SORT_COLUMNS = {
    "created_at": Order.created_at,
}

ORDER_DETAIL_OPTIONS = (
    selectinload(Order.items).selectinload(OrderItem.book).selectinload(Book.genre),
)


def _contains(column, value: str):
    return column.ilike(f"%{value}%")


# ---------------------------------------------------------------------------
# Genre repository
# ---------------------------------------------------------------------------

class GenreRepository(BaseRepository[Genre]):
    """Repository for genre lookups and listings."""

    model = Genre

    async def find_active_by_name(self, name: str, exclude_id: str | None = None) -> Genre | None:
        stmt = self.active().where(func.lower(Genre.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Genre.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def search(
        self,
        page: PageRequest,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page[Genre]:
        order_by = resolve_sort(GENRE_SORT_COLUMNS, sort_by, sort_order)
        stmt = self.active()
        if search:
            stmt = stmt.where(_contains(Genre.name, search))
        return await self.paginate(stmt, page, order_by)


# ---------------------------------------------------------------------------
# Book repository
# ---------------------------------------------------------------------------

class BookRepository(BaseRepository[Book]):
    """Repository for book CRUD, search, and stock operations."""

    model = Book

    async def get_with_genre(self, book_id: str) -> Book | None:
        return await self.get(book_id, options=(selectinload(Book.genre),))

    async def find_active_by_title(self, title: str, exclude_id: str | None = None) -> Book | None:
        stmt = self.active().where(Book.title == title)
        if exclude_id is not None:
            stmt = stmt.where(Book.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    def _filtered(self, filters: BookFilters) -> Select:
        stmt = self.active()

        if filters.search:
            stmt = stmt.where(
                or_(
                    _contains(Book.title, filters.search),
                    _contains(Book.writer, filters.search),
                    _contains(Book.publisher, filters.search),
                )
            )
        if filters.title:
            stmt = stmt.where(_contains(Book.title, filters.title))
        if filters.writer:
            stmt = stmt.where(_contains(Book.writer, filters.writer))
        if filters.publisher:
            stmt = stmt.where(_contains(Book.publisher, filters.publisher))
        if filters.genre_id:
            stmt = stmt.where(Book.genre_id == filters.genre_id)
        if filters.min_price is not None:
            stmt = stmt.where(Book.price >= filters.min_price)
        if filters.max_price is not None:
            stmt = stmt.where(Book.price <= filters.max_price)
        if filters.min_year is not None:
            stmt = stmt.where(Book.publication_year >= filters.min_year)
        if filters.max_year is not None:
            stmt = stmt.where(Book.publication_year <= filters.max_year)

        return stmt

    async def search(
        self,
        filters: BookFilters,
        page: PageRequest,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page[Book]:
        """Search books with multiple filters."""
        order_by = resolve_sort(BOOK_SORT_COLUMNS, sort_by, sort_order)
        return await self.paginate(
            self._filtered(filters),
            page,
            order_by,
            options=(selectinload(Book.genre),),
        )

    # -- Order workflow --

    async def lock_for_order(self, book_id: str) -> Book | None:
        """Load an active book and take its row lock for the current transaction."""
        stmt = (
            self.active()
            .where(Book.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def decrement_stock(self, book_id: str, quantity: int) -> bool:
        """Take ``quantity`` off the stock if enough remains.

        The WHERE guard makes the check and the write one statement, so the
        stock never goes negative even where the row lock above is a no-op.
        Returns False when the guard rejected the update.
        """
        stmt = (
            update(Book)
            .where(
                Book.id == book_id,
                Book.status == RecordStatus.ACTIVE,
                Book.stock_quantity >= quantity,
            )
            .values(stock_quantity=Book.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def current_stock(self, book_id: str) -> int:
        result = await self.session.execute(select(Book.stock_quantity).where(Book.id == book_id))
        return int(result.scalar_one_or_none() or 0)


# ---------------------------------------------------------------------------
# User repository
# ---------------------------------------------------------------------------

class UserRepository:
    """Repository for user accounts (not soft-deletable)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> User | None:
        return await self.session.get(User, user_id)

    async def find_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalars().first()

    async def add(self, user: User) -> User:
        self.session.add(user)
        await self.session.flush()
        return user


# ---------------------------------------------------------------------------
# Order repository
# ---------------------------------------------------------------------------

class OrderRepository(BaseRepository[Order]):
    """Repository for orders and their items."""

    model = Order

    async def get_detail(self, order_id: str) -> Order | None:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(*ORDER_DETAIL_OPTIONS)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def search(
        self,
        page: PageRequest,
        user_id: str | None = None,
        sort_order: str = "desc",
    ) -> Page[Order]:
        order_by = resolve_sort(ORDER_SORT_COLUMNS, "created_at", sort_order)
        stmt = select(Order)
        if user_id:
            stmt = stmt.where(Order.user_id == user_id)
        return await self.paginate(stmt, page, order_by, options=ORDER_DETAIL_OPTIONS)

    async def count_between(self, start: datetime | None, end: datetime | None) -> int:
        stmt = select(func.count(Order.id))
        stmt = _created_between(stmt, start, end)
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def sales_lines(self, start: datetime | None, end: datetime | None) -> list[tuple]:
        """(quantity, current price, genre id, genre name) for every item in range.

        Soft-deleted books and genres are included; history is never hidden.
        Rows come back in order creation order, then item position.
        """
        stmt = (
            select(OrderItem.quantity, Book.price, Genre.id, Genre.name)
            .join(Order, OrderItem.order_id == Order.id)
            .join(Book, OrderItem.book_id == Book.id)
            .join(Genre, Book.genre_id == Genre.id)
            .order_by(Order.created_at, Order.id, OrderItem.position)
        )
        stmt = _created_between(stmt, start, end)
        result = await self.session.execute(stmt)
        return [tuple(row) for row in result.all()]


def _created_between(stmt: Select, start: datetime | None, end: datetime | None) -> Select:
    if start is not None:
        stmt = stmt.where(Order.created_at >= start)
    if end is not None:
        stmt = stmt.where(Order.created_at <= end)
    return stmt

