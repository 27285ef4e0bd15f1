"""Catalog writes and reads for books and genres.

Uniqueness (book title, genre name) holds among active rows only, so a name
frees up once its holder is soft-deleted. The lookup here gives the usual
error; the partial unique indexes catch writers that race past it. Every
write commits before returning.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConflictError, NotFoundError, ValidationError
from patterns.repository import PageRequest
from patterns.rules_engine import (
    check_integer,
    check_non_negative,
    check_publication_year,
    evaluate_rules,
)
from verticals.bookstore.models.db_models import Book, Genre
from verticals.bookstore.models.schemas import BookCreate, BookFilters, BookUpdate, GenreCreate, GenreUpdate
from verticals.bookstore.repository import BookRepository, GenreRepository

logger = logging.getLogger(__name__)

DUPLICATE_TITLE = "Book with this title already exists"


def _current_year() -> int:
    return datetime.now(timezone.utc).year


def _check_book_fields(data: dict) -> None:
    rules = []
    if data.get("publication_year") is not None:
        rules.append(check_publication_year(data["publication_year"], _current_year()))
    if data.get("price") is not None:
        rules.append(check_non_negative(data["price"], "price"))
    if data.get("stock_quantity") is not None:
        rules.append(check_integer(data["stock_quantity"], "stock_quantity"))
        rules.append(check_non_negative(data["stock_quantity"], "stock_quantity"))

    outcome = evaluate_rules(*rules)
    if not outcome.all_passed:
        raise ValidationError(outcome.first_failure.message, status_code=422)
    if data.get("stock_quantity") is not None:
        data["stock_quantity"] = int(data["stock_quantity"])


# ---------------------------------------------------------------------------
# Genres
# ---------------------------------------------------------------------------

class GenreService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.genres = GenreRepository(session)

    async def create(self, payload: GenreCreate) -> dict:
        if await self.genres.find_active_by_name(payload.name):
            raise ConflictError("Genre already exists")
        try:
            genre = await self.genres.add(Genre(name=payload.name))
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Genre already exists") from None
        logger.info("Genre %s created (%s)", genre.id, genre.name)
        return genre.to_dict()

    async def list(self, page: PageRequest, search: str | None, sort_by: str, sort_order: str) -> dict:
        result = await self.genres.search(page, search=search, sort_by=sort_by, sort_order=sort_order)
        return {
            "genres": [genre.to_dict() for genre in result.items],
            "pagination": result.pagination(),
        }

    async def detail(self, genre_id: str) -> dict:
        return (await self._require(genre_id)).to_dict()

    async def update(self, genre_id: str, payload: GenreUpdate) -> dict:
        genre = await self._require(genre_id)
        if await self.genres.find_active_by_name(payload.name, exclude_id=genre_id):
            raise ConflictError("Genre name already exists", status_code=400)
        genre.name = payload.name
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Genre name already exists", status_code=400) from None
        return genre.to_dict()

    async def delete(self, genre_id: str) -> dict:
        genre = await self._require(genre_id)
        await self.genres.soft_delete(genre)
        await self.session.commit()
        logger.info("Genre %s soft-deleted", genre_id)
        return {"id": genre_id}

    async def _require(self, genre_id: str) -> Genre:
        genre = await self.genres.get(genre_id)
        if genre is None:
            raise NotFoundError("Genre not found")
        return genre


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------

class BookService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.books = BookRepository(session)
        self.genres = GenreRepository(session)

    async def create(self, payload: BookCreate) -> dict:
        data = payload.model_dump()
        _check_book_fields(data)

        if await self.books.find_active_by_title(data["title"]):
            raise ValidationError(DUPLICATE_TITLE)
        genre = await self._require_genre(data["genre_id"])

        book = Book(**data)
        book.genre = genre
        try:
            await self.books.add(book)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValidationError(DUPLICATE_TITLE) from None
        logger.info("Book %s created (%s)", book.id, book.title)
        return book.to_dict(include_genre=True)

    async def list(
        self,
        filters: BookFilters,
        page: PageRequest,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> dict:
        result = await self.books.search(filters, page, sort_by=sort_by, sort_order=sort_order)
        return {
            "books": [book.to_dict(include_genre=True) for book in result.items],
            "pagination": result.pagination(),
        }

    async def list_by_genre(
        self,
        genre_id: str,
        filters: BookFilters,
        page: PageRequest,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> dict:
        await self._require_genre(genre_id)
        scoped = filters.model_copy(update={"genre_id": genre_id})
        return await self.list(scoped, page, sort_by=sort_by, sort_order=sort_order)

    async def detail(self, book_id: str) -> dict:
        book = await self.books.get_with_genre(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        return book.to_dict(include_genre=True)

    async def update(self, book_id: str, payload: BookUpdate) -> dict:
        book = await self.books.get_with_genre(book_id)
        if book is None:
            raise NotFoundError("Book not found")

        updates = payload.model_dump(exclude_unset=True)
        _check_book_fields(updates)

        if updates.get("title") and updates["title"] != book.title:
            if await self.books.find_active_by_title(updates["title"], exclude_id=book_id):
                raise ValidationError(DUPLICATE_TITLE)
        if updates.get("genre_id"):
            book.genre = await self._require_genre(updates["genre_id"])

        for key, value in updates.items():
            if value is None and key != "description":
                continue
            setattr(book, key, value)

        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValidationError(DUPLICATE_TITLE) from None
        return book.to_dict(include_genre=True)

    async def delete(self, book_id: str) -> dict:
        book = await self.books.get(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        await self.books.soft_delete(book)
        await self.session.commit()
        logger.info("Book %s soft-deleted", book_id)
        return {"id": book_id}

    async def _require_genre(self, genre_id: str) -> Genre:
        genre = await self.genres.get(genre_id)
        if genre is None:
            raise NotFoundError("Genre not found")
        return genre
