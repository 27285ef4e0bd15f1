"""Bookstore catalog router — books and genres.

Standard router pattern:
- Full CRUD for books (search, filters, pagination, allow-listed sorting)
- Full CRUD for genres, with public reads
- Soft delete everywhere
- Session injection via FastAPI Depends
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from core.security import CurrentUser, get_current_user
from patterns.repository import PageRequest
from verticals.bookstore.config import config
from verticals.bookstore.models.schemas import (
    BookCreate,
    BookFilters,
    BookSortField,
    BookUpdate,
    GenreCreate,
    GenreSortField,
    GenreUpdate,
    SortOrder,
    ok,
)
from verticals.bookstore.services.catalog import BookService, GenreService

router = APIRouter()

_pagination = config.pagination


def page_request(
    page: int = Query(_pagination.default_page, ge=1),
    limit: int = Query(_pagination.default_limit, ge=1, le=_pagination.max_limit),
) -> PageRequest:
    return PageRequest(page=page, limit=limit)


def book_filters(
    search: Optional[str] = None,
    title: Optional[str] = None,
    writer: Optional[str] = None,
    publisher: Optional[str] = None,
    genre_id: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    min_year: Optional[int] = None,
    max_year: Optional[int] = None,
) -> BookFilters:
    return BookFilters(
        search=search,
        title=title,
        writer=writer,
        publisher=publisher,
        genre_id=genre_id,
        min_price=min_price,
        max_price=max_price,
        min_year=min_year,
        max_year=max_year,
    )


# ============================================================================
# Book Endpoints
# ============================================================================

@router.post("/books", status_code=201)
async def create_book(
    request: BookCreate,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Add a new book to the catalog."""
    book = await BookService(session).create(request)
    return ok("Book created successfully", book)


@router.get("/books")
async def list_books(
    filters: BookFilters = Depends(book_filters),
    page: PageRequest = Depends(page_request),
    sort_by: BookSortField = BookSortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Search and list books with filtering, sorting and pagination."""
    data = await BookService(session).list(
        filters, page, sort_by=sort_by.value, sort_order=sort_order.value
    )
    return ok("Books retrieved successfully", data)


@router.get("/books/genre/{genre_id}")
async def list_books_by_genre(
    genre_id: str,
    filters: BookFilters = Depends(book_filters),
    page: PageRequest = Depends(page_request),
    sort_by: BookSortField = BookSortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List books of one genre; 404 when the genre does not exist."""
    data = await BookService(session).list_by_genre(
        genre_id, filters, page, sort_by=sort_by.value, sort_order=sort_order.value
    )
    return ok("Books by genre retrieved successfully", data)


@router.get("/books/{book_id}")
async def get_book(
    book_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    book = await BookService(session).detail(book_id)
    return ok("Book retrieved successfully", book)


@router.patch("/books/{book_id}")
async def update_book(
    book_id: str,
    request: BookUpdate,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Update a book (price, stock, description, etc.)."""
    book = await BookService(session).update(book_id, request)
    return ok("Book updated successfully", book)


@router.delete("/books/{book_id}")
async def delete_book(
    book_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Soft-delete a book; existing order items keep referencing it."""
    data = await BookService(session).delete(book_id)
    return ok("Book deleted successfully", data)


# ============================================================================
# Genre Endpoints
# ============================================================================

@router.post("/genres", status_code=201)
async def create_genre(
    request: GenreCreate,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    genre = await GenreService(session).create(request)
    return ok("Genre created", genre)


@router.get("/genres")
async def list_genres(
    search: Optional[str] = None,
    page: PageRequest = Depends(page_request),
    sort_by: GenreSortField = GenreSortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    session: AsyncSession = Depends(get_session),
):
    data = await GenreService(session).list(page, search, sort_by.value, sort_order.value)
    return ok("Genres", data)


@router.get("/genres/{genre_id}")
async def get_genre(
    genre_id: str,
    session: AsyncSession = Depends(get_session),
):
    genre = await GenreService(session).detail(genre_id)
    return ok("Genre", genre)


@router.patch("/genres/{genre_id}")
async def update_genre(
    genre_id: str,
    request: GenreUpdate,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    genre = await GenreService(session).update(genre_id, request)
    return ok("Genre updated", genre)


@router.delete("/genres/{genre_id}")
async def delete_genre(
    genre_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    data = await GenreService(session).delete(genre_id)
    return ok("Genre deleted", data)
