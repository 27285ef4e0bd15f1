"""Pydantic schemas for API request/response validation."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, StrictFloat, StrictInt, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BookSortField(str, Enum):
    """Closed set of sortable book columns."""

    TITLE = "title"
    WRITER = "writer"
    PUBLISHER = "publisher"
    PUBLICATION_YEAR = "publication_year"
    PRICE = "price"
    STOCK_QUANTITY = "stock_quantity"
    CREATED_AT = "created_at"


class GenreSortField(str, Enum):
    NAME = "name"
    CREATED_AT = "created_at"


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

def ok(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": data}


def fail(message: str) -> dict:
    return {"success": False, "message": message, "data": None}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    username: Optional[str] = Field(None, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class GenreCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class GenreUpdate(GenreCreate):
    pass


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    writer: str = Field(..., min_length=1, max_length=200)
    publisher: str = Field(..., min_length=1, max_length=200)
    publication_year: int = Field(..., ge=0)
    description: Optional[str] = None
    price: float
    # whole-number check is a catalog rule (422), not a schema error
    stock_quantity: StrictInt | StrictFloat
    genre_id: str = Field(..., min_length=1)


class BookUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    writer: Optional[str] = Field(None, min_length=1, max_length=200)
    publisher: Optional[str] = Field(None, min_length=1, max_length=200)
    publication_year: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    price: Optional[float] = None
    stock_quantity: Optional[StrictInt | StrictFloat] = None
    genre_id: Optional[str] = Field(None, min_length=1)


class BookFilters(BaseModel):
    """Parsed query-string filters for book listings."""

    search: Optional[str] = None
    title: Optional[str] = None
    writer: Optional[str] = None
    publisher: Optional[str] = None
    genre_id: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_year: Optional[int] = None
    max_year: Optional[int] = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

class OrderItemIn(BaseModel):
    book_id: str
    quantity: int = Field(..., ge=1, strict=True)

    @field_validator("book_id")
    @classmethod
    def book_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("book_id must not be blank")
        return value


class OrderCreate(BaseModel):
    """Loose envelope; lines are validated by the order workflow."""

    items: Optional[list[Any]] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class GenreSales(BaseModel):
    genreName: str
    totalSold: int
    totalRevenue: float


class Statistics(BaseModel):
    totalTransactions: int
    totalRevenue: float
    averageTransactionAmount: int
    genreWithMostSales: GenreSales
    genreWithLeastSales: GenreSales
