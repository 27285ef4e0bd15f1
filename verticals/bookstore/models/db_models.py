"""SQLAlchemy models for the bookstore vertical.

Each model inherits from Base and uses RecordMixin for ids and timestamps.
Catalog rows (Genre, Book) are soft-deletable through SoftDeleteMixin so
that order history keeps pointing at real rows. The to_dict() method
provides the serialisation interface used by repositories and routers.
"""

from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.models.base import Base, RecordMixin, SoftDeleteMixin, isoformat


class User(RecordMixin, Base):
    """A registered customer account."""

    __tablename__ = "users"

    username: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    orders: Mapped[list["Order"]] = relationship(back_populates="user")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": isoformat(self.created_at),
        }


class Genre(RecordMixin, SoftDeleteMixin, Base):
    """A catalog genre. Names are unique among active genres only."""

    __tablename__ = "genres"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    books: Mapped[list["Book"]] = relationship(back_populates="genre")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class Book(RecordMixin, SoftDeleteMixin, Base):
    """A book in the catalog."""

    __tablename__ = "books"

    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    writer: Mapped[str] = mapped_column(String(200), nullable=False)
    publisher: Mapped[str] = mapped_column(String(200), nullable=False)
    publication_year: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    genre_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("genres.id"), nullable=False, index=True
    )

    genre: Mapped["Genre"] = relationship(back_populates="books")

    def to_dict(self, include_genre: bool = False) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "writer": self.writer,
            "publisher": self.publisher,
            "publication_year": self.publication_year,
            "description": self.description,
            "price": self.price,
            "stock_quantity": self.stock_quantity,
            "genre_id": self.genre_id,
            "status": self.status.value,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_genre:
            data["genre"] = self.genre.to_dict() if self.genre else None
        return data


# Names and titles are unique among active rows only; deleted rows free them.
_ACTIVE_ROWS = text("status = 'active'")

Index(
    "uq_genres_active_name",
    func.lower(Genre.name),
    unique=True,
    postgresql_where=_ACTIVE_ROWS,
    sqlite_where=_ACTIVE_ROWS,
)
Index(
    "uq_books_active_title",
    Book.title,
    unique=True,
    postgresql_where=_ACTIVE_ROWS,
    sqlite_where=_ACTIVE_ROWS,
)


class Order(RecordMixin, Base):
    """A purchase placed by a user. Never updated after creation."""

    __tablename__ = "orders"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )

    user: Mapped["User"] = relationship(back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(RecordMixin, Base):
    """One line of an order. No price snapshot: revenue uses the current book price."""

    __tablename__ = "order_items"

    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=False, index=True
    )
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # input order within the order request
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    order: Mapped["Order"] = relationship(back_populates="items")
    book: Mapped["Book"] = relationship()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "book_id": self.book_id,
            "quantity": self.quantity,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
            "book": self.book.to_dict(include_genre=True) if self.book else None,
        }
