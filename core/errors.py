"""Application error taxonomy.

Services raise these; the HTTP layer maps each to the response envelope
using ``status_code`` and ``message``. Nothing here knows about FastAPI.
"""

from typing import Any


class AppError(Exception):
    """Base class for errors that carry an HTTP status and a safe message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required. Please login first."


class InternalError(AppError):
    status_code = 500


# ---------------------------------------------------------------------------
# Order workflow failures
# ---------------------------------------------------------------------------

class BookNotFound(NotFoundError):
    """A requested book does not exist or has been deleted."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book with ID {book_id} not found")


class InsufficientStock(ValidationError):
    """Requested quantity exceeds the stock available at check time."""

    def __init__(self, title: str, available: int, requested: int):
        self.title = title
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for "{title}". '
            f"Available: {available}, Requested: {requested}"
        )

    def details(self) -> dict[str, Any]:
        return {"title": self.title, "available": self.available, "requested": self.requested}
