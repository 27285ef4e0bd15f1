"""Async repository pattern for database access.

Provides a generic base repository with lookup, pagination, sorting through
an explicit allow-list, and soft-delete-aware reads. The bookstore
subclasses this to add domain-specific queries.
"""

import math
from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from core.errors import ValidationError
from core.models.base import Base, RecordStatus

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


# ---------------------------------------------------------------------------
# Paging helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[ModelT]):
    items: list[ModelT]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def resolve_sort(
    columns: Mapping[str, InstrumentedAttribute],
    sort_by: str,
    sort_order: str,
):
    """Map a sort token to an ORDER BY clause.

    Only tokens present in ``columns`` are accepted; anything else is a
    validation error rather than a query-builder input.
    """
    column = columns.get(sort_by)
    if column is None:
        raise ValidationError(
            f"Invalid sort field '{sort_by}'. Allowed: {', '.join(sorted(columns))}"
        )
    if sort_order not in ("asc", "desc"):
        raise ValidationError("Invalid sort order. Allowed: asc, desc")
    return column.asc() if sort_order == "asc" else column.desc()


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with lookup + pagination.

    Subclass and set `model` to your SQLAlchemy model::

        class GenreRepository(BaseRepository[Genre]):
            model = Genre

            async def find_by_name(self, name: str):
                stmt = self.active().where(self.model.name == name)
                result = await self.session.execute(stmt)
                return result.scalars().first()
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- Query builders --

    def active(self) -> Select:
        """SELECT over rows whose status tag is Active."""
        return select(self.model).where(self.model.status == RecordStatus.ACTIVE)

    # -- Get by ID --

    async def get(self, item_id: str, *, include_deleted: bool = False, options: tuple = ()) -> ModelT | None:
        """Get a single row by ID; deleted rows are hidden unless asked for."""
        stmt = select(self.model) if include_deleted else self.active()
        stmt = stmt.where(self.model.id == item_id)
        if options:
            stmt = stmt.options(*options)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # -- List with pagination --

    async def paginate(
        self,
        stmt: Select,
        page: PageRequest,
        order_by: Any,
        options: tuple = (),
    ) -> Page[ModelT]:
        """Run ``stmt`` for one page and count the full result set.

        Returns a Page with items and total_count.
        """
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0

        page_stmt = stmt.order_by(order_by, self.model.id).offset(page.offset).limit(page.limit)
        if options:
            page_stmt = page_stmt.options(*options)
        result = await self.session.execute(page_stmt)
        items = list(result.scalars().all())

        return Page(items=items, page=page.page, limit=page.limit, total=total)

    # -- Create --

    async def add(self, item: ModelT) -> ModelT:
        self.session.add(item)
        await self.session.flush()
        return item

    # -- Soft delete --

    async def soft_delete(self, item: ModelT) -> ModelT:
        item.mark_deleted()
        await self.session.flush()
        return item
