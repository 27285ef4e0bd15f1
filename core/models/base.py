"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- RecordMixin: string UUID primary key and audit timestamps
- SoftDeleteMixin: explicit Active/Deleted status tag

Soft-deletable models never rely on a default query scope. Every read path
that should hide deleted rows filters on ``status == RecordStatus.ACTIVE``.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for all bookstore models."""
    pass


class RecordStatus(str, enum.Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class RecordMixin:
    """Mixin providing a string UUID key and standard audit columns.

    Adds:
    - id: UUID4 string primary key (auto-generated)
    - created_at: Timestamp set on insert
    - updated_at: Timestamp updated on every change
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class SoftDeleteMixin:
    """Mixin adding the Active/Deleted status tag."""

    status: Mapped[RecordStatus] = mapped_column(
        Enum(RecordStatus, name="record_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RecordStatus.ACTIVE,
        index=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    def mark_deleted(self) -> None:
        self.status = RecordStatus.DELETED


def isoformat(value: datetime | None) -> str | None:
    """Serialise a timestamp, treating naive values (SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
