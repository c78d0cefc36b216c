"""
Module: guardrail_kernel.db.base
Responsibility: Declarative base classes for the ORM models backing the
    fiscal period store.  Provides the UUID primary key convention and the
    TrackedBase mixin for audit timestamps.
Architecture position: Kernel > DB.  Lowest-level import target of the
    persistence adapter; MUST NOT import from models/, services/ or
    selectors/.

Invariants enforced:
    - UUID primary keys: every model gets a uuid4 primary key stored as
      String(36) so the same schema runs on PostgreSQL and SQLite.
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID stored as String(36) for cross-database portability.

    Binds UUID objects (or their string form) as text and loads them back
    as ``uuid.UUID``.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all guardrail models.

    Guarantees:
        - id is always a uuid4-generated UUID.
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps and actor tracking.

    Guarantees:
        - created_at is set by the database on INSERT.
        - updated_at is refreshed on every UPDATE.
        - created_by_id is required; every row has a creator.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )
