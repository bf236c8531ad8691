"""SQLAlchemy declarative base and entity mixins."""

from __future__ import annotations

from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class EntityMixin:
    """Integer identity assigned by the database on insert.

    Optimistic concurrency is opted into per model with a version column::

        class Note(EntityMixin, Base):
            __tablename__ = "notes"

            version_id: Mapped[int] = mapped_column(Integer, nullable=False)
            __mapper_args__ = {"version_id_col": version_id}
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class SoftDeleteMixin:
    """Rows are flagged as deleted instead of being removed."""

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
