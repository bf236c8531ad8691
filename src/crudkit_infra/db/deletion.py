"""Soft and hard delete strategies, chosen once per mapped model."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

SOFT_DELETE_ATTRIBUTE = "is_deleted"


@runtime_checkable
class DeleteStrategy(Protocol):
    """Stages the removal of a persistent entity in a session."""

    async def apply(self, session: AsyncSession, entity: Any) -> None:
        """Stage the delete; the caller flushes."""
        ...


class SoftDelete:
    """Flag the row as deleted and keep it in the table."""

    def __init__(self, attribute: str = SOFT_DELETE_ATTRIBUTE) -> None:
        """Initialize with the name of the boolean deleted flag."""
        self.attribute = attribute

    async def apply(self, session: AsyncSession, entity: Any) -> None:
        """Set the deleted flag; change tracking turns it into an UPDATE."""
        setattr(entity, self.attribute, True)


class HardDelete:
    """Remove the row from the table."""

    async def apply(self, session: AsyncSession, entity: Any) -> None:
        """Mark the entity for deletion."""
        await session.delete(entity)


def resolve_delete_strategy(model: type[Any]) -> DeleteStrategy:
    """Pick SoftDelete when the mapped class has an ``is_deleted`` column."""
    if SOFT_DELETE_ATTRIBUTE in inspect(model).column_attrs:
        return SoftDelete()
    return HardDelete()
