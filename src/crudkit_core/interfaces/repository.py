"""Abstract repository and entity capability interfaces."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

from crudkit_core.models.crud import CrudResult
from crudkit_core.models.search import PagedResult, SearchModel

ModelT = TypeVar("ModelT", covariant=True)
CreateT = TypeVar("CreateT", contravariant=True)
UpdateT = TypeVar("UpdateT", contravariant=True)
SearchT = TypeVar("SearchT", bound=SearchModel, contravariant=True)


@runtime_checkable
class Identifiable(Protocol):
    """Entity exposing an integer identity assigned by the store."""

    id: int | None


@runtime_checkable
class Deletable(Protocol):
    """Entity that is soft-deleted by setting a flag instead of removing the row."""

    is_deleted: bool


@runtime_checkable
class CrudRepository(Protocol[ModelT, CreateT, UpdateT, SearchT]):
    """CRUD facade over a persistence context for one entity type."""

    def validate_create(self, data: CreateT) -> CrudResult[ModelT]:
        """Check a create input and convert it into a model."""
        ...

    def validate_update(self, data: UpdateT) -> CrudResult[ModelT]:
        """Check an update input and convert it into a model."""
        ...

    async def get_by_id_or_default(self, entity_id: int) -> ModelT | None:
        """Retrieve a visible entity by id, or None."""
        ...

    async def exists(self, entity_id: int) -> bool:
        """Check whether a visible entity has this id."""
        ...

    async def get_all(self, search: SearchT, where: Any = None) -> PagedResult[ModelT]:
        """Return one page of matching entities plus the total match count."""
        ...

    async def count(self, where: Any = None) -> int:
        """Count matching entities."""
        ...

    async def create(self, data: CreateT) -> CrudResult[ModelT]:
        """Validate and insert a new entity."""
        ...

    async def update(self, entity_id: int, data: UpdateT) -> CrudResult[ModelT]:
        """Validate and overwrite an existing entity."""
        ...

    async def delete(self, entity_id: int) -> CrudResult[ModelT]:
        """Soft- or hard-delete an entity."""
        ...

    async def close(self) -> None:
        """Release the held persistence context."""
        ...
