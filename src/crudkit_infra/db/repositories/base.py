"""Generic CRUD repository over an async SQLAlchemy session.

Subclass ``SqlRepository`` when create/update inputs are the mapped model
itself, or ``MappedSqlRepository`` when they are separate DTO types that
need explicit conversion. Every read, update lookup and delete lookup goes
through ``restricted_query()``, so overriding it is enough to apply tenant
or visibility filters everywhere.

Repositories flush but never commit; the caller owns the transaction.
Updates and deletes flush inside a savepoint so that a concurrency conflict
only undoes the conflicting statement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy import ColumnElement, Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from crudkit_core.constants import CrudEvent
from crudkit_core.exceptions import ConversionError, RepositoryClosedError
from crudkit_core.models.crud import CrudError, CrudResult
from crudkit_core.models.search import PagedResult, SearchModel
from crudkit_infra.db.deletion import DeleteStrategy, resolve_delete_strategy
from crudkit_infra.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)
CreateT = TypeVar("CreateT")
UpdateT = TypeVar("UpdateT")
SearchT = TypeVar("SearchT", bound=SearchModel)


class MappedSqlRepository(ABC, Generic[ModelT, CreateT, UpdateT, SearchT]):
    """CRUD facade for one mapped model with distinct create/update inputs."""

    id_attribute = "id"

    def __init__(
        self,
        session: AsyncSession,
        model: type[ModelT],
        *,
        logger: Any = None,
        delete_strategy: DeleteStrategy | None = None,
    ) -> None:
        """Initialize with an async session and the mapped model class."""
        self._session = session
        self.model = model
        self._id_column = getattr(model, self.id_attribute)
        self._delete_strategy = delete_strategy or resolve_delete_strategy(model)
        if logger is None:
            logger = structlog.get_logger().bind(
                repository=type(self).__name__, model=model.__name__
            )
        self._logger = logger
        self._closed = False

    @property
    def session(self) -> AsyncSession:
        """The persistence context this repository writes through."""
        return self._session

    @property
    def is_closed(self) -> bool:
        """True once close() has released the session."""
        return self._closed

    # --- hooks ---

    def restricted_query(self) -> Select[tuple[ModelT]]:
        """Base query for every read, update and delete path.

        Override to add row-level restrictions, e.g. ownership or hiding
        soft-deleted rows.
        """
        return select(self.model)

    @abstractmethod
    def create_to_model(self, data: CreateT) -> ModelT:
        """Convert a create input into a new model instance."""

    @abstractmethod
    def update_to_model(self, data: UpdateT) -> ModelT:
        """Convert an update input into a model instance carrying its id and version."""

    def validate_create(self, data: CreateT) -> CrudResult[ModelT]:
        """Check a create input; the default only converts it.

        Overrides may return a conflict or invalid result to stop the create.
        They must not write to the session.
        """
        return CrudResult.ok(self._checked(self.create_to_model(data), "create_to_model"))

    def validate_update(self, data: UpdateT) -> CrudResult[ModelT]:
        """Check an update input; the default only converts it."""
        return CrudResult.ok(self._checked(self.update_to_model(data), "update_to_model"))

    # --- reads ---

    async def get_by_id_or_default(self, entity_id: int) -> ModelT | None:
        """Retrieve a visible entity by id, or None."""
        self._ensure_open()
        stmt = self.restricted_query().where(self._id_column == entity_id).limit(1)
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def exists(self, entity_id: int) -> bool:
        """Check whether a visible entity has this id."""
        self._ensure_open()
        stmt = select(self.restricted_query().where(self._id_column == entity_id).exists())
        return bool(await self._session.scalar(stmt))

    async def get_all(
        self,
        search: SearchT,
        where: ColumnElement[bool] | None = None,
    ) -> PagedResult[ModelT]:
        """Return one page ordered by id descending, plus the unpaged match count."""
        self._ensure_open()
        stmt = (
            self._filtered_query(where)
            .order_by(self._id_column.desc())
            .offset(search.offset)
            .limit(search.limit)
        )
        result = await self._session.execute(stmt)
        items = list(result.scalars().all())
        total = await self.count(where)
        return PagedResult(items=items, total=total, search=search)

    async def count(self, where: ColumnElement[bool] | None = None) -> int:
        """Count visible entities matching the filter."""
        self._ensure_open()
        stmt = select(func.count()).select_from(self._filtered_query(where).subquery())
        return int(await self._session.scalar(stmt) or 0)

    # --- writes ---

    async def create(self, data: CreateT) -> CrudResult[ModelT]:
        """Validate, stage and flush a new entity; its id is set on return."""
        self._ensure_open()
        result = self.validate_create(data)
        if not result.is_ok:
            return result

        try:
            self._session.add(result.entity)
        except Exception:
            self._logger.exception("create_staging_failed")
            raise

        await self._session.flush()
        self._logger.debug(
            "entity_created", entity_id=getattr(result.entity, self.id_attribute)
        )
        return result

    async def update(self, entity_id: int, data: UpdateT) -> CrudResult[ModelT]:
        """Overwrite an entity without reading it first.

        The converted model is attached as if loaded and every column is
        flagged modified. Its version column, when the model has one, is the
        expected version: if the stored row moved on, the flush matches no
        row and a conflict result is returned. The write runs in a savepoint,
        so a conflict leaves earlier work in the session untouched.
        """
        self._ensure_open()
        result = self.validate_update(data)
        if not result.is_ok:
            return result

        entity = result.entity
        current_id = getattr(entity, self.id_attribute)
        if current_id is None:
            setattr(entity, self.id_attribute, entity_id)
        elif current_id != entity_id:
            return CrudResult.invalid([CrudError.from_event(CrudEvent.IDENTITY_MISMATCH)])

        expected_version = self._version_of(entity)
        if self._version_key() is not None and expected_version is None:
            return CrudResult.invalid([CrudError.from_event(CrudEvent.MISSING_VERSION)])

        self._detach(entity)
        await self._session.flush()
        try:
            async with self._session.begin_nested():
                self._attach_modified(entity)
                await self._session.flush()
        except StaleDataError as exc:
            await self._log_conflict("update_concurrency_conflict", entity_id, expected_version, exc)
            return CrudResult.conflict([CrudError.from_event(CrudEvent.CONCURRENCY_ERROR)])

        await self._load_unloaded(entity)
        self._logger.debug("entity_updated", entity_id=entity_id)
        return result

    async def delete(self, entity_id: int) -> CrudResult[ModelT]:
        """Soft- or hard-delete a visible entity."""
        self._ensure_open()
        entity = await self.get_by_id_or_default(entity_id)
        if entity is None:
            return CrudResult.not_found()

        expected_version = self._version_of(entity)
        await self._session.flush()
        try:
            async with self._session.begin_nested():
                await self._delete_strategy.apply(self._session, entity)
                await self._session.flush()
        except StaleDataError as exc:
            await self._log_conflict("delete_concurrency_conflict", entity_id, expected_version, exc)
            return CrudResult.conflict([CrudError.from_event(CrudEvent.CONCURRENCY_ERROR)])

        self._logger.debug(
            "entity_deleted",
            entity_id=entity_id,
            strategy=type(self._delete_strategy).__name__,
        )
        return CrudResult.ok()

    # --- lifecycle ---

    async def close(self) -> None:
        """Release the session. Later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        await self._session.close()

    async def __aenter__(self) -> MappedSqlRepository[ModelT, CreateT, UpdateT, SearchT]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # --- internals ---

    def _ensure_open(self) -> None:
        if self._closed:
            msg = f"{type(self).__name__} is closed"
            raise RepositoryClosedError(msg)

    def _checked(self, converted: object, source: str) -> ModelT:
        """Reject conversions that did not produce the mapped model."""
        if not isinstance(converted, self.model):
            msg = (
                f"{type(self).__name__}.{source} returned {type(converted).__name__}, "
                f"expected {self.model.__name__}"
            )
            raise ConversionError(msg)
        return converted

    def _filtered_query(self, where: ColumnElement[bool] | None) -> Select[tuple[ModelT]]:
        stmt = self.restricted_query()
        if where is not None:
            stmt = stmt.where(where)
        return stmt

    def _detach(self, entity: ModelT) -> None:
        """Turn the entity into a detached instance keyed by its id.

        An instance already in the session is expunged with its pending
        changes, so that opening the savepoint does not flush it early.
        """
        state = inspect(entity)
        if state.transient:
            make_transient_to_detached(entity)
        elif state.persistent:
            self._session.expunge(entity)

    def _attach_modified(self, entity: ModelT) -> None:
        """Attach a detached entity and flag every loaded column as modified.

        Primary key and version columns are left alone: the key selects the
        row and the version's current value becomes the expected version.
        """
        self._session.add(entity)

        state = inspect(entity)
        mapper = state.mapper
        skipped = {mapper.get_property_by_column(col).key for col in mapper.primary_key}
        if mapper.version_id_col is not None:
            skipped.add(mapper.get_property_by_column(mapper.version_id_col).key)

        for attr in mapper.column_attrs:
            if attr.key in skipped or attr.key not in state.dict:
                continue
            flag_modified(entity, attr.key)

    def _version_key(self) -> str | None:
        mapper = inspect(self.model)
        if mapper.version_id_col is None:
            return None
        return mapper.get_property_by_column(mapper.version_id_col).key

    def _version_of(self, entity: ModelT) -> Any:
        """Version value currently held by the entity, without triggering a load."""
        key = self._version_key()
        if key is None:
            return None
        return inspect(entity).dict.get(key)

    async def _stored_version(self, entity_id: int) -> Any:
        """Version currently in the store, or None if unversioned or gone."""
        key = self._version_key()
        if key is None:
            return None
        stmt = select(getattr(self.model, key)).where(self._id_column == entity_id)
        return await self._session.scalar(stmt)

    async def _log_conflict(
        self, event: str, entity_id: int, expected_version: Any, exc: StaleDataError
    ) -> None:
        """Log a stale write after its savepoint was rolled back."""
        actual_version = await self._stored_version(entity_id)
        self._logger.warning(
            event,
            event_code=int(CrudEvent.CONCURRENCY_ERROR),
            entity_id=entity_id,
            expected_version=expected_version,
            actual_version=actual_version,
            exc_info=exc,
        )

    async def _load_unloaded(self, entity: ModelT) -> None:
        """Load columns the caller did not supply so the entity is safe to read."""
        state = inspect(entity)
        missing = [attr.key for attr in state.mapper.column_attrs if attr.key in state.unloaded]
        if missing:
            await self._session.refresh(entity, attribute_names=missing)


class SqlRepository(MappedSqlRepository[ModelT, ModelT, ModelT, SearchT]):
    """CRUD facade whose create and update inputs are the mapped model itself."""

    def create_to_model(self, data: ModelT) -> ModelT:
        """Identity conversion."""
        return data

    def update_to_model(self, data: ModelT) -> ModelT:
        """Identity conversion."""
        return data
