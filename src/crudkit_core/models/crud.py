"""Typed outcomes for create, update and delete operations."""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from crudkit_core.constants import EVENT_DESCRIPTIONS, CrudEvent

T = TypeVar("T")


class CrudStatus(StrEnum):
    """Outcome kind of a mutating repository call."""

    OK = "ok"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID = "invalid"


class CrudError(BaseModel):
    """Structured error carried by a non-ok CrudResult."""

    model_config = ConfigDict(frozen=True)

    code: int = Field(description="Numeric event code")
    description: str = Field(description="Human readable explanation")

    @classmethod
    def from_event(cls, event: CrudEvent) -> CrudError:
        """Build an error record for a known event code."""
        return cls(code=int(event), description=EVENT_DESCRIPTIONS.get(event, event.name))


class CrudResult(BaseModel, Generic[T]):
    """Result of a create, update or delete call.

    Expected failures (validation rejection, optimistic concurrency conflict,
    missing row) are returned as a CrudResult instead of being raised, so
    callers branch on ``status``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: CrudStatus = Field(description="Outcome kind")
    entity: T | None = Field(default=None, description="Entity the call produced, if any")
    errors: list[CrudError] = Field(default_factory=list, description="Errors for non-ok outcomes")

    @property
    def is_ok(self) -> bool:
        """True when the operation succeeded."""
        return self.status == CrudStatus.OK

    @property
    def is_conflict(self) -> bool:
        """True when the operation was rejected with a conflict."""
        return self.status == CrudStatus.CONFLICT

    @property
    def is_not_found(self) -> bool:
        """True when the target row was not visible."""
        return self.status == CrudStatus.NOT_FOUND

    @classmethod
    def ok(cls, entity: T | None = None) -> CrudResult[T]:
        """Successful outcome, optionally carrying the entity."""
        return cls(status=CrudStatus.OK, entity=entity)

    @classmethod
    def conflict(cls, errors: list[CrudError]) -> CrudResult[T]:
        """Rejected outcome: business-rule or concurrency conflict."""
        return cls(status=CrudStatus.CONFLICT, errors=errors)

    @classmethod
    def not_found(cls) -> CrudResult[T]:
        """The requested identity has no visible row."""
        return cls(status=CrudStatus.NOT_FOUND)

    @classmethod
    def invalid(cls, errors: list[CrudError]) -> CrudResult[T]:
        """The input failed validation before any write was attempted."""
        return cls(status=CrudStatus.INVALID, errors=errors)
