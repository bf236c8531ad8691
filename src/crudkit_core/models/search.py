"""Search criteria and paged result models."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from crudkit_core.constants import DEFAULT_PAGE_LIMIT

T = TypeVar("T")


class SearchModel(BaseModel):
    """Pagination parameters; subclass to add entity-specific filter fields."""

    offset: int = Field(default=0, ge=0, description="Number of rows to skip")
    limit: int = Field(default=DEFAULT_PAGE_LIMIT, gt=0, description="Page size")

    def next_page(self) -> SearchModel:
        """Return a copy of these criteria advanced by one page."""
        return self.model_copy(update={"offset": self.offset + self.limit})


class PagedResult(BaseModel, Generic[T]):
    """One page of rows plus the total count matching the same filter."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: list[T] = Field(description="Page contents, newest id first")
    total: int = Field(ge=0, description="Rows matching the filter, ignoring pagination")
    search: SearchModel = Field(description="Criteria that produced this page")

    @property
    def has_more(self) -> bool:
        """True when rows exist past the end of this page."""
        return self.search.offset + len(self.items) < self.total
