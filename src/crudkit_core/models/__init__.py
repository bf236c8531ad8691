"""Public model re-exports for crudkit_core."""

from crudkit_core.models.crud import CrudError, CrudResult, CrudStatus
from crudkit_core.models.search import PagedResult, SearchModel

__all__ = [
    "CrudError",
    "CrudResult",
    "CrudStatus",
    "PagedResult",
    "SearchModel",
]
