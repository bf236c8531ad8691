"""Public interface re-exports for crudkit_core."""

from crudkit_core.interfaces.repository import CrudRepository, Deletable, Identifiable

__all__ = [
    "CrudRepository",
    "Deletable",
    "Identifiable",
]
