"""Generic SQLAlchemy repository implementations."""

from crudkit_infra.db.repositories.base import MappedSqlRepository, SqlRepository

__all__ = [
    "MappedSqlRepository",
    "SqlRepository",
]
