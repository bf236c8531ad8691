"""Custom exception hierarchy for crudkit."""

from __future__ import annotations


class CrudKitError(Exception):
    """Base exception for all crudkit errors."""


class ConversionError(CrudKitError):
    """Raised when a create/update input cannot be converted into the model type."""


class RepositoryClosedError(CrudKitError):
    """Raised when a repository is used after its session was released."""
