"""Shared constants and event codes for crudkit."""

from __future__ import annotations

from enum import IntEnum


class CrudEvent(IntEnum):
    """Numeric event codes attached to log entries and CrudError records."""

    CONCURRENCY_ERROR = 1001
    IDENTITY_MISMATCH = 1002
    MISSING_VERSION = 1003


EVENT_DESCRIPTIONS: dict[CrudEvent, str] = {
    CrudEvent.CONCURRENCY_ERROR: "The row was changed or removed since it was read",
    CrudEvent.IDENTITY_MISMATCH: "The entity id does not match the requested id",
    CrudEvent.MISSING_VERSION: "A versioned entity was submitted without its expected version",
}

# Page size used when a SearchModel does not specify one
DEFAULT_PAGE_LIMIT = 20
