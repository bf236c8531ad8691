"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from structlog.contextvars import bound_contextvars, merge_contextvars

from crudkit_core.constants import EVENT_DESCRIPTIONS

if TYPE_CHECKING:
    from crudkit_core.config.settings import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog with JSON or console rendering.

    Sets up shared processors, routes stdlib logging through structlog,
    and configures the output format based on settings.
    """
    shared_processors: list[structlog.types.Processor] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_event_description,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    level = _resolve_level(settings.log_level)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # SQL echo is controlled by the engine, not the root level
    if not getattr(settings, "echo_sql", False):
        logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))


def add_event_description(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Attach the text for a known ``event_code`` so log readers need no lookup table."""
    description = EVENT_DESCRIPTIONS.get(event_dict.get("event_code"))  # type: ignore[arg-type]
    if description is not None:
        event_dict.setdefault("event_description", description)
    return event_dict


@contextmanager
def unit_of_work_context(unit_of_work_id: str | None = None) -> Iterator[str]:
    """Bind a unit-of-work id to every log entry emitted inside the block.

    A fresh id is generated when none is given. Values bound by an
    enclosing block are restored on exit.
    """
    unit_of_work_id = unit_of_work_id or uuid4().hex
    with bound_contextvars(unit_of_work_id=unit_of_work_id):
        yield unit_of_work_id


def _resolve_level(level_name: str) -> int:
    """Convert a level name string to a logging level int."""
    mapping: dict[str, int] = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return mapping.get(level_name.upper(), logging.INFO)
