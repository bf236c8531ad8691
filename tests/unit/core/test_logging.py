"""Tests for crudkit_core/logging.py."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Generator

import pytest
import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars

from crudkit_core.constants import EVENT_DESCRIPTIONS, CrudEvent
from crudkit_core.logging import (
    _resolve_level,
    add_event_description,
    configure_logging,
    unit_of_work_context,
)
from tests.mocks.mock_settings import make_settings


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Restore root handlers and structlog defaults after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.level = original_level
    structlog.reset_defaults()
    clear_contextvars()


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_configure_logging_console_mode(self) -> None:
        """Console mode configures without error."""
        configure_logging(make_settings(log_format="console"))  # type: ignore[arg-type]
        log = structlog.get_logger()
        assert log is not None

    def test_configure_logging_json_mode(self) -> None:
        """JSON mode renders stdlib records as JSON lines."""
        configure_logging(make_settings(log_format="json"))  # type: ignore[arg-type]

        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.getLogger().handlers[0].formatter)
        target = logging.getLogger("test_json_mode")
        target.addHandler(handler)
        target.setLevel(logging.INFO)
        target.info("test_event")
        target.removeHandler(handler)

        line = stream.getvalue().strip().splitlines()[0]
        assert json.loads(line)["event"] == "test_event"

    def test_configure_logging_sets_level(self) -> None:
        """Log level is applied to root logger."""
        configure_logging(make_settings(log_level="WARNING"))  # type: ignore[arg-type]
        assert logging.getLogger().level == logging.WARNING

    def test_sqlalchemy_engine_quieted(self) -> None:
        """SQL echo stays off unless echo_sql is set."""
        configure_logging(make_settings(log_level="DEBUG", echo_sql=False))  # type: ignore[arg-type]
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


@pytest.mark.unit
class TestAddEventDescription:
    """Tests for the event description processor."""

    def test_known_code_gets_description(self) -> None:
        """A CrudEvent code is annotated with its text."""
        event_dict = add_event_description(
            None, "warning", {"event": "update_concurrency_conflict", "event_code": 1001}
        )
        assert event_dict["event_description"] == EVENT_DESCRIPTIONS[CrudEvent.CONCURRENCY_ERROR]

    def test_unknown_or_missing_code_untouched(self) -> None:
        """Entries without a known code pass through unchanged."""
        assert add_event_description(None, "info", {"event": "x"}) == {"event": "x"}
        assert "event_description" not in add_event_description(
            None, "info", {"event": "x", "event_code": 42}
        )

    def test_json_output_includes_description(self) -> None:
        """Configured logging renders the description next to the code."""
        configure_logging(make_settings(log_format="json"))  # type: ignore[arg-type]

        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.getLogger().handlers[0].formatter)
        target = logging.getLogger("test_event_description")
        target.addHandler(handler)
        target.setLevel(logging.INFO)
        structlog.get_logger("test_event_description").warning(
            "delete_concurrency_conflict", event_code=1001
        )
        target.removeHandler(handler)

        entry = json.loads(stream.getvalue().strip().splitlines()[0])
        assert entry["event_code"] == 1001
        assert entry["event_description"] == EVENT_DESCRIPTIONS[CrudEvent.CONCURRENCY_ERROR]


@pytest.mark.unit
class TestUnitOfWorkContext:
    """Tests for unit_of_work_context."""

    def test_binds_given_id_and_unbinds(self) -> None:
        """The id is bound inside the block and gone after it."""
        with unit_of_work_context("uow-123") as unit_of_work_id:
            assert unit_of_work_id == "uow-123"
            assert get_contextvars()["unit_of_work_id"] == "uow-123"
        assert "unit_of_work_id" not in get_contextvars()

    def test_generates_id_when_missing(self) -> None:
        """Without an id a fresh hex id is generated."""
        with unit_of_work_context() as first, unit_of_work_context() as second:
            assert len(first) == 32
            assert first != second

    def test_restores_outer_values(self) -> None:
        """Nested blocks restore the enclosing id; other keys are kept."""
        bind_contextvars(request_id="req-1")
        with unit_of_work_context("outer"):
            with unit_of_work_context("inner"):
                assert get_contextvars()["unit_of_work_id"] == "inner"
            assert get_contextvars()["unit_of_work_id"] == "outer"
        assert "unit_of_work_id" not in get_contextvars()
        assert get_contextvars()["request_id"] == "req-1"


@pytest.mark.unit
class TestResolveLevel:
    """Tests for _resolve_level."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("CRITICAL", logging.CRITICAL),
            ("debug", logging.DEBUG),
            ("unknown", logging.INFO),
        ],
    )
    def test_resolve_level(self, name: str, expected: int) -> None:
        """Level names resolve to correct logging constants."""
        assert _resolve_level(name) == expected
