"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Generator

import pytest

from connector.main import JsonFormatter, setup_logging


@pytest.fixture
def restore_root_logger() -> Generator[None, None, None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_extra_fields_included(self) -> None:
        record = logging.LogRecord(
            "connector.gateway", logging.INFO, __file__, 1, "Submitting request", None, None
        )
        record.method = "POST"
        record.request_body = '{"name": "Branch"}'

        data = json.loads(JsonFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "connector.gateway"
        assert data["message"] == "Submitting request"
        assert data["method"] == "POST"
        assert data["request_body"] == '{"name": "Branch"}'
        assert data["timestamp"].endswith("Z")

    def test_exception_included(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "connector", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]

    def test_non_serializable_extra(self) -> None:
        record = logging.LogRecord("connector", logging.INFO, __file__, 1, "x", None, None)
        record.fields = frozenset({"name"})

        data = json.loads(JsonFormatter().format(record))

        assert "name" in data["fields"]


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.mark.usefixtures("restore_root_logger")
    def test_structured_handler_on_stderr(self) -> None:
        setup_logging(structured=True, level=logging.DEBUG)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING

    @pytest.mark.usefixtures("restore_root_logger")
    def test_plain_text(self) -> None:
        setup_logging(structured=False)

        assert not isinstance(logging.getLogger().handlers[0].formatter, JsonFormatter)
