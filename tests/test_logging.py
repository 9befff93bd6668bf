import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from txtrace.core.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_json_output_goes_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(json_output=True, level="INFO")

    structlog.get_logger("txtrace.test").warning("Got error", account="bob.near", direction="incoming")

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip().splitlines()[-1])
    assert event["event"] == "Got error"
    assert event["account"] == "bob.near"
    assert event["level"] == "warning"


def test_sqlalchemy_loggers_are_quiet_at_debug() -> None:
    configure_logging(level="DEBUG")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.pool").level == logging.WARNING


def test_reconfiguring_replaces_handler_and_drops_formatter_fields(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(level="INFO")
    configure_logging(json_output=True, level="INFO")

    logging.getLogger("sqlalchemy.engine").warning("pool exhausted")

    assert len(logging.getLogger().handlers) == 1
    [line] = capsys.readouterr().err.strip().splitlines()
    event = json.loads(line)
    assert event["event"] == "pool exhausted"
    assert event["logger"] == "sqlalchemy.engine"
    assert "_record" not in event
    assert "_from_structlog" not in event
