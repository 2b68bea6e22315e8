import io
import logging
from collections.abc import Iterator

import pytest

from statement_ingest import logging_setup
from statement_ingest.logging_setup import LEVEL_ENV, configure_logging, get_logger, resolve_level


@pytest.fixture
def fresh_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[logging.Logger]:
    logger = logging.getLogger(logging_setup.PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def test_resolve_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(LEVEL_ENV, raising=False)
    assert resolve_level() == logging.INFO
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level(" warning ") == logging.WARNING
    assert resolve_level("15") == 15
    assert resolve_level(logging.ERROR) == logging.ERROR
    assert resolve_level("chatty") == logging.INFO

    monkeypatch.setenv(LEVEL_ENV, "ERROR")
    assert resolve_level() == logging.ERROR


def test_configure_logging_attaches_one_handler(fresh_logger: logging.Logger) -> None:
    get_logger("statement_ingest.tests")
    assert [type(h) for h in fresh_logger.handlers] == [logging.NullHandler]

    out = io.StringIO()
    configure_logging("DEBUG", stream=out)
    configure_logging("ERROR", stream=io.StringIO())

    assert len(fresh_logger.handlers) == 1
    assert fresh_logger.level == logging.DEBUG
    assert fresh_logger.propagate is False

    get_logger("statement_ingest.tests").debug("rows=%d", 3)
    assert out.getvalue() == "DEBUG statement_ingest.tests: rows=3\n"
