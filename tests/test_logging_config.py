from __future__ import annotations

import logging

from rich.logging import RichHandler

from revenue_desk.logging_config import LOGGER_NAME, configure_logging, reset_logging


def test_configure_logging_installs_single_rich_handler() -> None:
    configure_logging(level=logging.DEBUG)
    configure_logging(level=logging.WARNING)

    logger = logging.getLogger(LOGGER_NAME)
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], RichHandler)
    assert logger.level == logging.WARNING
    assert logger.propagate is False


def test_configure_logging_accepts_custom_handler() -> None:
    records: list[logging.LogRecord] = []

    class _Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    configure_logging(level=logging.INFO, handler=_Collect())
    logging.getLogger("revenue_desk.pipeline").info("parsed %d rows", 3)
    logging.getLogger("revenue_desk.pipeline").debug("hidden")

    assert [r.getMessage() for r in records] == ["parsed 3 rows"]


def test_reset_logging_restores_defaults() -> None:
    configure_logging()
    reset_logging()

    logger = logging.getLogger(LOGGER_NAME)
    assert logger.handlers == []
    assert logger.propagate is True
    assert logger.level == logging.NOTSET
