from __future__ import annotations

import io
import logging

from statement_ingest.logging_setup import configure_logging, get_logger, import_logger


def test_library_logger_is_silent_until_configured():
    get_logger("statement_ingest.tests")
    handlers = logging.getLogger("statement_ingest").handlers
    assert handlers
    assert all(isinstance(h, logging.NullHandler) for h in handlers)


def test_configure_logging_installs_one_stream_handler_once():
    stream = io.StringIO()
    configure_logging("debug", fmt="%(levelname)s %(name)s %(message)s", stream=stream)
    configure_logging("error", stream=io.StringIO())

    pkg = logging.getLogger("statement_ingest")
    assert pkg.level == logging.DEBUG
    assert pkg.propagate is False
    assert len(pkg.handlers) == 1

    get_logger("statement_ingest.api").debug("hello %s", "there")
    assert stream.getvalue() == "DEBUG statement_ingest.api hello there\n"


def test_level_and_file_from_environment(monkeypatch, tmp_path):
    log_file = tmp_path / "ingest.log"
    monkeypatch.setenv("STATEMENT_INGEST_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("STATEMENT_INGEST_LOG_FILE", str(log_file))
    stream = io.StringIO()
    configure_logging(stream=stream, fmt="%(message)s")

    log = get_logger("statement_ingest.reversals")
    log.info("not shown")
    log.warning("shown")

    assert stream.getvalue() == "shown\n"
    for h in logging.getLogger("statement_ingest").handlers:
        h.flush()
    assert log_file.read_text(encoding="utf-8") == "shown\n"


def test_unknown_level_name_defaults_to_info():
    configure_logging("chatty", stream=io.StringIO())
    assert logging.getLogger("statement_ingest").level == logging.INFO


def test_import_logger_prefixes_messages():
    stream = io.StringIO()
    configure_logging(logging.INFO, fmt="%(message)s", stream=stream)

    log = import_logger(get_logger("statement_ingest.api"), import_id=7, file_name="extrato.csv")
    log.info("completed: %d imported", 3)

    assert stream.getvalue() == "[import 7 extrato.csv] completed: 3 imported\n"
