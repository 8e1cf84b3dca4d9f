from __future__ import annotations

import logging

from airlinedb import serve
from airlinedb.logging_config import UTCFormatter, setup_logging


def test_serve_reads_runtime_options_from_env(monkeypatch):
    captured = {}

    def _fake_run(app, **kwargs):
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(serve.uvicorn, "run", _fake_run)
    monkeypatch.setattr(serve, "setup_logging", lambda level: None)
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setenv("RELOAD", "yes")
    monkeypatch.setenv("LOG_LEVEL", "warning")

    serve.main()

    assert captured["app"] == "airlinedb.main:app"
    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 9001
    assert captured["reload"] is True
    assert captured["log_level"] == "warning"
    assert "ssl_certfile" not in captured


def test_setup_logging_is_idempotent():
    logger = setup_logging("debug")
    try:
        handlers = list(logger.handlers)

        again = setup_logging("info")

        assert again is logger
        assert again.handlers == handlers
        assert again.level == logging.INFO
        assert any(isinstance(h.formatter, UTCFormatter) for h in again.handlers)
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def test_utc_formatter_uses_iso_timestamps():
    record = logging.LogRecord("airlinedb", logging.INFO, __file__, 1, "hello", None, None)
    record.created = 0

    assert UTCFormatter().formatTime(record) == "1970-01-01T00:00:00+00:00"
