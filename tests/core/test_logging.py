from __future__ import annotations

import json
import logging
from pathlib import Path

from rich.logging import RichHandler

from drill_deck.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json_lines(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "drill_deck.test.json",
        log_dir=tmp_path / "logs",
        filename="test.log",
    )

    logger.info("bank loaded", extra={"url": "https://x", "count": 3})
    logger.debug("hidden at INFO")
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "load failed",
            extra={"paths": [tmp_path, 1], "detail": {"k": object}},
        )
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "bank loaded"
    assert first["level"] == "INFO"
    assert first["logger"] == "drill_deck.test.json"
    assert first["extra"] == {"url": "https://x", "count": 3}
    last = json.loads(lines[-1])
    assert "ValueError: boom" in last["exception"]
    assert last["extra"]["paths"] == [str(tmp_path), 1]
    assert last["extra"]["detail"]["k"] == repr(object)
    _close(logger)


def test_configure_logger_is_idempotent(tmp_path):
    name = "drill_deck.test.repeat"
    first, path_one = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs"
    )
    second, path_two = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", level="WARNING"
    )

    assert first is second
    assert path_one == path_two
    assert path_one.name == "repeat.log"
    assert len(second.handlers) == 1
    assert second.handlers[0].level == logging.WARNING
    _close(second)


def test_verbose_adds_a_rich_console_handler(tmp_path):
    name = "drill_deck.test.verbose"
    logger, _ = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", verbose=True
    )

    consoles = [h for h in logger.handlers if isinstance(h, RichHandler)]
    assert len(consoles) == 1
    assert logger.handlers[0].level == logging.DEBUG

    quiet, _ = core_logging.configure_logger(name, log_dir=tmp_path / "logs")
    assert not any(isinstance(h, RichHandler) for h in quiet.handlers)
    _close(quiet)


def test_unwritable_log_dir_falls_back_to_tmp(tmp_path, monkeypatch):
    fallback = tmp_path / "fallback"
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)
    original = core_logging._prepare_log_file

    def _prepare(log_dir: Path, filename: str) -> Path:
        if log_dir != fallback:
            raise PermissionError("read-only")
        return original(log_dir, filename)

    monkeypatch.setattr(core_logging, "_prepare_log_file", _prepare)

    logger, log_path = core_logging.configure_logger(
        "drill_deck.test.fallback", log_dir=tmp_path / "locked"
    )

    assert log_path.parent == fallback
    _close(logger)
