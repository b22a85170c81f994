"""Tests for logging setup."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Iterator

import pytest

from bgfetch.core.utils.logging import get_log_file_path, get_logger, setup_logging


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


def test_get_logger_default_name() -> None:
    assert get_logger().name == "bgfetch"
    assert get_logger("bgfetch.core").name == "bgfetch.core"


def test_setup_logging_writes_rotating_file(tmp_path: Path, restore_root_logging: None) -> None:
    setup_logging(level="WARNING", log_dir=tmp_path)

    root = logging.getLogger()
    file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    console_handlers = [h for h in root.handlers if type(h) is logging.StreamHandler]

    assert get_log_file_path() == tmp_path / "bgfetch.log"
    assert len(file_handlers) == 1
    assert file_handlers[0].level == logging.DEBUG
    assert len(console_handlers) == 1
    assert console_handlers[0].level == logging.WARNING

    get_logger("bgfetch.test").debug("debug goes to file")
    file_handlers[0].flush()
    assert "debug goes to file" in (tmp_path / "bgfetch.log").read_text(encoding="utf-8")


def test_setup_logging_reconfigures(tmp_path: Path, restore_root_logging: None) -> None:
    setup_logging(level="INFO", log_dir=tmp_path / "a")
    setup_logging(level="DEBUG", log_dir=tmp_path / "b")

    root = logging.getLogger()
    file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert get_log_file_path() == tmp_path / "b" / "bgfetch.log"


def test_unknown_level_name_falls_back_to_info(tmp_path: Path, restore_root_logging: None) -> None:
    setup_logging(level="chatty", log_dir=tmp_path)

    console = [h for h in logging.getLogger().handlers if type(h) is logging.StreamHandler]
    assert console[0].level == logging.INFO
