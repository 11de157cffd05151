from __future__ import annotations

import logging
from pathlib import Path

import pytest

from cl_yield.shared.logging import STDOUT_HANDLER_NAME, setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def _installed(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if h.get_name() == STDOUT_HANDLER_NAME]


def test_existing_file_handler_does_not_suppress_stdout_handler(root_logger, tmp_path: Path):
    for handler in _installed(root_logger):
        root_logger.removeHandler(handler)
    file_handler = logging.FileHandler(tmp_path / "app.log")
    root_logger.addHandler(file_handler)

    setup_logging("debug")

    assert len(_installed(root_logger)) == 1
    assert root_logger.level == logging.DEBUG


def test_repeated_setup_installs_one_handler(root_logger):
    setup_logging("INFO")
    setup_logging("WARNING")

    assert len(_installed(root_logger)) == 1
    assert root_logger.level == logging.WARNING
