"""
Tests for the logging bootstrap.
"""

from __future__ import annotations

import logging
from pathlib import Path

from workbook_ingestion.logging_setup import (
    ROOT_LOGGER_NAME,
    _owned_handlers,
    configure_logging,
    get_logger,
)


def _file_handlers(root: logging.Logger) -> list:
    return [h for h in _owned_handlers(root) if isinstance(h, logging.FileHandler)]


# ======================================================================
# configure_logging
# ======================================================================

class TestConfigureLogging:
    def test_repeat_calls_do_not_duplicate(self) -> None:
        root = configure_logging(logging.WARNING)
        before = len(_owned_handlers(root))
        configure_logging(logging.WARNING)
        assert len(_owned_handlers(root)) == before

    def test_level_reapplied(self) -> None:
        root = configure_logging(logging.DEBUG)
        assert root.level == logging.DEBUG
        configure_logging(logging.ERROR)
        assert root.level == logging.ERROR
        assert all(h.level == logging.ERROR for h in _owned_handlers(root))
        configure_logging(logging.WARNING)

    def test_foreign_handlers_untouched(self) -> None:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        foreign = logging.NullHandler()
        foreign.setLevel(logging.CRITICAL)
        root.addHandler(foreign)
        try:
            configure_logging(logging.DEBUG)
            assert foreign.level == logging.CRITICAL
            assert foreign not in _owned_handlers(root)
        finally:
            root.removeHandler(foreign)
            configure_logging(logging.WARNING)

    def test_file_handler_added_once(self, tmp_path: Path) -> None:
        log_file = str(tmp_path / "ingest.log")
        root = configure_logging(logging.WARNING, log_file=log_file)
        configure_logging(logging.WARNING, log_file=log_file)
        mine = [h for h in _file_handlers(root) if h.baseFilename == log_file]
        assert len(mine) == 1

        get_logger("test").warning("written to file")
        mine[0].flush()
        assert "written to file" in Path(log_file).read_text(encoding="utf-8")

        root.removeHandler(mine[0])
        mine[0].close()

    def test_child_namespace(self) -> None:
        assert get_logger("pipeline").name == f"{ROOT_LOGGER_NAME}.pipeline"
