"""
Centralised logging configuration for Workbook Ingestion.

Every module obtains its logger via ``get_logger("<module>")``, a child
of the ``workbook_ingestion`` logger.  ``configure_logging`` installs the
console (and optional file) handler once; later calls only adjust the
level, so several pipelines in one process never duplicate output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER_NAME = "workbook_ingestion"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so reconfiguration can find them
_HANDLER_TAG = "_workbook_ingestion_handler"


def _owned_handlers(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]


def _tagged(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    setattr(handler, _HANDLER_TAG, True)
    return handler


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up the ``workbook_ingestion`` logger and return it.

    Parameters
    ----------
    level:
        Minimum severity to emit.  Applied on every call.
    log_file:
        If provided, a ``FileHandler`` is added alongside the console
        handler (once per distinct path).
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.propagate = False

    owned = _owned_handlers(root)
    if not owned:
        root.addHandler(_tagged(logging.StreamHandler(sys.stdout), level))

    if log_file:
        known = {
            getattr(h, "baseFilename", None) for h in owned if isinstance(h, logging.FileHandler)
        }
        if os.path.abspath(log_file) not in known:
            root.addHandler(_tagged(logging.FileHandler(log_file, encoding="utf-8"), level))

    for handler in _owned_handlers(root):
        handler.setLevel(level)
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``workbook_ingestion`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
