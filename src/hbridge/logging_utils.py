"""Logging setup for HBridgeLab runs.

Library modules log to the ``hbridge`` logger and never configure handlers
themselves. The CLI calls :func:`setup_run_logger` for project runs (file log
in the output directory) and :func:`configure_console` for ad-hoc scans.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from typing import Optional, Tuple


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def _drop_handlers(logger: logging.Logger, kind: type) -> None:
    for handler in list(logger.handlers):
        if type(handler) is kind:
            logger.removeHandler(handler)
            handler.close()


def configure_console(level: int = logging.WARNING, name: str = "hbridge") -> logging.Logger:
    """Send ``name`` records at ``level`` and above to stderr."""
    logger = logging.getLogger(name)
    _drop_handlers(logger, logging.StreamHandler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(min(level, logger.level or level))
    logger.propagate = False
    return logger


def setup_run_logger(
    output_dir: str,
    name: str = "hbridge",
    console_level: Optional[int] = None,
) -> Tuple[logging.Logger, str]:
    os.makedirs(output_dir, exist_ok=True)
    log_path = os.path.join(output_dir, "hbridge.log")

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    # One file per output directory; a second run in the same process switches files.
    _drop_handlers(logger, logging.FileHandler)
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    if console_level is not None:
        configure_console(console_level, name=name)

    logger.info("=== HBridgeLab run started %s ===", datetime.now().isoformat())
    return logger, log_path
