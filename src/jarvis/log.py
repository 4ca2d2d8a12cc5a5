"""Logging setup for jarvis.

Log records go to a rotating file under the configured log directory.
stdout is left alone: hooks use it as the channel back to the host.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jarvis.config import Config

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s]: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def setup_logging(config: Config) -> Path | None:
    """Attach a rotating file handler to the ``jarvis`` logger.

    Args:
        config: The loaded configuration.

    Returns:
        Path to the log file, or None if the log directory is not writable
        (logging is then left unconfigured).
    """
    logger = logging.getLogger("jarvis")
    logger.setLevel(getattr(logging, config.logging.level))

    log_file = config.paths.log_path / config.logging.file

    # Avoid adding multiple handlers if re-initialized
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler) and (
            handler.baseFilename == os.path.abspath(log_file)
        ):
            return log_file

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5
        )
    except OSError:
        return None

    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(handler)
    return log_file
