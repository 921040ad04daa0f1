"""
Logging setup shared by the gallery and the editor.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER_NAME = "sketchbox"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: Dict[str, Any], log_dir: Optional[Path] = None) -> logging.Logger:
    """Attach console and file handlers to the package logger once."""
    level_name = str(config.get("log_level", "INFO"))
    log_level = getattr(logging, level_name.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    # Avoid duplicate handlers when the gallery is re-entered
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(console_handler)

    if log_dir is not None:
        try:
            file_handler = logging.FileHandler(log_dir / "sketchbox.log", encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not set up file logging: %s", exc)
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            logger.addHandler(file_handler)

    return logger
