"""
logging_config.py - Logging setup for the viewer entry points.

Library modules only create ``logging.getLogger(__name__)``; handlers are
attached here, once, by the CLI.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

from dicomview.config import CONFIG


def configure_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[str] = None,
    fmt: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger for the application.

    Parameters
    ----------
    level : int or str, optional
        Logging level, e.g. ``logging.DEBUG`` or ``"DEBUG"``.
        Defaults to the config value.
    log_file : str, optional
        Path to a log file. If None, logs go to stdout only.
    fmt : str, optional
        Format string for console output. Defaults to the config value.

    Returns
    -------
    logging.Logger
        The configured root logger.
    """
    log_cfg = CONFIG["logging"]
    level = level if level is not None else log_cfg["level"]
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    log_file = log_file or log_cfg["file"]
    fmt = fmt or log_cfg["format"]

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Repeated calls (tests, re-launch) must not stack duplicate handlers
    for handler in list(root_logger.handlers):
        if getattr(handler, "_dicomview", False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(fmt))
    console_handler._dicomview = True
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        file_handler._dicomview = True
        root_logger.addHandler(file_handler)

    # pydicom is chatty at DEBUG about every element it cannot convert
    logging.getLogger("pydicom").setLevel(max(level, logging.WARNING))

    return root_logger
