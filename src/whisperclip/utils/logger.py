import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from platformdirs import user_log_path

ROOT_LOGGER_NAME = "whisperclip"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_FILE_BACKUPS = 5


def get_log_dir() -> Path:
    return user_log_path(ROOT_LOGGER_NAME, appauthor=False, ensure_exists=True)


_logger_instance: Optional[logging.Logger] = None


def _owned_handlers(root_logger: logging.Logger) -> List[logging.Handler]:
    """Handlers this module installed, as opposed to ones added by a test harness."""
    return [h for h in root_logger.handlers if h.get_name() == ROOT_LOGGER_NAME]


def _configure_root_logger(root_logger: logging.Logger) -> None:
    from ..core.settings.config import LOG_TO_CONSOLE, get_log_level

    level = get_log_level()
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = RotatingFileHandler(
        get_log_dir() / "app.log",
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    file_handler.set_name(ROOT_LOGGER_NAME)
    root_logger.addHandler(file_handler)

    if LOG_TO_CONSOLE:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        console_handler.set_name(ROOT_LOGGER_NAME)
        root_logger.addHandler(console_handler)

    root_logger.propagate = False


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Return a logger under the ``whisperclip`` hierarchy.

    The root application logger is configured on first use with a rotating
    file handler and, when enabled, a stderr handler. Module loggers
    (``whisperclip.core...``) inherit those handlers.
    """
    global _logger_instance

    if name.startswith("src.whisperclip."):
        name = name.replace("src.whisperclip.", "whisperclip.", 1)
    elif name == "src.whisperclip":
        name = ROOT_LOGGER_NAME

    if _logger_instance is None:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        # Set first: configuring imports modules that call get_logger.
        _logger_instance = root_logger
        if not _owned_handlers(root_logger):
            _configure_root_logger(root_logger)

    if name == ROOT_LOGGER_NAME:
        return _logger_instance

    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Shutdown logging and close all file handlers to release file locks."""
    global _logger_instance
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in _owned_handlers(root_logger):
        handler.close()
        root_logger.removeHandler(handler)
    _logger_instance = None
